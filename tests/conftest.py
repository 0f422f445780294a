"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from dermopt.config.settings import Settings
from dermopt.core.llm import LLMClient
from dermopt.core.models import (
    CurrentBiologic,
    FormularyDrug,
    InsurancePlan,
    KnowledgeDocument,
    Patient,
)
from dermopt.core.response import LLMResponse, TokenUsage
from dermopt.orchestrator.engine import DecisionEngine
from dermopt.parsers.ndc import NdcLookup
from dermopt.storage import AssessmentRepository, Database, KnowledgeBase


if TYPE_CHECKING:
    from collections.abc import Callable

    from dermopt.core.types import JSON

_ENV_VARS = (
    "LLM_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_MODEL",
    "DERMOPT_DB_PATH",
    "TRIAGE_MAX_DLQI",
    "TRIAGE_MIN_MONTHS_STABLE",
    "DERMOPT_HOST",
    "DERMOPT_PORT",
)

PSORIASIS = ["psoriasis", "psoriatic arthritis"]


class ScriptedLLM(LLMClient):
    """LLM double replaying canned replies; an Exception entry is raised instead."""

    def __init__(self, replies: list[str | Exception]) -> None:
        self.replies = list(replies)
        self.calls: list[list[JSON]] = []

    async def chat(self, messages: list[JSON], temperature: float = 0.0, json_mode: bool = False) -> LLMResponse:
        self.calls.append(messages)
        if not self.replies:
            return LLMResponse(content="")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(content=reply, usage=TokenUsage(total_tokens=10))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real API keys and overrides out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    s = Settings()
    s.database.path = str(tmp_path / "dermopt.db")
    return s


@pytest.fixture
def db(settings: Settings) -> Database:
    return Database(settings.database.path)


@pytest.fixture
def knowledge(settings: Settings) -> KnowledgeBase:
    return KnowledgeBase(settings.database.path)


@pytest.fixture
def repository(settings: Settings) -> AssessmentRepository:
    return AssessmentRepository(settings.database.path)


@pytest.fixture
def ndc_lookup() -> NdcLookup:
    return NdcLookup.from_seed()


def make_drug(plan_id: str, name: str, **fields: Any) -> FormularyDrug:
    fields.setdefault("fda_indications", PSORIASIS)
    return FormularyDrug(plan_id=plan_id, drug_name=name, **fields)


def formulary_for(plan_id: str) -> list[FormularyDrug]:
    """A small psoriasis formulary: Humira non-preferred, cheaper options preferred."""
    return [
        make_drug(plan_id, "Humira", generic_name="adalimumab", drug_class="TNF_INHIBITOR", tier=3,
                  requires_pa=True, annual_cost=84000, member_copay=250,
                  fda_indications=[*PSORIASIS, "hidradenitis suppurativa"]),
        make_drug(plan_id, "Amjevita", generic_name="adalimumab-atto", drug_class="TNF_INHIBITOR", tier=1,
                  biosimilar_of="Humira", annual_cost=30000, member_copay=25),
        make_drug(plan_id, "Cosentyx", generic_name="secukinumab", drug_class="IL17_INHIBITOR", tier=2,
                  annual_cost=72000, member_copay=60),
        make_drug(plan_id, "Skyrizi", generic_name="risankizumab", drug_class="IL23_INHIBITOR", tier=2,
                  annual_cost=60000, member_copay=50),
        make_drug(plan_id, "Stelara", generic_name="ustekinumab", drug_class="IL12_23_INHIBITOR", tier=3,
                  requires_pa=True, annual_cost=44000, member_copay=100),
        make_drug(plan_id, "Dupixent", generic_name="dupilumab", drug_class="IL4_13_INHIBITOR", tier=2,
                  annual_cost=40000, member_copay=40, fda_indications=["atopic dermatitis"]),
    ]


@pytest.fixture
def plan(db: Database) -> InsurancePlan:
    return db.get_or_create_plan("Acme Health")


@pytest.fixture
def formulary(db: Database, plan: InsurancePlan) -> list[FormularyDrug]:
    drugs = formulary_for(plan.id)
    db.save_formulary(drugs)
    return drugs


@pytest.fixture
def patient(db: Database, plan: InsurancePlan, formulary: list[FormularyDrug]) -> Patient:
    """Patient M001 on Humira every 2 weeks."""
    db.upsert_patients([Patient(external_id="M001", first_name="Ana", last_name="Lopez", plan_id=plan.id)])
    stored = db.get_patient_by_external_id("M001")
    assert stored is not None
    db.set_current_biologic(CurrentBiologic(
        patient_id=stored.id, drug_name="Humira", dose="40 mg", frequency="every 2 weeks",
        start_date=date(2023, 1, 1),
    ))
    return stored


@pytest.fixture
def evidence_docs(knowledge: KnowledgeBase) -> list[KnowledgeDocument]:
    docs = [
        KnowledgeDocument(
            title="Adalimumab interval extension",
            content="Extending adalimumab dosing interval in stable psoriasis patients maintained response.",
        ),
        KnowledgeDocument(
            title="Biosimilar switching outcomes",
            content="Switching from reference adalimumab to a biosimilar showed equivalent efficacy in psoriasis.",
        ),
        KnowledgeDocument(
            title="Atopic dermatitis overview",
            content="Dupilumab is first-line systemic therapy for moderate eczema.",
        ),
    ]
    for doc in docs:
        knowledge.add_document(doc)
    return docs


@pytest.fixture
def make_engine(
    db: Database, knowledge: KnowledgeBase, repository: AssessmentRepository,
    settings: Settings, ndc_lookup: NdcLookup,
) -> Callable[[LLMClient | None], DecisionEngine]:
    def factory(llm: LLMClient | None = None) -> DecisionEngine:
        return DecisionEngine(db, knowledge, repository, settings, llm=llm, ndc_lookup=ndc_lookup)

    return factory


@pytest.fixture
def offline_formulary() -> list[FormularyDrug]:
    """The same formulary without a database."""
    return formulary_for("plan-1")


@pytest.fixture
def scripted_llm() -> type[ScriptedLLM]:
    return ScriptedLLM
