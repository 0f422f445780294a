"""Recommender agent: LLM-drafted cost-saving recommendations."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, cast

from pydantic import BaseModel, Field, ValidationError

from dermopt.core.agent import Agent
from dermopt.core.models import FormularyDrug, RecommendationDraft, TriageResult
from dermopt.core.response import AgentResponse, LLMResponse
from dermopt.core.types import AgentRole, ContraindicationType, DiagnosisType
from dermopt.core.utils import extract_json_from_response


if TYPE_CHECKING:
    from dermopt.core.llm import LLMClient

logger = logging.getLogger(__name__)

MAX_FORMULARY_OPTIONS = 5

SYSTEM_PROMPT = """You are a clinical decision support AI for dermatology biologic optimization.
Generate 1-3 specific cost-saving recommendations grounded in the clinical evidence provided.

## Recommendation Types
DOSE_REDUCTION, SWITCH_TO_BIOSIMILAR, SWITCH_TO_PREFERRED, THERAPEUTIC_SWITCH, OPTIMIZE_CURRENT

## Output Format
Return ONLY a JSON object:
{"recommendations": [{"type": "DOSE_REDUCTION", "drugName": "string or null", "newDose": "string or null",
  "newFrequency": "string or null", "rationale": "string", "monitoringPlan": "string", "rank": 1}]}"""


class RecommendationRequest(BaseModel):
    """Everything the recommender prompt is built from."""

    diagnosis: DiagnosisType
    dlqi_score: int
    months_stable: int
    current_drug: str
    triage: TriageResult
    evidence: list[str] = Field(default_factory=list)
    formulary_options: list[FormularyDrug] = Field(default_factory=list)
    current_formulary: FormularyDrug | None = None
    contraindications: list[ContraindicationType] = Field(default_factory=list)


class RecommenderAgent(Agent):
    """Agent for drafting ranked recommendations from triage and evidence."""

    def __init__(self, llm: LLMClient, temperature: float = 0.4) -> None:
        super().__init__(llm=llm, temperature=temperature)

    @property
    def role(self) -> AgentRole:
        return AgentRole.RECOMMENDER

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def format_input(self, input_data: Any) -> str:
        req = cast("RecommendationRequest", input_data)
        contraindications = ", ".join(c.value for c in req.contraindications) or "None"
        formulary_text = "\n".join(
            f"{d.drug_name} ({d.drug_class}, Tier {d.tier}, PA: {'Yes' if d.requires_pa else 'No'}, "
            f"Annual Cost: ${d.annual_cost if d.annual_cost is not None else 'unknown'})"
            for d in req.formulary_options[:MAX_FORMULARY_OPTIONS]
        ) or "None"
        current = req.current_formulary
        current_text = (
            f"Tier {current.tier}, PA: {'Yes' if current.requires_pa else 'No'}, Annual Cost: ${current.annual_cost}"
            if current else "Not on formulary"
        )
        evidence_text = "\n\n".join(req.evidence) or "No specific evidence retrieved from knowledge base."
        return f"""Generate cost-saving recommendations for this patient.

Patient Information:
- Current medication: {req.current_drug}
- Diagnosis: {req.diagnosis.value}
- DLQI Score: {req.dlqi_score}
- Months stable: {req.months_stable}
- Quadrant: {req.triage.quadrant.value}
- Triage reasoning: {req.triage.reasoning}
- Contraindications: {contraindications}

Current Formulary Status:
{current_text}

Available Formulary Options:
{formulary_text}

Clinical Evidence:
{evidence_text}

For each recommendation give the type, the drug name when switching, the new dose and
interval when reducing (taken from the evidence), a rationale citing the evidence, and a
monitoring plan."""

    def process_output(self, response: LLMResponse, total_tokens: int) -> AgentResponse:
        try:
            drafts = self._parse_recommendations(response.content)
        except (ValueError, TypeError) as e:
            logger.warning("Malformed recommendation reply: %s", e)
            return AgentResponse.rejected(f"Failed to parse recommendations: {e}", total_tokens)
        if not drafts:
            logger.error("LLM returned no recommendations, response was: %s", response.content)
            return AgentResponse.rejected("LLM returned no recommendations", total_tokens)
        return AgentResponse(success=True, output=drafts, total_tokens=total_tokens)

    def _parse_recommendations(self, content: str) -> list[RecommendationDraft]:
        parsed = json.loads(extract_json_from_response(content))
        # Both a bare array and {"recommendations": [...]} are accepted.
        items = parsed if isinstance(parsed, list) else parsed.get("recommendations", []) if isinstance(parsed, dict) else None
        if not isinstance(items, list):
            msg = "recommendations must be a list"
            raise TypeError(msg)

        drafts: list[RecommendationDraft] = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                continue
            try:
                drafts.append(RecommendationDraft(
                    rank=item.get("rank") or i + 1,
                    type=str(item.get("type", "")).strip().upper(),
                    drug_name=item.get("drugName") or None,
                    new_dose=item.get("newDose") or None,
                    new_frequency=item.get("newFrequency") or None,
                    rationale=str(item.get("rationale") or ""),
                    monitoring_plan=item.get("monitoringPlan") or None,
                ))
            except ValidationError as e:
                logger.warning("Dropping recommendation %d: %s", i + 1, e.errors()[0].get("msg"))
        drafts.sort(key=lambda d: d.rank)
        return drafts

    async def recommend(self, request: RecommendationRequest) -> list[RecommendationDraft]:
        logger.info("LLM recommendations for %s (%s)", request.current_drug, request.triage.quadrant.value)
        return cast("list[RecommendationDraft]", (await self.run(request)).unwrap("recommendation"))
