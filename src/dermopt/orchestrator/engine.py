"""Decision engine: triage, evidence and ranked recommendations for an assessment."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from dermopt.agents.recommender import RecommendationRequest, RecommenderAgent
from dermopt.agents.triage import TriageAgent
from dermopt.config.settings import Settings
from dermopt.core.errors import MissingInputError, PatientNotFoundError
from dermopt.core.models import (
    Assessment,
    Contraindication,
    CurrentBiologic,
    DecisionResult,
    FormularyDrug,
    PatientContext,
    Recommendation,
)
from dermopt.core.types import RecommendationType
from dermopt.engine.costs import calculate_cost_savings
from dermopt.engine.rules import MAX_RECOMMENDATIONS, RuleBasedGenerator, contraindication_reason, extend_interval
from dermopt.engine.triage import TriageInput, classify_triage
from dermopt.tools.evidence import EvidenceRetriever


if TYPE_CHECKING:
    from dermopt.core.llm import LLMClient
    from dermopt.core.models import AssessmentInput, PharmacyClaim, RecommendationDraft, TriageResult
    from dermopt.core.types import ContraindicationType
    from dermopt.parsers.ndc import NdcLookup
    from dermopt.storage import AssessmentRepository, Database, KnowledgeBase
    from dermopt.tools.evidence import Evidence

logger = logging.getLogger(__name__)

RECENT_CLAIMS = 12


class DecisionEngine:
    """Produces and stores recommendations for clinical assessments.

    With an LLM client the engine asks the triage and recommender agents;
    without one, or when either agent fails, it answers with the rule-based
    path instead. Either way at least one recommendation is returned for a
    patient on a known biologic.
    """

    def __init__(
        self,
        db: Database,
        knowledge: KnowledgeBase,
        repository: AssessmentRepository,
        settings: Settings | None = None,
        llm: LLMClient | None = None,
        ndc_lookup: NdcLookup | None = None,
    ) -> None:
        if settings is None:
            settings = Settings()
        self.settings = settings
        self._db = db
        self._repository = repository
        self._ndc = ndc_lookup if ndc_lookup is not None else db.load_ndc_lookup()
        self._retriever = EvidenceRetriever(knowledge, settings.retrieval)
        self._rules = RuleBasedGenerator(settings.triage, settings.costs)
        self._llm = llm
        self._triage_agent = TriageAgent(llm, settings.llm.triage_temperature) if llm else None
        self._recommender = RecommenderAgent(llm, settings.llm.recommendation_temperature) if llm else None

    def load_context(self, data: AssessmentInput) -> PatientContext:
        """Gather the patient, plan, formulary and current therapy.

        ``data.patient_id`` may be the internal id or the member id.
        """
        patient = self._db.get_patient(data.patient_id) or self._db.get_patient_by_external_id(data.patient_id)
        if patient is None:
            msg = f"Patient not found: {data.patient_id}"
            raise PatientNotFoundError(msg)
        plan = self._db.get_plan(patient.plan_id) if patient.plan_id else None
        if plan is None:
            msg = f"No insurance plan found for patient {patient.external_id}"
            raise MissingInputError(msg)

        claims = self._db.get_claims_for_patient(patient.id, limit=RECENT_CLAIMS)
        contraindications = {c.type: c for c in self._db.get_contraindications(patient.id)}
        for ctype in data.contraindications:
            contraindications.setdefault(ctype, Contraindication(patient_id=patient.id, type=ctype))

        if data.current_biologic is not None:
            biologic = CurrentBiologic(
                patient_id=patient.id,
                drug_name=data.current_biologic.drug_name,
                dose=data.current_biologic.dose,
                frequency=data.current_biologic.frequency,
            )
        else:
            biologic = self._db.get_current_biologic(patient.id) or self._biologic_from_claims(patient.id, claims)

        return PatientContext(
            patient=patient,
            plan=plan,
            formulary=self._db.get_formulary(plan.id),
            contraindications=list(contraindications.values()),
            current_biologic=biologic,
            recent_claims=claims,
        )

    def _biologic_from_claims(self, patient_id: str, claims: list[PharmacyClaim]) -> CurrentBiologic | None:
        """Latest fill of a known biologic, by NDC or by name."""
        for claim in claims:
            mapping = self._ndc.lookup(claim.ndc_code) or self._ndc.by_name(claim.drug_name)
            if mapping is not None:
                logger.debug("Current biologic %s taken from claim of %s", mapping.drug_name, claim.fill_date)
                return CurrentBiologic(patient_id=patient_id, drug_name=mapping.drug_name, start_date=claim.fill_date)
        return None

    async def generate(self, data: AssessmentInput) -> DecisionResult:
        _, result = await self._generate(data)
        return result

    async def _generate(self, data: AssessmentInput) -> tuple[PatientContext, DecisionResult]:
        context = await asyncio.to_thread(self.load_context, data)
        biologic = context.current_biologic
        if biologic is None:
            msg = f"No current biologic found for patient {context.patient.external_id}"
            raise MissingInputError(msg)

        current_drug = biologic.drug_name
        generic = self._ndc.to_generic(current_drug)
        current_formulary = context.find_formulary_drug(current_drug) or context.find_formulary_drug(generic)
        contraindications = [c.type for c in context.contraindications]
        triage_input = TriageInput(
            diagnosis=data.diagnosis,
            has_psoriatic_arthritis=data.has_psoriatic_arthritis,
            dlqi_score=data.dlqi_score,
            months_stable=data.months_stable,
            additional_notes=data.additional_notes,
            current_drug=generic,
            formulary_drug=current_formulary,
        )

        outcome = None
        if self._triage_agent is not None and self._recommender is not None:
            try:
                outcome = await self._llm_path(data, triage_input, context, current_formulary, contraindications)
            except Exception as e:
                logger.warning("LLM decision path failed, using rule-based fallback: %s", e)
        used_fallback = outcome is None
        if outcome is None:
            outcome = await self._rule_path(data, triage_input, biologic, context, current_formulary, contraindications)
        triage, evidence, drafts = outcome

        recommendations = [
            self._build_recommendation(
                draft, context, biologic, current_formulary, triage, evidence, contraindications
            )
            for draft in sorted(drafts, key=lambda d: d.rank)[:MAX_RECOMMENDATIONS]
        ]
        for rank, rec in enumerate(recommendations, start=1):
            rec.rank = rank

        logger.info(
            "Generated %d recommendations for %s (%s%s)",
            len(recommendations), context.patient.external_id, triage.quadrant.value,
            ", fallback" if used_fallback else "",
        )
        return context, DecisionResult(
            is_stable=triage.can_dose_reduce,
            is_formulary_optimal=not triage.should_switch,
            quadrant=triage.quadrant,
            recommendations=recommendations,
            used_fallback=used_fallback,
        )

    async def _llm_path(
        self,
        data: AssessmentInput,
        triage_input: TriageInput,
        context: PatientContext,
        current_formulary: FormularyDrug | None,
        contraindications: list[ContraindicationType],
    ) -> tuple[TriageResult, Evidence, list[RecommendationDraft]]:
        drug = triage_input.current_drug
        triage = await self._triage_agent.triage(triage_input)
        evidence = await self._retriever.for_triage(drug, data.diagnosis, triage)
        options = sorted(
            (d for d in context.formulary if current_formulary is None or d.id != current_formulary.id),
            key=lambda d: (d.tier, d.annual_cost is None, d.annual_cost or 0.0),
        )
        drafts = await self._recommender.recommend(RecommendationRequest(
            diagnosis=data.diagnosis,
            dlqi_score=data.dlqi_score,
            months_stable=data.months_stable,
            current_drug=drug,
            triage=triage,
            evidence=evidence.passages,
            formulary_options=options,
            current_formulary=current_formulary,
            contraindications=contraindications,
        ))
        return triage, evidence, drafts

    async def _rule_path(
        self,
        data: AssessmentInput,
        triage_input: TriageInput,
        biologic: CurrentBiologic,
        context: PatientContext,
        current_formulary: FormularyDrug | None,
        contraindications: list[ContraindicationType],
    ) -> tuple[TriageResult, Evidence, list[RecommendationDraft]]:
        triage = classify_triage(triage_input, self.settings.triage)
        evidence = await self._retriever.for_triage(triage_input.current_drug, data.diagnosis, triage)
        drafts = self._rules.generate(
            triage=triage,
            diagnosis=data.diagnosis,
            current_drug=biologic.drug_name,
            current_frequency=biologic.frequency,
            current_class=self._ndc.drug_class(biologic.drug_name),
            current_formulary=current_formulary,
            formulary=context.formulary,
            contraindications=contraindications,
        )
        return triage, evidence, drafts

    def _build_recommendation(
        self,
        draft: RecommendationDraft,
        context: PatientContext,
        biologic: CurrentBiologic,
        current_formulary: FormularyDrug | None,
        triage: TriageResult,
        evidence: Evidence,
        contraindications: list[ContraindicationType],
    ) -> Recommendation:
        drug_name = draft.drug_name or biologic.drug_name
        if draft.type.is_switch:
            target = context.find_formulary_drug(drug_name)
            new_dose, new_frequency = draft.new_dose, draft.new_frequency
        else:
            target = None
            new_dose = draft.new_dose or biologic.dose
            new_frequency = draft.new_frequency or (
                extend_interval(biologic.frequency, self.settings.costs.dose_reduction_factor)
                if draft.type == RecommendationType.DOSE_REDUCTION else biologic.frequency
            )
        listing = target or current_formulary
        reason = self._contraindication(drug_name, target, contraindications) if draft.type.is_switch else None

        return Recommendation(
            patient_id=context.patient.id,
            rank=draft.rank,
            type=draft.type,
            drug_name=drug_name,
            new_dose=new_dose,
            new_frequency=new_frequency,
            costs=calculate_cost_savings(draft.type, current_formulary, target, self.settings.costs),
            rationale=draft.rationale,
            evidence_sources=evidence.titles(self.settings.retrieval.max_evidence_sources),
            monitoring_plan=draft.monitoring_plan,
            tier=listing.tier if listing else None,
            requires_pa=listing.requires_pa if listing else None,
            contraindicated=reason is not None,
            contraindication_reason=reason,
            is_stable=triage.can_dose_reduce,
            is_formulary_optimal=not triage.should_switch,
            quadrant=triage.quadrant,
        )

    def _contraindication(
        self, drug_name: str, target: FormularyDrug | None, contraindications: list[ContraindicationType]
    ) -> str | None:
        if not contraindications:
            return None
        if target is None:
            drug_class = self._ndc.drug_class(drug_name)
            if drug_class is None:
                return None
            target = FormularyDrug(plan_id="", drug_name=drug_name, drug_class=drug_class)
        return contraindication_reason(target, contraindications)

    async def create_assessment(self, data: AssessmentInput) -> Assessment:
        """Generate recommendations, then store the assessment with them.

        Nothing is written when generation fails.
        """
        context, result = await self._generate(data)
        return await asyncio.to_thread(self._persist, data, context, result)

    def _persist(self, data: AssessmentInput, context: PatientContext, result: DecisionResult) -> Assessment:
        if data.current_biologic is not None and context.current_biologic is not None:
            self._db.set_current_biologic(context.current_biologic)
        if data.contraindications:
            self._db.add_contraindications(
                c for c in context.contraindications if c.type in data.contraindications
            )
        assessment = Assessment.from_input(data).model_copy(update={"patient_id": context.patient.id})
        return self._repository.save(assessment, result.recommendations)
