"""Deterministic recommendation generator used when the LLM is unavailable."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from dermopt.config.settings import CostSettings, TriageSettings
from dermopt.core.models import RecommendationDraft
from dermopt.core.types import ContraindicationType, DiagnosisType, RecommendationType


if TYPE_CHECKING:
    from collections.abc import Iterable

    from dermopt.core.models import FormularyDrug, TriageResult

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 3

# Drug class key fragment -> conditions that rule the class out.
CLASS_CONTRAINDICATIONS: dict[str, set[ContraindicationType]] = {
    "TNF": {ContraindicationType.HEART_FAILURE, ContraindicationType.MULTIPLE_SCLEROSIS},
    "IL17": {ContraindicationType.INFLAMMATORY_BOWEL_DISEASE},
}
ALL_BIOLOGICS = {ContraindicationType.ACTIVE_INFECTION, ContraindicationType.TUBERCULOSIS}

_INTERVAL_RE = re.compile(r"(?:every\s+(\d+)\s*(day|week|month)s?|q\s*(\d+)\s*(d|w|m))", re.IGNORECASE)
_UNITS = {"d": "days", "day": "days", "w": "weeks", "week": "weeks", "m": "months", "month": "months"}


def class_key(drug_class: str | None) -> str:
    return re.sub(r"[^A-Z0-9]", "", (drug_class or "").upper())


def contraindication_reason(
    drug: FormularyDrug, contraindications: Iterable[ContraindicationType]
) -> str | None:
    """Return why a drug is contraindicated for the patient, or None."""
    key = class_key(drug.drug_class)
    for condition in contraindications:
        if condition in ALL_BIOLOGICS:
            return f"{condition.value.replace('_', ' ').lower()} precludes biologic therapy"
        for fragment, blocked in CLASS_CONTRAINDICATIONS.items():
            if fragment in key and condition in blocked:
                return f"{drug.drug_class} is contraindicated with {condition.value.replace('_', ' ').lower()}"
    return None


def extend_interval(frequency: str | None, reduction: float) -> str | None:
    """Stretch a dosing interval so the yearly dose falls by ``reduction``.

    >>> extend_interval("every 4 weeks", 0.25)
    'every 5 weeks'
    """
    if not frequency:
        return None
    match = _INTERVAL_RE.search(frequency)
    if not match:
        return None
    count = int(match.group(1) or match.group(3))
    unit = _UNITS[(match.group(2) or match.group(4)).lower()]
    extended = max(count + 1, round(count / (1 - reduction)))
    return f"every {extended} {unit}"


def _cost_key(drug: FormularyDrug) -> tuple[bool, float]:
    return (drug.annual_cost is None, drug.annual_cost or 0.0)


def _cheaper(drug: FormularyDrug, current_cost: float | None) -> bool:
    if current_cost is None or drug.annual_cost is None:
        return True
    return drug.annual_cost < current_cost


class RuleBasedGenerator:
    """Produces ranked recommendation drafts from triage and the formulary."""

    def __init__(
        self,
        triage_settings: TriageSettings | None = None,
        cost_settings: CostSettings | None = None,
    ) -> None:
        self.triage_settings = triage_settings or TriageSettings()
        self.cost_settings = cost_settings or CostSettings()

    def generate(
        self,
        *,
        triage: TriageResult,
        diagnosis: DiagnosisType,
        current_drug: str,
        current_frequency: str | None,
        current_class: str | None,
        current_formulary: FormularyDrug | None,
        formulary: list[FormularyDrug],
        contraindications: list[ContraindicationType],
    ) -> list[RecommendationDraft]:
        drafts: list[RecommendationDraft] = []

        if triage.can_dose_reduce:
            drafts.append(RecommendationDraft(
                rank=1,
                type=RecommendationType.DOSE_REDUCTION,
                drug_name=current_drug,
                new_frequency=extend_interval(current_frequency, self.cost_settings.dose_reduction_factor),
                rationale=(
                    f"Disease has been controlled on {current_drug} long enough to try extending the "
                    f"dosing interval. {triage.reasoning}"
                ),
                monitoring_plan="Reassess DLQI and skin clearance at 12 and 24 weeks; resume standard dosing on flare.",
            ))

        options = self._eligible_options(
            current_drug, current_formulary, formulary, diagnosis, contraindications
        )
        current_cost = current_formulary.annual_cost if current_formulary else None
        current_key = class_key(current_formulary.drug_class if current_formulary else current_class)

        if triage.should_switch:
            biosimilars = self._biosimilar_drafts(current_drug, current_formulary, options)
            drafts.extend(biosimilars)
            taken = {d.drug_name for d in biosimilars}
            preferred = [
                d for d in options
                if d.drug_name not in taken and self._preferred(d) and _cheaper(d, current_cost)
            ]
            same_class = [d for d in preferred if current_key and class_key(d.drug_class) == current_key]
            other_class = [d for d in preferred if d not in same_class]
            for drug in same_class:
                drafts.append(self._switch_draft(RecommendationType.SWITCH_TO_PREFERRED, drug, current_drug))
            for drug in other_class:
                drafts.append(self._switch_draft(RecommendationType.THERAPEUTIC_SWITCH, drug, current_drug))
        elif not triage.can_dose_reduce and not triage.quadrant.is_formulary_aligned:
            # Unstable on a non-preferred drug: move to a preferred drug of another class.
            for drug in options:
                if self._preferred(drug) and class_key(drug.drug_class) != current_key:
                    drafts.append(self._switch_draft(RecommendationType.THERAPEUTIC_SWITCH, drug, current_drug))

        if not drafts:
            drafts.append(RecommendationDraft(
                rank=1,
                type=RecommendationType.OPTIMIZE_CURRENT,
                drug_name=current_drug,
                rationale=(
                    f"No lower-cost alternative qualifies; keep {current_drug} and review adherence, "
                    f"manufacturer copay assistance and site of care. {triage.reasoning}"
                ),
                monitoring_plan="Review DLQI and fill history at the next visit.",
            ))

        ranked = [d.model_copy(update={"rank": i}) for i, d in enumerate(drafts[:MAX_RECOMMENDATIONS], start=1)]
        logger.info("Rule-based generator produced %d recommendations", len(ranked))
        return ranked

    def _preferred(self, drug: FormularyDrug) -> bool:
        return drug.tier <= self.triage_settings.preferred_max_tier and not drug.requires_pa

    def _eligible_options(
        self,
        current_drug: str,
        current_formulary: FormularyDrug | None,
        formulary: list[FormularyDrug],
        diagnosis: DiagnosisType,
        contraindications: list[ContraindicationType],
    ) -> list[FormularyDrug]:
        options = []
        for drug in formulary:
            if drug.matches_name(current_drug):
                continue
            if current_formulary is not None and drug.id == current_formulary.id:
                continue
            if not drug.treats(diagnosis):
                continue
            reason = contraindication_reason(drug, contraindications)
            if reason:
                logger.debug("Skipping %s: %s", drug.drug_name, reason)
                continue
            options.append(drug)
        return sorted(options, key=_cost_key)

    def _biosimilar_drafts(
        self,
        current_drug: str,
        current_formulary: FormularyDrug | None,
        options: list[FormularyDrug],
    ) -> list[RecommendationDraft]:
        names = {current_drug.lower()}
        if current_formulary is not None:
            names |= {current_formulary.drug_name.lower(), current_formulary.generic_name.lower()}
        names.discard("")
        return [
            self._switch_draft(RecommendationType.SWITCH_TO_BIOSIMILAR, drug, current_drug)
            for drug in options
            if drug.biosimilar_of and drug.biosimilar_of.strip().lower() in names
        ]

    def _switch_draft(
        self, rec_type: RecommendationType, drug: FormularyDrug, current_drug: str
    ) -> RecommendationDraft:
        rationale = {
            RecommendationType.SWITCH_TO_BIOSIMILAR: (
                f"{drug.drug_name} is a biosimilar of {current_drug} on tier {drug.tier}; "
                "biosimilar switching maintains efficacy at lower cost."
            ),
            RecommendationType.SWITCH_TO_PREFERRED: (
                f"{drug.drug_name} is a preferred tier {drug.tier} agent in the same class as {current_drug}"
                + ("." if not drug.requires_pa else " (prior authorization required).")
            ),
            RecommendationType.THERAPEUTIC_SWITCH: (
                f"{drug.drug_name} ({drug.drug_class}) is a preferred tier {drug.tier} alternative "
                f"with a different mechanism than {current_drug}."
            ),
        }[rec_type]
        return RecommendationDraft(
            rank=1,
            type=rec_type,
            drug_name=drug.drug_name,
            rationale=rationale,
            monitoring_plan="Confirm response at 12-16 weeks after the switch; check DLQI and adverse events.",
        )
