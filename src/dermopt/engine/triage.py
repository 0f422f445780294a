"""Rule-based triage of a patient into a stability / formulary quadrant."""

from __future__ import annotations

from pydantic import BaseModel, Field

from dermopt.config.settings import TriageSettings
from dermopt.core.models import FormularyDrug, TriageResult
from dermopt.core.types import DiagnosisType, Quadrant


class TriageInput(BaseModel):
    """Clinical and formulary inputs for triage."""

    diagnosis: DiagnosisType
    has_psoriatic_arthritis: bool = False
    dlqi_score: int = Field(ge=0, le=30)
    months_stable: int = Field(ge=0)
    additional_notes: str | None = None
    current_drug: str
    formulary_drug: FormularyDrug | None = None


def is_stable(dlqi_score: int, months_stable: int, settings: TriageSettings | None = None) -> bool:
    """Stable enough to reduce dose: low DLQI held for long enough."""
    settings = settings or TriageSettings()
    return dlqi_score <= settings.max_dlqi_for_reduction and months_stable >= settings.min_months_stable


def is_formulary_aligned(drug: FormularyDrug | None, settings: TriageSettings | None = None) -> bool:
    """A drug is aligned when it is on formulary, preferred tier and PA-free."""
    settings = settings or TriageSettings()
    if drug is None:
        return False
    return drug.tier <= settings.preferred_max_tier and not drug.requires_pa


def classify_triage(data: TriageInput, settings: TriageSettings | None = None) -> TriageResult:
    """Classify a patient without calling the LLM."""
    settings = settings or TriageSettings()
    stable = is_stable(data.dlqi_score, data.months_stable, settings)
    aligned = is_formulary_aligned(data.formulary_drug, settings)
    quadrant = Quadrant.from_flags(stable, aligned)

    reasons = [
        f"DLQI {data.dlqi_score} over {data.months_stable} months is "
        + ("stable" if stable else "not stable")
        + f" (needs DLQI <= {settings.max_dlqi_for_reduction} for >= {settings.min_months_stable} months)."
    ]
    drug = data.formulary_drug
    if drug is None:
        reasons.append(f"{data.current_drug} is not on the plan formulary.")
    else:
        reasons.append(
            f"{data.current_drug} is tier {drug.tier}"
            + (" with prior authorization." if drug.requires_pa else " without prior authorization.")
        )

    return TriageResult(
        can_dose_reduce=stable,
        should_switch=stable and not aligned,
        quadrant=quadrant,
        reasoning=" ".join(reasons),
    )
