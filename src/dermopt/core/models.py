"""Data models for the biologic cost-optimization system."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

from dermopt.core.types import (  # noqa: TC001 - Pydantic needs at runtime
    ContraindicationType,
    CostDesignation,
    DiagnosisType,
    Quadrant,
    RecommendationType,
    UploadType,
)
from dermopt.core.utils import new_id


RowT = TypeVar("RowT")


class InsurancePlan(BaseModel):
    """A health plan that owns a formulary."""
    id: str = Field(default_factory=new_id)
    name: str
    external_id: str | None = None


class Patient(BaseModel):
    """An eligible member, created and updated by eligibility uploads."""
    id: str = Field(default_factory=new_id)
    external_id: str
    first_name: str = ""
    last_name: str = ""
    date_of_birth: date | None = None
    gender: str | None = None
    cost_designation: CostDesignation = CostDesignation.LOW_COST
    benchmark_cost: float | None = None
    plan_id: str | None = None
    employer: str | None = None


class CurrentBiologic(BaseModel):
    """The biologic a patient is on right now."""
    patient_id: str
    drug_name: str
    dose: str | None = None
    frequency: str | None = None
    start_date: date | None = None


class Contraindication(BaseModel):
    patient_id: str
    type: ContraindicationType
    notes: str | None = None


class PharmacyClaim(BaseModel):
    """A pharmacy fill linked to a patient."""
    id: str = Field(default_factory=new_id)
    patient_id: str
    fill_date: date
    drug_name: str
    ndc_code: str | None = None
    days_supply: int | None = None
    quantity: float | None = None
    out_of_pocket: float | None = None
    plan_paid: float | None = None
    true_drug_cost: float | None = None
    diagnosis_code: str | None = None


class FormularyDrug(BaseModel):
    """A drug listed on a plan formulary."""
    id: str = Field(default_factory=new_id)
    plan_id: str
    drug_name: str
    generic_name: str = ""
    drug_class: str = "OTHER"
    formulation: str | None = None
    strength: str | None = None
    tier: int = Field(default=3, ge=1, le=5)
    requires_pa: bool = False
    step_therapy_required: bool = False
    restrictions: str | None = None
    quantity_limit: str | None = None
    biosimilar_of: str | None = None
    fda_indications: list[str] = Field(default_factory=list)
    ndc_code: str | None = None
    annual_cost: float | None = None
    member_copay: float | None = None

    def matches_name(self, name: str) -> bool:
        """Check whether a brand or generic name refers to this drug."""
        needle = name.strip().lower()
        return needle in (self.drug_name.lower(), self.generic_name.lower())

    def treats(self, diagnosis: DiagnosisType) -> bool:
        """Drugs without listed indications are assumed to qualify."""
        if not self.fda_indications:
            return True
        wanted = diagnosis.value.replace("_", " ").lower()
        return any(wanted in ind.replace("_", " ").lower() for ind in self.fda_indications)


class NdcMapping(BaseModel):
    """Canonical drug identity for an NDC code."""
    ndc_code: str
    drug_name: str
    generic_name: str
    drug_class: str
    strength: str | None = None
    dosage_form: str | None = None


class KnowledgeDocument(BaseModel):
    """A clinical evidence document in the knowledge store."""
    id: str = Field(default_factory=new_id)
    title: str
    category: str = "guideline"
    content: str
    source_file: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class EvidenceSnippet(BaseModel):
    """One ranked hit from the document store."""
    title: str
    content: str

    def format(self, max_chars: int = 500) -> str:
        return f"{self.title}: {self.content[:max_chars]}..."


class CurrentBiologicInput(BaseModel):
    drug_name: str
    dose: str | None = None
    frequency: str | None = None


class AssessmentInput(BaseModel):
    """Clinical inputs for one evaluation of a patient."""
    patient_id: str
    diagnosis: DiagnosisType
    has_psoriatic_arthritis: bool = False
    dlqi_score: int = Field(ge=0, le=30)
    months_stable: int = Field(ge=0)
    additional_notes: str | None = None
    current_biologic: CurrentBiologicInput | None = None
    contraindications: list[ContraindicationType] = Field(default_factory=list)


class Assessment(BaseModel):
    """A persisted clinical evaluation event."""
    id: str = Field(default_factory=new_id)
    patient_id: str
    diagnosis: DiagnosisType
    has_psoriatic_arthritis: bool = False
    dlqi_score: int
    months_stable: int
    additional_notes: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    recommendations: list[Recommendation] = Field(default_factory=list)

    @classmethod
    def from_input(cls, data: AssessmentInput) -> Assessment:
        return cls(
            patient_id=data.patient_id,
            diagnosis=data.diagnosis,
            has_psoriatic_arthritis=data.has_psoriatic_arthritis,
            dlqi_score=data.dlqi_score,
            months_stable=data.months_stable,
            additional_notes=data.additional_notes,
        )


class TriageResult(BaseModel):
    """Coarse classification of a patient's situation."""
    can_dose_reduce: bool
    should_switch: bool
    quadrant: Quadrant
    reasoning: str = ""


class CostProjection(BaseModel):
    """Annual and monthly cost figures for a recommendation.

    Current and recommended annual cost are both present or both absent.
    """
    current_annual_cost: float | None = None
    recommended_annual_cost: float | None = None
    annual_savings: float | None = None
    savings_percent: float | None = None
    current_monthly_oop: float | None = None
    recommended_monthly_oop: float | None = None

    @model_validator(mode="after")
    def _paired_annual_costs(self) -> CostProjection:
        if self.current_annual_cost is None or self.recommended_annual_cost is None:
            self.current_annual_cost = None
            self.recommended_annual_cost = None
            self.annual_savings = None
            self.savings_percent = None
        return self


class RecommendationDraft(BaseModel):
    """A ranked candidate before costing, from either generator."""
    rank: int = Field(ge=1)
    type: RecommendationType
    drug_name: str | None = None
    new_dose: str | None = None
    new_frequency: str | None = None
    rationale: str = ""
    monitoring_plan: str | None = None


class Recommendation(BaseModel):
    """A costed recommendation attached to an assessment."""
    id: str = Field(default_factory=new_id)
    assessment_id: str | None = None
    patient_id: str
    rank: int
    type: RecommendationType
    drug_name: str
    new_dose: str | None = None
    new_frequency: str | None = None
    costs: CostProjection = Field(default_factory=CostProjection)
    rationale: str = ""
    evidence_sources: list[str] = Field(default_factory=list)
    monitoring_plan: str | None = None
    tier: int | None = None
    requires_pa: bool | None = None
    contraindicated: bool = False
    contraindication_reason: str | None = None
    is_stable: bool = False
    is_formulary_optimal: bool = False
    quadrant: Quadrant | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class DecisionResult(BaseModel):
    """Output of the decision engine for one assessment."""
    is_stable: bool
    is_formulary_optimal: bool
    quadrant: Quadrant
    recommendations: list[Recommendation] = Field(default_factory=list)
    used_fallback: bool = False


class PatientContext(BaseModel):
    """Everything the decision engine needs about a patient."""
    patient: Patient
    plan: InsurancePlan
    formulary: list[FormularyDrug] = Field(default_factory=list)
    contraindications: list[Contraindication] = Field(default_factory=list)
    current_biologic: CurrentBiologic | None = None
    recent_claims: list[PharmacyClaim] = Field(default_factory=list)

    def find_formulary_drug(self, name: str | None) -> FormularyDrug | None:
        if not name:
            return None
        return next((d for d in self.formulary if d.matches_name(name)), None)


class RowError(BaseModel):
    """A CSV row that could not be parsed. Row 0 means the whole batch."""
    row: int
    error: str


class ParseResult(BaseModel, Generic[RowT]):
    """Accepted rows and per-row errors from a CSV batch."""
    rows: list[RowT] = Field(default_factory=list)
    errors: list[RowError] = Field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return any(e.row == 0 for e in self.errors)


class UploadLog(BaseModel):
    id: str = Field(default_factory=new_id)
    upload_type: UploadType
    file_name: str
    uploaded_at: datetime = Field(default_factory=datetime.now)
    rows_processed: int = 0
    rows_failed: int = 0


class UploadSummary(BaseModel):
    """Result of one file upload, returned to the caller."""
    upload_type: UploadType
    file_name: str
    rows_processed: int = 0
    rows_failed: int = 0
    errors: list[RowError] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


Assessment.model_rebuild()
