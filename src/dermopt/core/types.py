"""Core type definitions and enums."""

from __future__ import annotations

from enum import Enum
from typing import TypeAlias


# Type aliases for clarity
JSON: TypeAlias = dict[str, "JSONValue"]
JSONValue: TypeAlias = str | int | float | bool | None | list["JSONValue"] | JSON


class DiagnosisType(str, Enum):
    """Dermatologic diagnoses treated with biologics."""

    PSORIASIS = "PSORIASIS"
    ATOPIC_DERMATITIS = "ATOPIC_DERMATITIS"
    HIDRADENITIS_SUPPURATIVA = "HIDRADENITIS_SUPPURATIVA"
    OTHER = "OTHER"


class CostDesignation(str, Enum):
    """Cost designation assigned on eligibility upload."""

    HIGH_COST = "HIGH_COST"
    LOW_COST = "LOW_COST"


class RecommendationType(str, Enum):
    """Kinds of cost-saving recommendation."""

    DOSE_REDUCTION = "DOSE_REDUCTION"
    SWITCH_TO_BIOSIMILAR = "SWITCH_TO_BIOSIMILAR"
    SWITCH_TO_PREFERRED = "SWITCH_TO_PREFERRED"
    THERAPEUTIC_SWITCH = "THERAPEUTIC_SWITCH"
    OPTIMIZE_CURRENT = "OPTIMIZE_CURRENT"

    @property
    def is_switch(self) -> bool:
        return self in (
            RecommendationType.SWITCH_TO_BIOSIMILAR,
            RecommendationType.SWITCH_TO_PREFERRED,
            RecommendationType.THERAPEUTIC_SWITCH,
        )


class Quadrant(str, Enum):
    """Triage quadrant: stability x formulary alignment."""

    STABLE_FORMULARY_ALIGNED = "stable_formulary_aligned"
    STABLE_NON_FORMULARY = "stable_non_formulary"
    UNSTABLE_FORMULARY_ALIGNED = "unstable_formulary_aligned"
    UNSTABLE_NON_FORMULARY = "unstable_non_formulary"

    @property
    def is_stable(self) -> bool:
        return self in (Quadrant.STABLE_FORMULARY_ALIGNED, Quadrant.STABLE_NON_FORMULARY)

    @property
    def is_formulary_aligned(self) -> bool:
        return self in (Quadrant.STABLE_FORMULARY_ALIGNED, Quadrant.UNSTABLE_FORMULARY_ALIGNED)

    @classmethod
    def from_flags(cls, stable: bool, aligned: bool) -> Quadrant:
        if stable:
            return cls.STABLE_FORMULARY_ALIGNED if aligned else cls.STABLE_NON_FORMULARY
        return cls.UNSTABLE_FORMULARY_ALIGNED if aligned else cls.UNSTABLE_NON_FORMULARY


class ContraindicationType(str, Enum):
    """Patient conditions that rule out some biologic classes."""

    HEART_FAILURE = "HEART_FAILURE"
    MULTIPLE_SCLEROSIS = "MULTIPLE_SCLEROSIS"
    INFLAMMATORY_BOWEL_DISEASE = "INFLAMMATORY_BOWEL_DISEASE"
    ACTIVE_INFECTION = "ACTIVE_INFECTION"
    TUBERCULOSIS = "TUBERCULOSIS"
    MALIGNANCY = "MALIGNANCY"
    PREGNANCY = "PREGNANCY"


class UploadType(str, Enum):
    """Kinds of file accepted by the upload service."""

    FORMULARY = "formulary"
    CLAIMS = "claims"
    ELIGIBILITY = "eligibility"
    KNOWLEDGE = "knowledge"


class ResourceType(str, Enum):
    """Resource types exposed by the admin data endpoints."""

    KNOWLEDGE = "knowledge"
    FORMULARY = "formulary"
    CLAIMS = "claims"
    UPLOADS = "uploads"


class AgentRole(str, Enum):
    """Roles for agents in the decision engine."""

    TRIAGE = "triage"
    RECOMMENDER = "recommender"


class MessageRole(str, Enum):
    """Roles for messages in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
