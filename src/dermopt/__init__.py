"""dermopt - Dermatology biologic cost optimization.

This package provides:
- CSV ingestion of eligibility, pharmacy claims and formulary files
- Triage of patients by disease stability and formulary alignment
- Ranked cost-saving recommendations from an LLM, with a rule-based fallback
- Cost projections and persistence of assessments
- An HTTP API and a command-line interface
"""

from __future__ import annotations

__version__ = "0.1.0"

from dermopt.config.settings import Settings  # noqa: E402
from dermopt.core.models import (  # noqa: E402
    Assessment,
    AssessmentInput,
    DecisionResult,
    FormularyDrug,
    Recommendation,
)
from dermopt.core.types import DiagnosisType, Quadrant, RecommendationType  # noqa: E402
from dermopt.orchestrator.engine import DecisionEngine  # noqa: E402


__all__ = [
    "Assessment",
    "AssessmentInput",
    "DecisionEngine",
    "DecisionResult",
    "DiagnosisType",
    "FormularyDrug",
    "Quadrant",
    "Recommendation",
    "RecommendationType",
    "Settings",
    "__version__",
]
