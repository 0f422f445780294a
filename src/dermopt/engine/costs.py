"""Annual and monthly cost projections for recommendations."""

from __future__ import annotations

import logging

from dermopt.config.settings import CostSettings
from dermopt.core.models import CostProjection, FormularyDrug
from dermopt.core.types import RecommendationType


logger = logging.getLogger(__name__)


def monthly(copay: float | None) -> float | None:
    if copay is None:
        return None
    return copay / 12


def calculate_cost_savings(
    rec_type: RecommendationType,
    current: FormularyDrug | None,
    target: FormularyDrug | None,
    settings: CostSettings | None = None,
) -> CostProjection:
    """Project the cost impact of a recommendation.

    Dose reduction applies a fixed reduction factor to the current annual
    cost. A switch takes the target drug's annual cost. A missing or zero
    current cost leaves the annual figures undefined.
    """
    settings = settings or CostSettings()
    factor = settings.dose_reduction_factor

    current_cost = current.annual_cost if current else None
    recommended_cost: float | None = None
    savings: float | None = None
    percent: float | None = None

    if not current_cost:
        logger.debug("No current annual cost, leaving annual projection undefined")
        current_cost = None
    elif rec_type == RecommendationType.DOSE_REDUCTION:
        recommended_cost = current_cost * (1 - factor)
        savings = current_cost * factor
        percent = factor * 100
    elif rec_type == RecommendationType.OPTIMIZE_CURRENT:
        recommended_cost = current_cost
        savings = 0.0
        percent = 0.0
    elif target is not None and target.annual_cost is not None:
        recommended_cost = target.annual_cost
        savings = current_cost - recommended_cost
        percent = savings / current_cost * 100

    current_copay = current.member_copay if current else None
    target_copay = target.member_copay if target else None
    current_oop = monthly(current_copay)
    if target_copay:
        recommended_oop = monthly(target_copay)
    elif current_oop is not None:
        recommended_oop = current_oop * (1 - factor)
    else:
        recommended_oop = None

    return CostProjection(
        current_annual_cost=current_cost,
        recommended_annual_cost=recommended_cost,
        annual_savings=savings,
        savings_percent=percent,
        current_monthly_oop=current_oop,
        recommended_monthly_oop=recommended_oop,
    )
