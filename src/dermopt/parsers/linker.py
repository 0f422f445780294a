"""Join parsed claims to patients by external member id."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from dermopt.core.models import PharmacyClaim, RowError


if TYPE_CHECKING:
    from collections.abc import Mapping

    from dermopt.core.models import Patient
    from dermopt.parsers.claims import ClaimRow

logger = logging.getLogger(__name__)


def external_key(member_id: str) -> str:
    """Member ids compare case-insensitively, ignoring surrounding space."""
    return member_id.strip().upper()


class LinkResult(BaseModel):
    claims: list[PharmacyClaim] = Field(default_factory=list)
    errors: list[RowError] = Field(default_factory=list)


def link_claims(rows: list[ClaimRow], patients: Mapping[str, Patient]) -> LinkResult:
    """Attach each claim row to its patient.

    ``patients`` is keyed by ``external_key(member id)``. Rows whose member is
    unknown become row errors under their original row number.
    """
    result = LinkResult()
    for row in rows:
        patient = patients.get(external_key(row.member_id))
        if patient is None:
            result.errors.append(RowError(row=row.row_number, error=f"Patient not found for member id {row.member_id}"))
            continue
        result.claims.append(PharmacyClaim(
            patient_id=patient.id,
            fill_date=row.fill_date,
            drug_name=row.drug_name,
            ndc_code=row.ndc_code,
            days_supply=row.days_supply,
            quantity=row.quantity,
            out_of_pocket=row.out_of_pocket,
            plan_paid=row.plan_paid,
            true_drug_cost=row.true_drug_cost,
            diagnosis_code=row.diagnosis_code,
        ))
    if result.errors:
        logger.warning("%d claims could not be linked to a patient", len(result.errors))
    return result
