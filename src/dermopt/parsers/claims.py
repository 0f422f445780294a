"""Pharmacy claims CSV parser."""

from __future__ import annotations

import logging
from datetime import date  # noqa: TC003 - Pydantic needs at runtime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from dermopt.core.models import ParseResult, RowError
from dermopt.core.utils import parse_number
from dermopt.parsers.columns import ColumnMapper, cell, check_row, describe_error, parse_date
from dermopt.parsers.ndc import normalize_ndc


if TYPE_CHECKING:
    from collections.abc import Mapping

    from dermopt.parsers.ndc import NdcLookup

logger = logging.getLogger(__name__)

CLAIMS_COLUMNS: dict[str, list[str]] = {
    "member_id": ["member id", "memberid", "member", "patient id", "patientid", "subscriber id", "external id"],
    "fill_date": ["fill date", "filldate", "date filled", "date of service", "service date", "dos"],
    "drug_name": ["drug name", "drugname", "drug", "medication", "product name"],
    "ndc_code": ["ndc", "ndc code", "ndc11", "national drug code"],
    "days_supply": ["days supply", "dayssupply", "day supply", "days"],
    "quantity": ["quantity", "qty", "quantity dispensed"],
    "out_of_pocket": ["member paid", "out of pocket", "outofpocket", "oop", "patient pay", "member cost"],
    "plan_paid": ["plan paid", "planpaid", "paid amount", "plan cost"],
    "true_drug_cost": ["true drug cost", "truedrugcost", "total cost", "ingredient cost", "allowed amount"],
    "diagnosis_code": ["diagnosis code", "diagnosis", "icd10", "icd 10", "dx code", "dx"],
}

REQUIRED_COLUMNS = {"member_id": "Member ID", "fill_date": "Fill Date"}

claims_mapper = ColumnMapper(CLAIMS_COLUMNS)


class ClaimRow(BaseModel):
    """A parsed claim that has not been linked to a patient yet."""

    row_number: int
    member_id: str
    fill_date: date
    drug_name: str
    ndc_code: str | None = None
    days_supply: int | None = None
    quantity: float | None = None
    out_of_pocket: float | None = None
    plan_paid: float | None = None
    true_drug_cost: float | None = None
    diagnosis_code: str | None = None


def _parse_row(
    row_number: int, row: Mapping[str, Any], columns: Mapping[str, str], ndc_lookup: NdcLookup | None
) -> ClaimRow:
    member_id = cell(row, columns, "member_id")
    if not member_id:
        msg = "Member ID is empty"
        raise ValueError(msg)
    fill_date = cell(row, columns, "fill_date")
    if not fill_date:
        msg = "Fill date is empty"
        raise ValueError(msg)

    raw_ndc = cell(row, columns, "ndc_code")
    ndc = normalize_ndc(raw_ndc) if raw_ndc else None
    canonical = ndc_lookup.drug_name(ndc) if ndc_lookup and ndc else None
    drug_name = canonical or cell(row, columns, "drug_name")
    if not drug_name:
        msg = f"Drug name is empty and NDC {raw_ndc or '(none)'} is not recognised"
        raise ValueError(msg)

    days = parse_number(cell(row, columns, "days_supply"))
    return ClaimRow(
        row_number=row_number,
        member_id=member_id,
        fill_date=parse_date(fill_date),
        drug_name=drug_name,
        ndc_code=ndc,
        days_supply=int(days) if days is not None else None,
        quantity=parse_number(cell(row, columns, "quantity")),
        out_of_pocket=parse_number(cell(row, columns, "out_of_pocket")),
        plan_paid=parse_number(cell(row, columns, "plan_paid")),
        true_drug_cost=parse_number(cell(row, columns, "true_drug_cost")),
        diagnosis_code=cell(row, columns, "diagnosis_code"),
    )


def parse_claims_rows(data: list[dict[str, Any]], ndc_lookup: NdcLookup | None = None) -> ParseResult[ClaimRow]:
    """Parse pharmacy claim rows.

    Member ID, fill date and one of drug name / NDC columns are required for
    the batch; each row is then parsed on its own.
    """
    if not data:
        return ParseResult[ClaimRow](errors=[RowError(row=0, error="No data provided")])

    columns = claims_mapper.map(data[0].keys())
    for field, label in REQUIRED_COLUMNS.items():
        if field not in columns:
            return ParseResult[ClaimRow](errors=[RowError(row=0, error=f'Required column "{label}" not found')])
    if "drug_name" not in columns and "ndc_code" not in columns:
        return ParseResult[ClaimRow](errors=[RowError(row=0, error='Required column "Drug Name" or "NDC" not found')])

    result = ParseResult[ClaimRow]()
    for i, row in enumerate(data):
        try:
            check_row(row)
            result.rows.append(_parse_row(i + 1, row, columns, ndc_lookup))
        except ValueError as e:
            result.errors.append(RowError(row=i + 1, error=describe_error(e)))

    logger.info("Parsed %d claim rows (%d errors)", len(result.rows), len(result.errors))
    return result
