"""Eligibility (member roster) CSV parser."""

from __future__ import annotations

import logging
from datetime import date  # noqa: TC003 - Pydantic needs at runtime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from dermopt.core.models import ParseResult, RowError
from dermopt.core.types import CostDesignation
from dermopt.core.utils import parse_number
from dermopt.parsers.columns import ColumnMapper, cell, check_row, describe_error, parse_date


if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

ELIGIBILITY_COLUMNS: dict[str, list[str]] = {
    "member_id": ["member id", "memberid", "member", "patient id", "patientid", "subscriber id", "external id"],
    "first_name": ["first name", "firstname", "first", "given name"],
    "last_name": ["last name", "lastname", "last", "surname", "family name"],
    "date_of_birth": ["date of birth", "dob", "birth date", "birthdate"],
    "gender": ["gender", "sex"],
    "plan_name": ["plan name", "plan", "insurance plan", "health plan", "plan id"],
    "cost_designation": ["cost designation", "designation", "cost category", "cost tier"],
    "benchmark_cost": ["benchmark cost", "benchmark", "benchmark annual cost"],
    "employer": ["employer", "employer name", "group name", "group"],
}

_HIGH_COST_VALUES = {"high", "high cost", "high_cost", "highcost", "h", "y", "yes", "true", "1"}
_GENDERS = {"m": "M", "male": "M", "f": "F", "female": "F"}

eligibility_mapper = ColumnMapper(ELIGIBILITY_COLUMNS)


class EligibilityRow(BaseModel):
    """A parsed member record keyed by external member id."""

    row_number: int
    member_id: str
    first_name: str = ""
    last_name: str = ""
    date_of_birth: date | None = None
    gender: str | None = None
    plan_name: str | None = None
    cost_designation: CostDesignation = CostDesignation.LOW_COST
    benchmark_cost: float | None = None
    employer: str | None = None


def parse_cost_designation(value: str | None) -> CostDesignation:
    if value and value.strip().lower() in _HIGH_COST_VALUES:
        return CostDesignation.HIGH_COST
    return CostDesignation.LOW_COST


def _parse_row(row_number: int, row: Mapping[str, Any], columns: Mapping[str, str]) -> EligibilityRow:
    member_id = cell(row, columns, "member_id")
    if not member_id:
        msg = "Member ID is empty"
        raise ValueError(msg)
    dob = cell(row, columns, "date_of_birth")
    gender = cell(row, columns, "gender")
    return EligibilityRow(
        row_number=row_number,
        member_id=member_id,
        first_name=cell(row, columns, "first_name") or "",
        last_name=cell(row, columns, "last_name") or "",
        date_of_birth=parse_date(dob) if dob else None,
        gender=_GENDERS.get(gender.lower(), "U") if gender else None,
        plan_name=cell(row, columns, "plan_name"),
        cost_designation=parse_cost_designation(cell(row, columns, "cost_designation")),
        benchmark_cost=parse_number(cell(row, columns, "benchmark_cost")),
        employer=cell(row, columns, "employer"),
    )


def parse_eligibility_rows(data: list[dict[str, Any]]) -> ParseResult[EligibilityRow]:
    """Parse eligibility rows; only the member id column is required."""
    if not data:
        return ParseResult[EligibilityRow](errors=[RowError(row=0, error="No data provided")])

    columns = eligibility_mapper.map(data[0].keys())
    if "member_id" not in columns:
        return ParseResult[EligibilityRow](errors=[RowError(row=0, error='Required column "Member ID" not found')])

    result = ParseResult[EligibilityRow]()
    for i, row in enumerate(data):
        try:
            check_row(row)
            result.rows.append(_parse_row(i + 1, row, columns))
        except ValueError as e:
            result.errors.append(RowError(row=i + 1, error=describe_error(e)))

    logger.info("Parsed %d eligibility rows (%d errors)", len(result.rows), len(result.errors))
    return result
