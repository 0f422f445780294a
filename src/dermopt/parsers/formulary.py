"""Formulary CSV parser."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from dermopt.core.models import FormularyDrug, ParseResult, RowError
from dermopt.core.utils import parse_boolean, parse_number
from dermopt.parsers.columns import ColumnMapper, cell, check_row, describe_error
from dermopt.parsers.ndc import normalize_ndc


if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

FORMULARY_COLUMNS: dict[str, list[str]] = {
    "drug_name": ["drug name", "drugname", "drug", "medication", "brand name", "brand"],
    "generic_name": ["generic name", "genericname", "generic"],
    "drug_class": ["drug class", "drugclass", "class", "category", "type"],
    "formulation": ["formulation", "dosage form", "form"],
    "strength": ["strength", "dose strength", "concentration"],
    "tier": ["tier", "formulary tier"],
    "requires_pa": ["requires pa", "pa required", "prior auth", "prior authorization", "pa"],
    "step_therapy_required": ["step therapy", "step required"],
    "restrictions": ["restrictions", "restriction", "limits"],
    "quantity_limit": ["quantity limit", "qty limit", "ql"],
    "biosimilar_of": ["biosimilar of", "reference product", "originator"],
    "fda_indications": ["fda indications", "indications", "approved indications"],
    "ndc_code": ["ndc code", "ndc", "national drug code"],
    "annual_cost": ["annual cost", "annual cost wac", "annualcostwac", "wac", "annual wac", "cost"],
    "member_copay": ["member copay", "member copay t1", "membercopayt1", "copay"],
}

formulary_mapper = ColumnMapper(FORMULARY_COLUMNS)


def _tier(value: str | None) -> int:
    number = parse_number(value)
    if number is None:
        return 3
    if not number.is_integer():
        msg = f"Tier must be a whole number, got {value!r}"
        raise ValueError(msg)
    return int(number)


def _parse_row(row: Mapping[str, Any], columns: Mapping[str, str], plan_id: str) -> FormularyDrug:
    drug_name = cell(row, columns, "drug_name")
    if not drug_name:
        msg = "Drug name is empty"
        raise ValueError(msg)
    indications = cell(row, columns, "fda_indications")
    ndc = cell(row, columns, "ndc_code")
    return FormularyDrug(
        plan_id=plan_id,
        drug_name=drug_name,
        generic_name=cell(row, columns, "generic_name") or "",
        drug_class=cell(row, columns, "drug_class") or "OTHER",
        formulation=cell(row, columns, "formulation"),
        strength=cell(row, columns, "strength"),
        tier=_tier(cell(row, columns, "tier")),
        requires_pa=parse_boolean(cell(row, columns, "requires_pa") or ""),
        step_therapy_required=parse_boolean(cell(row, columns, "step_therapy_required") or ""),
        restrictions=cell(row, columns, "restrictions"),
        quantity_limit=cell(row, columns, "quantity_limit"),
        biosimilar_of=cell(row, columns, "biosimilar_of"),
        fda_indications=[s.strip() for s in re.split(r"[;,]", indications) if s.strip()] if indications else [],
        ndc_code=normalize_ndc(ndc) if ndc else None,
        annual_cost=parse_number(cell(row, columns, "annual_cost")),
        member_copay=parse_number(cell(row, columns, "member_copay")),
    )


def parse_formulary_rows(data: list[dict[str, Any]], plan_id: str) -> ParseResult[FormularyDrug]:
    """Parse formulary rows for a plan.

    A missing drug name column aborts the batch with a row-0 error. Every
    other problem is recorded against its 1-based row and the row skipped.
    """
    if not data:
        return ParseResult[FormularyDrug](errors=[RowError(row=0, error="No data provided")])

    columns = formulary_mapper.map(data[0].keys())
    if "drug_name" not in columns:
        return ParseResult[FormularyDrug](errors=[RowError(row=0, error='Required column "Drug Name" not found')])

    result = ParseResult[FormularyDrug]()
    for i, row in enumerate(data):
        try:
            check_row(row)
            result.rows.append(_parse_row(row, columns, plan_id))
        except ValueError as e:
            result.errors.append(RowError(row=i + 1, error=describe_error(e)))

    logger.info("Parsed %d formulary rows (%d errors)", len(result.rows), len(result.errors))
    return result
