"""CSV ingestion: column mapping, row parsing, NDC lookup and claim linking."""

from dermopt.parsers.claims import ClaimRow, parse_claims_rows
from dermopt.parsers.columns import ColumnMapper, normalize_column_name, read_csv_rows
from dermopt.parsers.eligibility import EligibilityRow, parse_eligibility_rows
from dermopt.parsers.formulary import parse_formulary_rows
from dermopt.parsers.linker import LinkResult, link_claims
from dermopt.parsers.ndc import NdcLookup, normalize_ndc


__all__ = [
    "ClaimRow",
    "ColumnMapper",
    "EligibilityRow",
    "LinkResult",
    "NdcLookup",
    "link_claims",
    "normalize_column_name",
    "normalize_ndc",
    "parse_claims_rows",
    "parse_eligibility_rows",
    "parse_formulary_rows",
    "read_csv_rows",
]
