"""Header alias matching and cell helpers shared by the CSV parsers."""

from __future__ import annotations

import io
import re
from datetime import date
from typing import TYPE_CHECKING, Any

import pandas as pd
from pandas.errors import EmptyDataError, ParserError
from pydantic import ValidationError

from dermopt.core.errors import CsvReadError


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

# Key set on a row read from a line with more fields than the header.
MALFORMED_ROW = "__malformed__"

_BAD_LINE = "\x1fbad-line"


def normalize_column_name(name: str) -> str:
    """Lower-case, trim and collapse underscores/whitespace to single spaces."""
    return re.sub(r"[_\s]+", " ", str(name).strip().lower())


class ColumnMapper:
    """Maps arbitrary CSV headers to canonical field names via alias tables."""

    def __init__(self, aliases: Mapping[str, Sequence[str]]) -> None:
        self.aliases = {
            field: [normalize_column_name(a) for a in names] for field, names in aliases.items()
        }

    def map(self, headers: Iterable[str]) -> dict[str, str]:
        """Return ``{field: original header}`` for every field that was found.

        Aliases are tried in order; the first one present wins.
        """
        headers = list(headers)
        normalized = [normalize_column_name(h) for h in headers]
        mapping: dict[str, str] = {}
        for field, aliases in self.aliases.items():
            for alias in aliases:
                if alias in normalized:
                    mapping[field] = headers[normalized.index(alias)]
                    break
        return mapping


def read_csv_rows(content: bytes | str) -> list[dict[str, Any]]:
    """Read CSV content into row dicts with every cell as a string.

    A line with more fields than the header stays in place as a blank row
    carrying a ``MALFORMED_ROW`` message, so later rows keep their numbers
    and the parsers reject it like any other bad row.

    Raises:
        CsvReadError: The content is not UTF-8 text or not CSV at all.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            msg = f"File is not UTF-8 text (invalid byte at offset {e.start})"
            raise CsvReadError(msg) from e
    if not content.strip():
        return []

    options: dict[str, Any] = {
        "dtype": object, "keep_default_na": False, "skipinitialspace": True, "engine": "python",
    }
    widths: list[int] = []

    def mark_bad_line(fields: list[str]) -> list[str]:
        widths.append(len(fields))
        return [_BAD_LINE] + [""] * (len(headers) - 1)

    try:
        headers = list(pd.read_csv(io.StringIO(content), nrows=0, **options).columns)
        frame = pd.read_csv(io.StringIO(content), on_bad_lines=mark_bad_line, **options)
    except EmptyDataError:
        return []
    except ParserError as e:
        msg = f"Could not read CSV: {e}"
        raise CsvReadError(msg) from e
    if frame.empty:
        return []
    # pandas turns surplus leading fields on the first data line into an index
    if not isinstance(frame.index, pd.RangeIndex):
        msg = "Row 1 has more fields than the header"
        raise CsvReadError(msg)

    bad_widths = iter(widths)
    rows = []
    for record in frame.fillna("").to_dict(orient="records"):
        if record[headers[0]] == _BAD_LINE:
            record = dict.fromkeys(headers, "")
            record[MALFORMED_ROW] = f"Expected {len(headers)} fields, saw {next(bad_widths)}"
        rows.append(record)
    return rows


def check_row(row: Mapping[str, Any]) -> None:
    """Raise ValueError for a row read from a malformed line."""
    if MALFORMED_ROW in row:
        raise ValueError(row[MALFORMED_ROW])


def cell(row: Mapping[str, Any], columns: Mapping[str, str], field: str) -> str | None:
    """Get a stripped cell for a canonical field; None when unmapped or blank."""
    header = columns.get(field)
    if header is None:
        return None
    value = row.get(header)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_date(value: str) -> date:
    """Parse a cell as a date; US month-first when the order is ambiguous."""
    parsed = pd.to_datetime(value.strip(), errors="coerce")
    if pd.isna(parsed):
        msg = f"Invalid date: {value!r}"
        raise ValueError(msg)
    return parsed.date()


def describe_error(error: Exception) -> str:
    """Render a row failure as a single line."""
    if isinstance(error, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or 'row'}: {e['msg']}" for e in error.errors()
        )
    return str(error)
