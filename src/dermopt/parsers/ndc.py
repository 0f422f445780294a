"""NDC normalization and the drug identity lookup table."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from dermopt.core.models import NdcMapping


if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

# Segment widths of the 11-digit (5-4-2) billing form.
_SEGMENTS = (5, 4, 2)


def normalize_ndc(code: str) -> str:
    """Convert an NDC to its 11-digit billing form.

    Hyphenated 4-4-2, 5-3-2 and 5-4-1 codes are zero-padded segment by
    segment. Unhyphenated input must already have 11 digits.
    """
    text = str(code).strip()
    if "-" in text:
        parts = text.split("-")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            msg = f"Invalid NDC: {code!r}"
            raise ValueError(msg)
        if any(len(p) > width for p, width in zip(parts, _SEGMENTS)):
            msg = f"Invalid NDC: {code!r}"
            raise ValueError(msg)
        return "".join(p.zfill(width) for p, width in zip(parts, _SEGMENTS))
    digits = re.sub(r"\D", "", text)
    if len(digits) != 11:
        msg = f"Invalid NDC: {code!r}"
        raise ValueError(msg)
    return digits


class NdcLookup:
    """Canonical drug names by NDC code and by brand/generic name.

    Built explicitly from mappings (seed table or database) and passed to
    the components that need it.
    """

    def __init__(self, mappings: Iterable[NdcMapping] = ()) -> None:
        self._by_ndc: dict[str, NdcMapping] = {}
        self._by_name: dict[str, NdcMapping] = {}
        for mapping in mappings:
            self.add(mapping)

    @classmethod
    def from_mappings(cls, mappings: Iterable[NdcMapping]) -> NdcLookup:
        return cls(mappings)

    @classmethod
    def from_seed(cls) -> NdcLookup:
        from dermopt.data.ndc_mappings import BIOLOGIC_NDC_MAPPINGS  # noqa: PLC0415

        return cls(BIOLOGIC_NDC_MAPPINGS)

    def add(self, mapping: NdcMapping) -> None:
        code = normalize_ndc(mapping.ndc_code)
        mapping = mapping.model_copy(update={"ndc_code": code})
        self._by_ndc[code] = mapping
        self._by_name.setdefault(mapping.drug_name.lower(), mapping)
        self._by_name.setdefault(mapping.generic_name.lower(), mapping)

    def __len__(self) -> int:
        return len(self._by_ndc)

    def lookup(self, ndc: str | None) -> NdcMapping | None:
        if not ndc:
            return None
        try:
            return self._by_ndc.get(normalize_ndc(ndc))
        except ValueError:
            return None

    def drug_name(self, ndc: str | None) -> str | None:
        mapping = self.lookup(ndc)
        return mapping.drug_name if mapping else None

    def by_name(self, name: str | None) -> NdcMapping | None:
        if not name:
            return None
        return self._by_name.get(name.strip().lower())

    def to_generic(self, drug_name: str) -> str:
        """Brand or generic name to generic name; unknown names pass through."""
        mapping = self.by_name(drug_name)
        return mapping.generic_name if mapping else drug_name

    def drug_class(self, drug_name: str | None) -> str | None:
        mapping = self.by_name(drug_name)
        return mapping.drug_class if mapping else None

    def is_biologic(self, drug_name: str | None) -> bool:
        return self.by_name(drug_name) is not None
