"""
Tests for NDC normalization and the drug identity lookup.
"""

import pytest

from dermopt.core.models import NdcMapping
from dermopt.data.ndc_mappings import BIOLOGIC_NDC_MAPPINGS
from dermopt.parsers.ndc import NdcLookup, normalize_ndc


class TestNormalizeNdc:
    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("0074-0554-02", "00074055402"),  # 4-4-2
            ("57894-060-03", "57894006003"),  # 5-3-2
            ("57894-0060-3", "57894006003"),  # 5-4-1
            ("57894-0060-03", "57894006003"),  # already 5-4-2
            ("00074055402", "00074055402"),
            (" 00074055402 ", "00074055402"),
        ],
    )
    def test_canonical_form(self, code, expected):
        assert normalize_ndc(code) == expected

    @pytest.mark.parametrize("code", ["12345", "0074-0554", "00074-00554-02", "abcd-efgh-ij", ""])
    def test_invalid(self, code):
        with pytest.raises(ValueError, match="Invalid NDC"):
            normalize_ndc(code)


class TestNdcLookup:
    """Lookup built from explicit mappings."""

    @pytest.fixture
    def lookup(self):
        return NdcLookup.from_mappings([
            NdcMapping(ndc_code="0074-0554-02", drug_name="Humira", generic_name="adalimumab",
                       drug_class="TNF_INHIBITOR"),
            NdcMapping(ndc_code="0078-0639-41", drug_name="Cosentyx", generic_name="secukinumab",
                       drug_class="IL17_INHIBITOR"),
        ])

    def test_lookup_by_any_ndc_form(self, lookup):
        assert lookup.drug_name("00074055402") == "Humira"
        assert lookup.drug_name("0074-0554-02") == "Humira"
        assert lookup.lookup("00074055402").ndc_code == "00074055402"

    def test_unknown_or_invalid_ndc(self, lookup):
        assert lookup.lookup("99999-9999-99") is None
        assert lookup.lookup("not an ndc") is None
        assert lookup.lookup(None) is None

    def test_to_generic(self, lookup):
        assert lookup.to_generic("Humira") == "adalimumab"
        assert lookup.to_generic("HUMIRA ") == "adalimumab"
        assert lookup.to_generic("adalimumab") == "adalimumab"
        assert lookup.to_generic("Otezla") == "Otezla"

    def test_biologic_and_class(self, lookup):
        assert lookup.is_biologic("cosentyx")
        assert lookup.drug_class("secukinumab") == "IL17_INHIBITOR"
        assert not lookup.is_biologic("methotrexate")
        assert lookup.drug_class(None) is None

    def test_len(self, lookup):
        assert len(lookup) == 2


class TestSeedTable:
    def test_codes_are_valid_and_unique(self):
        codes = [normalize_ndc(m.ndc_code) for m in BIOLOGIC_NDC_MAPPINGS]
        assert len(codes) == len(set(codes))

    def test_from_seed(self):
        lookup = NdcLookup.from_seed()
        assert len(lookup) == len(BIOLOGIC_NDC_MAPPINGS)
        assert lookup.to_generic("Stelara") == "ustekinumab"
        assert lookup.to_generic("Dupixent") == "dupilumab"
