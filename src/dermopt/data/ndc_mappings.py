"""Seed table of dermatology biologic NDC codes."""

from __future__ import annotations

from dermopt.core.models import NdcMapping


def _m(ndc: str, brand: str, generic: str, drug_class: str, strength: str, form: str) -> NdcMapping:
    return NdcMapping(
        ndc_code=ndc,
        drug_name=brand,
        generic_name=generic,
        drug_class=drug_class,
        strength=strength,
        dosage_form=form,
    )


BIOLOGIC_NDC_MAPPINGS: list[NdcMapping] = [
    # TNF inhibitors
    _m("0074-0554-02", "Humira", "adalimumab", "TNF_INHIBITOR", "40 mg/0.4 mL", "pen injector"),
    _m("0074-0243-02", "Humira", "adalimumab", "TNF_INHIBITOR", "40 mg/0.4 mL", "prefilled syringe"),
    _m("55513-0400-01", "Amjevita", "adalimumab-atto", "TNF_INHIBITOR", "40 mg/0.8 mL", "autoinjector"),
    _m("61314-0454-20", "Hyrimoz", "adalimumab-adaz", "TNF_INHIBITOR", "40 mg/0.4 mL", "pen injector"),
    _m("78206-0112-01", "Hadlima", "adalimumab-bwwd", "TNF_INHIBITOR", "40 mg/0.4 mL", "autoinjector"),
    _m("58406-0445-04", "Enbrel", "etanercept", "TNF_INHIBITOR", "50 mg/mL", "autoinjector"),
    # IL-12/23 inhibitors
    _m("57894-0060-03", "Stelara", "ustekinumab", "IL12_23_INHIBITOR", "45 mg/0.5 mL", "prefilled syringe"),
    _m("57894-0061-03", "Stelara", "ustekinumab", "IL12_23_INHIBITOR", "90 mg/mL", "prefilled syringe"),
    _m("55513-0215-01", "Wezlana", "ustekinumab-auub", "IL12_23_INHIBITOR", "45 mg/0.5 mL", "prefilled syringe"),
    # IL-23 inhibitors
    _m("0074-2100-01", "Skyrizi", "risankizumab", "IL23_INHIBITOR", "150 mg/mL", "pen injector"),
    _m("57894-0640-01", "Tremfya", "guselkumab", "IL23_INHIBITOR", "100 mg/mL", "prefilled syringe"),
    # IL-17 inhibitors
    _m("0078-0639-41", "Cosentyx", "secukinumab", "IL17_INHIBITOR", "150 mg/mL", "sensoready pen"),
    _m("0002-1445-11", "Taltz", "ixekizumab", "IL17_INHIBITOR", "80 mg/mL", "autoinjector"),
    _m("50474-0780-79", "Bimzelx", "bimekizumab", "IL17_INHIBITOR", "160 mg/mL", "autoinjector"),
    # IL-4/13 and IL-13 inhibitors
    _m("0024-5915-02", "Dupixent", "dupilumab", "IL4_13_INHIBITOR", "300 mg/2 mL", "pen injector"),
    _m("50222-0346-04", "Adbry", "tralokinumab", "IL13_INHIBITOR", "150 mg/mL", "prefilled syringe"),
]
