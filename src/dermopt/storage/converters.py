"""Converters for database rows to model objects."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime
from typing import Any

from dermopt.core.models import (
    Assessment,
    Contraindication,
    CostProjection,
    CurrentBiologic,
    FormularyDrug,
    InsurancePlan,
    KnowledgeDocument,
    NdcMapping,
    Patient,
    PharmacyClaim,
    Recommendation,
)
from dermopt.core.types import (
    ContraindicationType,
    CostDesignation,
    DiagnosisType,
    Quadrant,
    RecommendationType,
)


def _date(value: Any) -> date | None:
    return date.fromisoformat(value) if value else None


def _datetime(value: Any) -> datetime:
    return datetime.fromisoformat(value) if value else datetime.now()


def row_to_plan(row: sqlite3.Row) -> InsurancePlan:
    return InsurancePlan(id=row["id"], name=row["name"], external_id=row["external_id"])


def row_to_patient(row: sqlite3.Row) -> Patient:
    return Patient(
        id=row["id"],
        external_id=row["external_id"],
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        date_of_birth=_date(row["date_of_birth"]),
        gender=row["gender"],
        cost_designation=CostDesignation(row["cost_designation"]),
        benchmark_cost=row["benchmark_cost"],
        plan_id=row["plan_id"],
        employer=row["employer"],
    )


def row_to_current_biologic(row: sqlite3.Row) -> CurrentBiologic:
    return CurrentBiologic(
        patient_id=row["patient_id"],
        drug_name=row["drug_name"],
        dose=row["dose"],
        frequency=row["frequency"],
        start_date=_date(row["start_date"]),
    )


def row_to_contraindication(row: sqlite3.Row) -> Contraindication:
    return Contraindication(
        patient_id=row["patient_id"], type=ContraindicationType(row["type"]), notes=row["notes"]
    )


def row_to_claim(row: sqlite3.Row) -> PharmacyClaim:
    return PharmacyClaim(
        id=row["id"],
        patient_id=row["patient_id"],
        fill_date=date.fromisoformat(row["fill_date"]),
        drug_name=row["drug_name"],
        ndc_code=row["ndc_code"],
        days_supply=row["days_supply"],
        quantity=row["quantity"],
        out_of_pocket=row["out_of_pocket"],
        plan_paid=row["plan_paid"],
        true_drug_cost=row["true_drug_cost"],
        diagnosis_code=row["diagnosis_code"],
    )


def row_to_formulary_drug(row: sqlite3.Row) -> FormularyDrug:
    return FormularyDrug(
        id=row["id"],
        plan_id=row["plan_id"],
        drug_name=row["drug_name"],
        generic_name=row["generic_name"] or "",
        drug_class=row["drug_class"],
        formulation=row["formulation"],
        strength=row["strength"],
        tier=row["tier"],
        requires_pa=bool(row["requires_pa"]),
        step_therapy_required=bool(row["step_therapy_required"]),
        restrictions=row["restrictions"],
        quantity_limit=row["quantity_limit"],
        biosimilar_of=row["biosimilar_of"],
        fda_indications=json.loads(row["fda_indications"] or "[]"),
        ndc_code=row["ndc_code"],
        annual_cost=row["annual_cost"],
        member_copay=row["member_copay"],
    )


def row_to_ndc_mapping(row: sqlite3.Row) -> NdcMapping:
    return NdcMapping(
        ndc_code=row["ndc_code"],
        drug_name=row["drug_name"],
        generic_name=row["generic_name"],
        drug_class=row["drug_class"],
        strength=row["strength"],
        dosage_form=row["dosage_form"],
    )


def row_to_knowledge_document(row: sqlite3.Row) -> KnowledgeDocument:
    return KnowledgeDocument(
        id=row["id"],
        title=row["title"],
        category=row["category"] or "guideline",
        content=row["content"],
        source_file=row["source_file"],
        created_at=_datetime(row["created_at"]),
    )


def row_to_assessment(row: sqlite3.Row, recommendations: list[Recommendation]) -> Assessment:
    return Assessment(
        id=row["id"],
        patient_id=row["patient_id"],
        diagnosis=DiagnosisType(row["diagnosis"]),
        has_psoriatic_arthritis=bool(row["has_psoriatic_arthritis"]),
        dlqi_score=row["dlqi_score"],
        months_stable=row["months_stable"],
        additional_notes=row["additional_notes"],
        created_at=_datetime(row["created_at"]),
        recommendations=recommendations,
    )


def row_to_recommendation(row: sqlite3.Row) -> Recommendation:
    return Recommendation(
        id=row["id"],
        assessment_id=row["assessment_id"],
        patient_id=row["patient_id"],
        rank=row["rank"],
        type=RecommendationType(row["type"]),
        drug_name=row["drug_name"],
        new_dose=row["new_dose"],
        new_frequency=row["new_frequency"],
        costs=CostProjection(
            current_annual_cost=row["current_annual_cost"],
            recommended_annual_cost=row["recommended_annual_cost"],
            annual_savings=row["annual_savings"],
            savings_percent=row["savings_percent"],
            current_monthly_oop=row["current_monthly_oop"],
            recommended_monthly_oop=row["recommended_monthly_oop"],
        ),
        rationale=row["rationale"] or "",
        evidence_sources=json.loads(row["evidence_sources"] or "[]"),
        monitoring_plan=row["monitoring_plan"],
        tier=row["tier"],
        requires_pa=None if row["requires_pa"] is None else bool(row["requires_pa"]),
        contraindicated=bool(row["contraindicated"]),
        contraindication_reason=row["contraindication_reason"],
        is_stable=bool(row["is_stable"]),
        is_formulary_optimal=bool(row["is_formulary_optimal"]),
        quadrant=Quadrant(row["quadrant"]) if row["quadrant"] else None,
        created_at=_datetime(row["created_at"]),
    )
