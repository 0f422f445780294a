"""Assessment and recommendation persistence."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from dermopt.storage.base import SQLiteStore
from dermopt.storage.converters import row_to_assessment, row_to_recommendation


if TYPE_CHECKING:
    import sqlite3

    from dermopt.core.models import Assessment, Recommendation

logger = logging.getLogger(__name__)


class AssessmentRepository(SQLiteStore):
    """Append-only store of assessments and their ranked recommendations."""

    def save(self, assessment: Assessment, recommendations: list[Recommendation]) -> Assessment:
        """Write the assessment and all of its recommendations in one transaction.

        Nothing is stored if any insert fails.
        """
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO assessments
                (id, patient_id, diagnosis, has_psoriatic_arthritis, dlqi_score,
                 months_stable, additional_notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (assessment.id, assessment.patient_id, assessment.diagnosis.value,
                 int(assessment.has_psoriatic_arthritis), assessment.dlqi_score,
                 assessment.months_stable, assessment.additional_notes,
                 assessment.created_at.isoformat()),
            )
            for rec in recommendations:
                rec.assessment_id = assessment.id
                self._insert_recommendation(conn, rec)
        logger.info("Saved assessment %s with %d recommendations", assessment.id, len(recommendations))
        return assessment.model_copy(update={"recommendations": list(recommendations)})

    @staticmethod
    def _insert_recommendation(conn: sqlite3.Connection, rec: Recommendation) -> None:
        c = rec.costs
        conn.execute(
            """INSERT INTO recommendations
            (id, assessment_id, patient_id, rank, type, drug_name, new_dose, new_frequency,
             current_annual_cost, recommended_annual_cost, annual_savings, savings_percent,
             current_monthly_oop, recommended_monthly_oop, rationale, evidence_sources,
             monitoring_plan, tier, requires_pa, contraindicated, contraindication_reason,
             is_stable, is_formulary_optimal, quadrant, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (rec.id, rec.assessment_id, rec.patient_id, rec.rank, rec.type.value, rec.drug_name,
             rec.new_dose, rec.new_frequency, c.current_annual_cost, c.recommended_annual_cost,
             c.annual_savings, c.savings_percent, c.current_monthly_oop, c.recommended_monthly_oop,
             rec.rationale, json.dumps(rec.evidence_sources), rec.monitoring_plan, rec.tier,
             None if rec.requires_pa is None else int(rec.requires_pa), int(rec.contraindicated),
             rec.contraindication_reason, int(rec.is_stable), int(rec.is_formulary_optimal),
             rec.quadrant.value if rec.quadrant else None, rec.created_at.isoformat()),
        )

    def get(self, assessment_id: str) -> Assessment | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM assessments WHERE id = ?", (assessment_id,)).fetchone()
            if row is None:
                return None
            recs = conn.execute(
                "SELECT * FROM recommendations WHERE assessment_id = ? ORDER BY rank",
                (assessment_id,),
            ).fetchall()
        return row_to_assessment(row, [row_to_recommendation(r) for r in recs])

    def list_for_patient(self, patient_id: str) -> list[Assessment]:
        """Newest first, each with its recommendations."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id FROM assessments WHERE patient_id = ? ORDER BY created_at DESC",
                (patient_id,),
            ).fetchall()
        return [a for a in (self.get(r["id"]) for r in rows) if a is not None]
