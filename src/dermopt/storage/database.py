"""SQLite store for plans, patients, claims, formularies and reference data."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from dermopt.core.models import InsurancePlan, Patient
from dermopt.parsers.linker import external_key
from dermopt.parsers.ndc import NdcLookup, normalize_ndc
from dermopt.storage.base import SQLiteStore
from dermopt.storage.converters import (
    row_to_claim,
    row_to_contraindication,
    row_to_current_biologic,
    row_to_formulary_drug,
    row_to_ndc_mapping,
    row_to_patient,
    row_to_plan,
)


if TYPE_CHECKING:
    from collections.abc import Iterable

    from dermopt.core.models import (
        Contraindication,
        CurrentBiologic,
        FormularyDrug,
        NdcMapping,
        PharmacyClaim,
        UploadLog,
    )

logger = logging.getLogger(__name__)

# SQLite's default limit on bound parameters is 999.
_IN_CHUNK = 500

ADMIN_CLAIMS_LIMIT = 500

_STATS_TABLES = (
    "plans",
    "patients",
    "pharmacy_claims",
    "formulary_drugs",
    "ndc_mappings",
    "knowledge_documents",
    "assessments",
    "recommendations",
    "upload_logs",
)


class Database(SQLiteStore):
    """Relational store for everything except evidence and assessments."""

    # Plans

    def get_or_create_plan(self, name: str, external_id: str | None = None) -> InsurancePlan:
        name = name.strip()
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM plans WHERE name = ?", (name,)).fetchone()
            if row:
                return row_to_plan(row)
            plan = InsurancePlan(name=name, external_id=external_id)
            conn.execute(
                "INSERT INTO plans (id, name, external_id) VALUES (?, ?, ?)",
                (plan.id, plan.name, plan.external_id),
            )
        logger.info("Created plan %s", name)
        return plan

    def get_plan(self, plan_id: str) -> InsurancePlan | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM plans WHERE id = ?", (plan_id,)).fetchone()
        return row_to_plan(row) if row else None

    # Patients

    def upsert_patients(self, patients: Iterable[Patient]) -> tuple[int, int]:
        """Insert or update patients by external id.

        Existing patients keep their internal id. Returns (created, updated).
        """
        created = updated = 0
        with self._connection() as conn:
            for patient in patients:
                key = external_key(patient.external_id)
                existing = conn.execute(
                    "SELECT id FROM patients WHERE external_id = ?", (key,)
                ).fetchone()
                if existing:
                    updated += 1
                else:
                    created += 1
                conn.execute(
                    """INSERT INTO patients
                    (id, external_id, first_name, last_name, date_of_birth, gender,
                     cost_designation, benchmark_cost, plan_id, employer)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(external_id) DO UPDATE SET
                        first_name = excluded.first_name,
                        last_name = excluded.last_name,
                        date_of_birth = excluded.date_of_birth,
                        gender = excluded.gender,
                        cost_designation = excluded.cost_designation,
                        benchmark_cost = excluded.benchmark_cost,
                        plan_id = COALESCE(excluded.plan_id, patients.plan_id),
                        employer = excluded.employer,
                        updated_at = CURRENT_TIMESTAMP""",
                    (patient.id, key, patient.first_name, patient.last_name,
                     patient.date_of_birth.isoformat() if patient.date_of_birth else None,
                     patient.gender, patient.cost_designation.value, patient.benchmark_cost,
                     patient.plan_id, patient.employer),
                )
        return created, updated

    def get_patient(self, patient_id: str) -> Patient | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
        return row_to_patient(row) if row else None

    def get_patient_by_external_id(self, external_id: str) -> Patient | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM patients WHERE external_id = ?", (external_key(external_id),)
            ).fetchone()
        return row_to_patient(row) if row else None

    def patients_by_external_id(self, external_ids: Iterable[str]) -> dict[str, Patient]:
        """Batch lookup keyed by normalized external id."""
        keys = sorted({external_key(e) for e in external_ids if e})
        found: dict[str, Patient] = {}
        with self._connection() as conn:
            for start in range(0, len(keys), _IN_CHUNK):
                chunk = keys[start:start + _IN_CHUNK]
                ph = ",".join("?" * len(chunk))
                rows = conn.execute(
                    f"SELECT * FROM patients WHERE external_id IN ({ph})", chunk
                ).fetchall()
                for row in rows:
                    patient = row_to_patient(row)
                    found[patient.external_id] = patient
        return found

    def set_current_biologic(self, biologic: CurrentBiologic) -> None:
        with self._connection() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO current_biologics
                (patient_id, drug_name, dose, frequency, start_date, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (biologic.patient_id, biologic.drug_name, biologic.dose, biologic.frequency,
                 biologic.start_date.isoformat() if biologic.start_date else None,
                 datetime.now().isoformat()),
            )

    def get_current_biologic(self, patient_id: str) -> CurrentBiologic | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM current_biologics WHERE patient_id = ?", (patient_id,)
            ).fetchone()
        return row_to_current_biologic(row) if row else None

    def add_contraindications(self, contraindications: Iterable[Contraindication]) -> None:
        with self._connection() as conn:
            for c in contraindications:
                conn.execute(
                    "INSERT OR REPLACE INTO contraindications (patient_id, type, notes) VALUES (?, ?, ?)",
                    (c.patient_id, c.type.value, c.notes),
                )

    def get_contraindications(self, patient_id: str) -> list[Contraindication]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM contraindications WHERE patient_id = ? ORDER BY type", (patient_id,)
            ).fetchall()
        return [row_to_contraindication(r) for r in rows]

    # Claims

    def add_claims(self, claims: Iterable[PharmacyClaim]) -> int:
        count = 0
        with self._connection() as conn:
            for claim in claims:
                conn.execute(
                    """INSERT INTO pharmacy_claims
                    (id, patient_id, fill_date, drug_name, ndc_code, days_supply, quantity,
                     out_of_pocket, plan_paid, true_drug_cost, diagnosis_code)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (claim.id, claim.patient_id, claim.fill_date.isoformat(), claim.drug_name,
                     claim.ndc_code, claim.days_supply, claim.quantity, claim.out_of_pocket,
                     claim.plan_paid, claim.true_drug_cost, claim.diagnosis_code),
                )
                count += 1
        return count

    def get_claims_for_patient(self, patient_id: str, limit: int = 12) -> list[PharmacyClaim]:
        """Most recent fills first."""
        with self._connection() as conn:
            rows = conn.execute(
                """SELECT * FROM pharmacy_claims WHERE patient_id = ?
                ORDER BY fill_date DESC, created_at DESC LIMIT ?""",
                (patient_id, limit),
            ).fetchall()
        return [row_to_claim(r) for r in rows]

    def list_claims(self, limit: int = ADMIN_CLAIMS_LIMIT) -> list[dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(
                """SELECT c.*, p.external_id AS member_id,
                    p.first_name AS patient_first_name, p.last_name AS patient_last_name
                FROM pharmacy_claims c JOIN patients p ON c.patient_id = p.id
                ORDER BY c.fill_date DESC, c.created_at DESC LIMIT ?""",
                (limit,),
            ).fetchall()
        return [dict(r) for r in rows]

    def delete_claim(self, claim_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM pharmacy_claims WHERE id = ?", (claim_id,))
        return cursor.rowcount > 0

    # Formulary

    def save_formulary(self, drugs: Iterable[FormularyDrug]) -> int:
        """Insert drugs, replacing an existing entry with the same plan and name."""
        count = 0
        with self._connection() as conn:
            for d in drugs:
                conn.execute(
                    """INSERT OR REPLACE INTO formulary_drugs
                    (id, plan_id, drug_name, generic_name, drug_class, formulation, strength,
                     tier, requires_pa, step_therapy_required, restrictions, quantity_limit,
                     biosimilar_of, fda_indications, ndc_code, annual_cost, member_copay)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (d.id, d.plan_id, d.drug_name, d.generic_name, d.drug_class, d.formulation,
                     d.strength, d.tier, int(d.requires_pa), int(d.step_therapy_required),
                     d.restrictions, d.quantity_limit, d.biosimilar_of,
                     json.dumps(d.fda_indications), d.ndc_code, d.annual_cost, d.member_copay),
                )
                count += 1
        return count

    def get_formulary(self, plan_id: str) -> list[FormularyDrug]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM formulary_drugs WHERE plan_id = ? ORDER BY tier, drug_name",
                (plan_id,),
            ).fetchall()
        return [row_to_formulary_drug(r) for r in rows]

    def list_formulary(self) -> list[dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(
                """SELECT f.*, p.name AS plan_name FROM formulary_drugs f
                JOIN plans p ON f.plan_id = p.id
                ORDER BY f.tier, f.drug_name"""
            ).fetchall()
        items = []
        for row in rows:
            item = dict(row)
            item["fda_indications"] = json.loads(item["fda_indications"] or "[]")
            item["requires_pa"] = bool(item["requires_pa"])
            item["step_therapy_required"] = bool(item["step_therapy_required"])
            items.append(item)
        return items

    def delete_formulary_drug(self, drug_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM formulary_drugs WHERE id = ?", (drug_id,))
        return cursor.rowcount > 0

    # NDC mappings

    def upsert_ndc_mappings(self, mappings: Iterable[NdcMapping]) -> tuple[int, int, int]:
        """Insert new NDCs and overwrite changed ones.

        Returns (inserted, updated, skipped); skipped rows already matched.
        """
        inserted = updated = skipped = 0
        with self._connection() as conn:
            stored = {r[0] for r in conn.execute("SELECT ndc_code FROM ndc_mappings")}
            for m in mappings:
                code = normalize_ndc(m.ndc_code)
                cursor = conn.execute(
                    """INSERT INTO ndc_mappings
                    (ndc_code, drug_name, generic_name, drug_class, strength, dosage_form)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(ndc_code) DO UPDATE SET
                        drug_name = excluded.drug_name,
                        generic_name = excluded.generic_name,
                        drug_class = excluded.drug_class,
                        strength = excluded.strength,
                        dosage_form = excluded.dosage_form
                    WHERE drug_name IS NOT excluded.drug_name
                        OR generic_name IS NOT excluded.generic_name
                        OR drug_class IS NOT excluded.drug_class
                        OR strength IS NOT excluded.strength
                        OR dosage_form IS NOT excluded.dosage_form""",
                    (code, m.drug_name, m.generic_name, m.drug_class, m.strength, m.dosage_form),
                )
                if code not in stored:
                    inserted += 1
                    stored.add(code)
                elif cursor.rowcount:
                    updated += 1
                else:
                    skipped += 1
        return inserted, updated, skipped

    def list_ndc_mappings(self) -> list[NdcMapping]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM ndc_mappings ORDER BY drug_name, ndc_code").fetchall()
        return [row_to_ndc_mapping(r) for r in rows]

    def load_ndc_lookup(self) -> NdcLookup:
        """Stored mappings, or the built-in seed table when none are stored."""
        mappings = self.list_ndc_mappings()
        if not mappings:
            logger.debug("No NDC mappings stored; using the built-in seed table")
            return NdcLookup.from_seed()
        return NdcLookup.from_mappings(mappings)

    # Uploads and stats

    def log_upload(self, log: UploadLog) -> None:
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO upload_logs
                (id, upload_type, file_name, uploaded_at, rows_processed, rows_failed)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (log.id, log.upload_type.value, log.file_name, log.uploaded_at.isoformat(),
                 log.rows_processed, log.rows_failed),
            )

    def list_uploads(self) -> list[dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM upload_logs ORDER BY uploaded_at DESC").fetchall()
        return [dict(r) for r in rows]

    def get_stats(self) -> dict[str, int]:
        with self._connection() as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]  # noqa: S608
                for table in _STATS_TABLES
            }
