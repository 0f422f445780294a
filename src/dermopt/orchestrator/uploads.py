"""File uploads: parse, persist and log formulary, claims, eligibility and knowledge files."""

from __future__ import annotations

import logging
import re
from pathlib import PurePath
from typing import TYPE_CHECKING, Any

from dermopt.core.errors import CsvReadError
from dermopt.core.models import KnowledgeDocument, Patient, RowError, UploadLog, UploadSummary
from dermopt.core.types import UploadType
from dermopt.data.ndc_mappings import BIOLOGIC_NDC_MAPPINGS
from dermopt.parsers.claims import parse_claims_rows
from dermopt.parsers.columns import read_csv_rows
from dermopt.parsers.eligibility import parse_eligibility_rows
from dermopt.parsers.formulary import parse_formulary_rows
from dermopt.parsers.linker import link_claims


if TYPE_CHECKING:
    from dermopt.core.models import ParseResult
    from dermopt.storage import Database, KnowledgeBase

logger = logging.getLogger(__name__)

DEFAULT_PLAN_NAME = "Default Plan"

_HEADING = re.compile(r"^\s*#+\s*(.+?)\s*$", re.MULTILINE)


def seed_ndc_mappings(db: Database) -> tuple[int, int, int]:
    """Store the built-in biologic NDC table. Returns (inserted, updated, skipped)."""
    counts = db.upsert_ndc_mappings(BIOLOGIC_NDC_MAPPINGS)
    logger.info("Seeded NDC mappings: %d inserted, %d updated, %d unchanged", *counts)
    return counts


def _rows_failed(result: ParseResult[Any], total: int) -> int:
    # An aborted batch rejects every input row.
    return total if result.aborted else len(result.errors)


def _document_title(text: str, file_name: str) -> str:
    match = _HEADING.search(text)
    if match:
        return match.group(1)
    return PurePath(file_name).stem.replace("_", " ").replace("-", " ").strip() or file_name


class UploadService:
    """Turns uploaded files into stored records and an upload summary."""

    def __init__(self, db: Database, knowledge: KnowledgeBase) -> None:
        self._db = db
        self._knowledge = knowledge

    def _finish(
        self,
        upload_type: UploadType,
        file_name: str,
        processed: int,
        failed: int,
        errors: list[RowError],
        details: dict[str, Any] | None = None,
    ) -> UploadSummary:
        self._db.log_upload(UploadLog(
            upload_type=upload_type, file_name=file_name, rows_processed=processed, rows_failed=failed
        ))
        logger.info("%s upload %s: %d processed, %d failed", upload_type.value, file_name, processed, failed)
        return UploadSummary(
            upload_type=upload_type,
            file_name=file_name,
            rows_processed=processed,
            rows_failed=failed,
            errors=errors,
            details=details or {},
        )

    def _unreadable(self, upload_type: UploadType, file_name: str, error: CsvReadError) -> UploadSummary:
        logger.warning("%s upload %s unreadable: %s", upload_type.value, file_name, error)
        return self._finish(upload_type, file_name, 0, 0, [RowError(row=0, error=str(error))])

    def upload_formulary(self, content: bytes | str, file_name: str, plan_name: str | None = None) -> UploadSummary:
        try:
            data = read_csv_rows(content)
        except CsvReadError as e:
            return self._unreadable(UploadType.FORMULARY, file_name, e)
        # Plan id is attached once the file is known to be usable
        result = parse_formulary_rows(data, plan_id="")
        if result.aborted:
            return self._finish(UploadType.FORMULARY, file_name, 0, len(data), result.errors)
        plan = self._db.get_or_create_plan(plan_name or DEFAULT_PLAN_NAME)
        saved = self._db.save_formulary(d.model_copy(update={"plan_id": plan.id}) for d in result.rows)
        return self._finish(
            UploadType.FORMULARY, file_name, saved, _rows_failed(result, len(data)), result.errors,
            {"plan_id": plan.id, "plan_name": plan.name},
        )

    def upload_eligibility(
        self, content: bytes | str, file_name: str, plan_name: str | None = None
    ) -> UploadSummary:
        """Create or update patients; ``plan_name`` applies to rows without a plan column value."""
        try:
            data = read_csv_rows(content)
        except CsvReadError as e:
            return self._unreadable(UploadType.ELIGIBILITY, file_name, e)
        result = parse_eligibility_rows(data)

        plan_ids: dict[str, str] = {}
        patients = []
        for row in result.rows:
            name = row.plan_name or plan_name
            plan_id = None
            if name:
                if name not in plan_ids:
                    plan_ids[name] = self._db.get_or_create_plan(name).id
                plan_id = plan_ids[name]
            patients.append(Patient(
                external_id=row.member_id,
                first_name=row.first_name,
                last_name=row.last_name,
                date_of_birth=row.date_of_birth,
                gender=row.gender,
                cost_designation=row.cost_designation,
                benchmark_cost=row.benchmark_cost,
                plan_id=plan_id,
                employer=row.employer,
            ))
        created, updated = self._db.upsert_patients(patients)
        return self._finish(
            UploadType.ELIGIBILITY, file_name, created + updated, _rows_failed(result, len(data)),
            result.errors, {"created": created, "updated": updated, "plans": sorted(plan_ids)},
        )

    def upload_claims(self, content: bytes | str, file_name: str) -> UploadSummary:
        """Parse claims, link them to known patients and store the linked ones."""
        try:
            data = read_csv_rows(content)
        except CsvReadError as e:
            return self._unreadable(UploadType.CLAIMS, file_name, e)
        result = parse_claims_rows(data, self._db.load_ndc_lookup())
        patients = self._db.patients_by_external_id(r.member_id for r in result.rows)
        linked = link_claims(result.rows, patients)
        saved = self._db.add_claims(linked.claims)

        errors = sorted(result.errors + linked.errors, key=lambda e: e.row)
        failed = len(data) if result.aborted else len(errors)
        return self._finish(
            UploadType.CLAIMS, file_name, saved, failed, errors,
            {"patients": len({c.patient_id for c in linked.claims}), "unlinked": len(linked.errors)},
        )

    def upload_knowledge(
        self,
        content: bytes | str,
        file_name: str,
        title: str | None = None,
        category: str = "guideline",
    ) -> UploadSummary:
        """Index a text or markdown document as clinical evidence."""
        text = content.decode("utf-8-sig") if isinstance(content, bytes) else content
        if not text.strip():
            return self._finish(
                UploadType.KNOWLEDGE, file_name, 0, 0, [RowError(row=0, error="No data provided")]
            )
        document = KnowledgeDocument(
            title=title or _document_title(text, file_name),
            category=category,
            content=text.strip(),
            source_file=file_name,
        )
        self._knowledge.add_document(document)
        return self._finish(
            UploadType.KNOWLEDGE, file_name, 1, 0, [], {"document_id": document.id, "title": document.title}
        )

    def upload(self, upload_type: UploadType, content: bytes | str, file_name: str, **options: Any) -> UploadSummary:
        """Dispatch on upload type."""
        if upload_type == UploadType.FORMULARY:
            return self.upload_formulary(content, file_name, options.get("plan_name"))
        if upload_type == UploadType.ELIGIBILITY:
            return self.upload_eligibility(content, file_name, options.get("plan_name"))
        if upload_type == UploadType.CLAIMS:
            return self.upload_claims(content, file_name)
        return self.upload_knowledge(content, file_name, options.get("title"))
