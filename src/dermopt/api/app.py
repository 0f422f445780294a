"""HTTP API for assessments, uploads and admin data."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dermopt import __version__
from dermopt.config.settings import Settings
from dermopt.core.errors import MissingInputError, PatientNotFoundError
from dermopt.core.llm import LLMClient
from dermopt.core.models import AssessmentInput, CurrentBiologicInput
from dermopt.core.types import ContraindicationType, DiagnosisType, UploadType
from dermopt.orchestrator import (
    AdminService,
    DecisionEngine,
    InvalidResourceError,
    UploadService,
    parse_resource_type,
)
from dermopt.storage import AssessmentRepository, Database, KnowledgeBase


logger = logging.getLogger(__name__)

_AUTO: Any = object()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CurrentBiologicBody(CamelModel):
    drug_name: str
    dose: str | None = None
    frequency: str | None = None


class AssessmentRequest(CamelModel):
    """JSON body of ``POST /api/assessments``."""

    patient_id: str
    diagnosis: DiagnosisType
    has_psoriatic_arthritis: bool = False
    dlqi_score: int = Field(ge=0, le=30)
    months_stable: int = Field(ge=0)
    additional_notes: str | None = None
    current_biologic: CurrentBiologicBody | None = None
    contraindications: list[ContraindicationType] = Field(default_factory=list)

    def to_input(self) -> AssessmentInput:
        biologic = self.current_biologic
        return AssessmentInput(
            patient_id=self.patient_id,
            diagnosis=self.diagnosis,
            has_psoriatic_arthritis=self.has_psoriatic_arthritis,
            dlqi_score=self.dlqi_score,
            months_stable=self.months_stable,
            additional_notes=self.additional_notes,
            current_biologic=CurrentBiologicInput(**biologic.model_dump()) if biologic else None,
            contraindications=self.contraindications,
        )


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def create_app(settings: Settings | None = None, llm: LLMClient | None = _AUTO, mock: bool = False) -> FastAPI:
    """Build the API with its stores and services.

    ``llm`` defaults to the client configured in ``settings``; pass None to
    force rule-based recommendations.
    """
    if settings is None:
        settings = Settings()
    if llm is _AUTO:
        llm = LLMClient.create(settings, mock=mock)

    db = Database(settings.database.path)
    knowledge = KnowledgeBase(settings.database.path)
    repository = AssessmentRepository(settings.database.path)
    engine = DecisionEngine(db, knowledge, repository, settings, llm=llm)
    uploads = UploadService(db, knowledge)
    admin = AdminService(db, knowledge)

    app = FastAPI(title="dermopt", version=__version__)
    app.state.settings = settings
    app.state.db = db
    app.state.engine = engine

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        return _error(400, f"Invalid request: {field} {first.get('msg', '')}".strip())

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "version": __version__, "llm": llm is not None}

    @app.post("/api/assessments")
    async def create_assessment(body: AssessmentRequest) -> Any:
        try:
            assessment = await engine.create_assessment(body.to_input())
        except PatientNotFoundError as e:
            return _error(404, str(e))
        except MissingInputError as e:
            return _error(400, str(e))
        except Exception as e:
            logger.exception("Assessment failed")
            return _error(500, str(e) or "Failed to create assessment")
        return {"success": True, "assessmentId": assessment.id}

    @app.get("/api/assessments/{assessment_id}")
    def get_assessment(assessment_id: str) -> Any:
        assessment = repository.get(assessment_id)
        if assessment is None:
            return _error(404, "Assessment not found")
        return assessment.model_dump(mode="json")

    @app.get("/api/patients/{patient_id}/assessments")
    def patient_assessments(patient_id: str) -> Any:
        patient = db.get_patient(patient_id) or db.get_patient_by_external_id(patient_id)
        if patient is None:
            return _error(404, "Patient not found")
        return [a.model_dump(mode="json") for a in repository.list_for_patient(patient.id)]

    @app.get("/api/admin/data")
    def list_data(type: str | None = None) -> Any:  # noqa: A002
        try:
            resource = parse_resource_type(type)
            return admin.list(resource)
        except InvalidResourceError as e:
            return _error(400, str(e))
        except Exception as e:
            logger.exception("Listing %s failed", type)
            return _error(500, str(e))

    @app.delete("/api/admin/data")
    def delete_data(type: str | None = None, id: str | None = None) -> Any:  # noqa: A002
        if not id:
            return _error(400, "ID required")
        try:
            resource = parse_resource_type(type)
            deleted = admin.delete(resource, id)
        except InvalidResourceError as e:
            return _error(400, str(e))
        except Exception as e:
            logger.exception("Deleting %s %s failed", type, id)
            return _error(500, str(e))
        if not deleted:
            return _error(404, "Not found")
        return {"success": True}

    @app.post("/api/uploads/{upload_type}")
    async def upload(
        upload_type: str,
        file: UploadFile = File(...),
        planName: str | None = Form(None),  # noqa: N803
    ) -> Any:
        try:
            kind = UploadType(upload_type.lower())
        except ValueError:
            return _error(400, f"Invalid upload type: {upload_type}")
        content = await file.read()
        try:
            summary = await asyncio.to_thread(
                uploads.upload, kind, content, file.filename or f"{kind.value}.csv", plan_name=planName
            )
        except Exception as e:
            logger.exception("Upload of %s failed", file.filename)
            return _error(500, str(e))
        return summary.model_dump(mode="json")

    return app
