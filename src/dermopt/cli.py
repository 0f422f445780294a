"""Command-line interface for dermopt."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from dermopt.config.settings import Settings
from dermopt.console.logger import AppConsole, configure_logging
from dermopt.core.llm import LLMClient
from dermopt.core.models import AssessmentInput, CurrentBiologicInput
from dermopt.core.types import ContraindicationType, DiagnosisType, UploadType
from dermopt.orchestrator.engine import DecisionEngine
from dermopt.orchestrator.uploads import UploadService, seed_ndc_mappings
from dermopt.storage import AssessmentRepository, Database, KnowledgeBase


console = AppConsole()


def _settings(db_path: str | None) -> Settings:
    settings = Settings()
    if db_path:
        settings.database.path = db_path
    return settings


def upload_file(upload_type: str, file_path: str, plan_name: str | None, db_path: str | None) -> None:
    """Upload a formulary, claims, eligibility or knowledge file."""
    settings = _settings(db_path)
    console.setup_logging(settings.log_level)
    path = Path(file_path)
    if not path.exists():
        console.print_error(f"File not found: {file_path}")
        sys.exit(1)
    db = Database(settings.database.path)
    service = UploadService(db, KnowledgeBase(settings.database.path))
    summary = service.upload(UploadType(upload_type), path.read_bytes(), path.name, plan_name=plan_name)
    console.print_upload_summary(summary)


async def run_assessment(args: argparse.Namespace) -> None:
    """Generate, store and print recommendations for one patient."""
    settings = _settings(args.db)
    console.setup_logging(settings.log_level)
    console.print_header(f"Patient: {args.patient_id}", f"Diagnosis: {args.diagnosis}")
    if args.mock:
        console.print_mock_notice()

    db = Database(settings.database.path)
    engine = DecisionEngine(
        db,
        KnowledgeBase(settings.database.path),
        AssessmentRepository(settings.database.path),
        settings,
        llm=LLMClient.create(settings, mock=args.mock),
    )
    data = AssessmentInput(
        patient_id=args.patient_id,
        diagnosis=DiagnosisType(args.diagnosis),
        has_psoriatic_arthritis=args.psa,
        dlqi_score=args.dlqi,
        months_stable=args.months_stable,
        additional_notes=args.notes,
        current_biologic=(
            CurrentBiologicInput(drug_name=args.drug, dose=args.dose, frequency=args.frequency)
            if args.drug else None
        ),
        contraindications=[ContraindicationType(c) for c in args.contraindication or []],
    )
    assessment = await engine.create_assessment(data)
    console.print_assessment(assessment)


def seed_ndc(db_path: str | None) -> None:
    settings = _settings(db_path)
    console.setup_logging(settings.log_level)
    inserted, updated, skipped = seed_ndc_mappings(Database(settings.database.path))
    console.print_success(f"NDC mappings: {inserted} inserted, {updated} updated, {skipped} unchanged")


def show_stats(db_path: str | None) -> None:
    """Show database statistics."""
    settings = _settings(db_path)
    console.print_db_stats(Database(settings.database.path).get_stats())


def serve(host: str | None, port: int | None, db_path: str | None, mock: bool) -> None:
    import uvicorn

    from dermopt.api import create_app

    settings = _settings(db_path)
    configure_logging(settings.log_level)
    app = create_app(settings, mock=mock)
    uvicorn.run(app, host=host or settings.api.host, port=port or settings.api.port)


def main() -> None:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="dermopt", description="Dermatology biologic cost optimization"
    )
    parser.add_argument("--db", help="SQLite database path (default from settings)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show log output")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    srv = subparsers.add_parser("serve", help="Run the HTTP API")
    srv.add_argument("--host", help="Bind address")
    srv.add_argument("--port", type=int, help="Port")
    srv.add_argument("--mock", action="store_true", help="Use mock LLM for testing")

    up = subparsers.add_parser("upload", help="Upload a data file")
    up.add_argument("type", choices=[t.value for t in UploadType])
    up.add_argument("file", help="Path to the CSV (or text/markdown for knowledge)")
    up.add_argument("--plan", help="Plan name for formulary and eligibility files")

    asm = subparsers.add_parser("assess", help="Assess a patient and print recommendations")
    asm.add_argument("patient_id", help="Member id or internal patient id")
    asm.add_argument("--diagnosis", required=True, choices=[d.value for d in DiagnosisType])
    asm.add_argument("--dlqi", type=int, required=True, help="DLQI score (0-30)")
    asm.add_argument("--months-stable", type=int, required=True)
    asm.add_argument("--psa", action="store_true", help="Patient has psoriatic arthritis")
    asm.add_argument("--notes", help="Additional clinical notes")
    asm.add_argument("--drug", help="Current biologic (default: from stored data or claims)")
    asm.add_argument("--dose", help="Current dose")
    asm.add_argument("--frequency", help="Current dosing frequency, e.g. 'every 2 weeks'")
    asm.add_argument(
        "--contraindication", action="append", choices=[c.value for c in ContraindicationType]
    )
    asm.add_argument("--mock", action="store_true", help="Use mock LLM for testing")

    subparsers.add_parser("seed-ndc", help="Store the built-in biologic NDC table")
    subparsers.add_parser("stats", help="Show database statistics")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    console.verbose = args.verbose

    try:
        if args.command == "serve":
            serve(args.host, args.port, args.db, args.mock)
        elif args.command == "upload":
            upload_file(args.type, args.file, args.plan, args.db)
        elif args.command == "assess":
            asyncio.run(run_assessment(args))
        elif args.command == "seed-ndc":
            seed_ndc(args.db)
        elif args.command == "stats":
            show_stats(args.db)
    except KeyboardInterrupt:
        console.console.print("\n[yellow]Cancelled by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
