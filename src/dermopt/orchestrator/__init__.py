"""Decision engine, upload handling and admin operations."""

from dermopt.orchestrator.admin import AdminService, InvalidResourceError, parse_resource_type
from dermopt.orchestrator.engine import DecisionEngine
from dermopt.orchestrator.uploads import UploadService, seed_ndc_mappings

__all__ = [
    "AdminService",
    "DecisionEngine",
    "InvalidResourceError",
    "UploadService",
    "parse_resource_type",
    "seed_ndc_mappings",
]
