"""Admin listing and deletion of stored records by resource type."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dermopt.core.errors import DermoptError
from dermopt.core.types import ResourceType


if TYPE_CHECKING:
    from dermopt.storage import Database, KnowledgeBase

logger = logging.getLogger(__name__)


class InvalidResourceError(DermoptError):
    """Unknown resource type, or an operation the type does not support."""


def parse_resource_type(value: str | None) -> ResourceType:
    try:
        return ResourceType((value or "").strip().lower())
    except ValueError:
        msg = "Invalid type"
        raise InvalidResourceError(msg) from None


class AdminService:
    """Lists and deletes knowledge documents, formulary drugs and claims."""

    def __init__(self, db: Database, knowledge: KnowledgeBase) -> None:
        self._db = db
        self._knowledge = knowledge

    def list(self, resource: ResourceType) -> list[dict[str, Any]]:
        """Claims come newest first (capped), formulary by tier then name, uploads newest first."""
        if resource == ResourceType.KNOWLEDGE:
            return self._knowledge.list_documents()
        if resource == ResourceType.FORMULARY:
            return self._db.list_formulary()
        if resource == ResourceType.CLAIMS:
            return self._db.list_claims()
        return self._db.list_uploads()

    def delete(self, resource: ResourceType, record_id: str) -> bool:
        if resource == ResourceType.KNOWLEDGE:
            deleted = self._knowledge.delete_document(record_id)
        elif resource == ResourceType.FORMULARY:
            deleted = self._db.delete_formulary_drug(record_id)
        elif resource == ResourceType.CLAIMS:
            deleted = self._db.delete_claim(record_id)
        else:
            msg = "Invalid type"
            raise InvalidResourceError(msg)
        logger.info("Delete %s %s: %s", resource.value, record_id, "done" if deleted else "not found")
        return deleted
