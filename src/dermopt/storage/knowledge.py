"""Clinical evidence document store with full-text search."""

from __future__ import annotations

import logging
import re
from typing import Any

from dermopt.core.models import EvidenceSnippet, KnowledgeDocument
from dermopt.storage.base import SQLiteStore
from dermopt.storage.converters import row_to_knowledge_document


logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[A-Za-z0-9]+")


def to_match_query(text: str) -> str:
    """Turn free text into an FTS5 query matching any of its words.

    Tokens are quoted so FTS operators in user text are taken literally.
    """
    tokens = [t for t in _TOKEN.findall(text) if len(t) > 1]
    return " OR ".join(f'"{t}"' for t in tokens)


class KnowledgeBase(SQLiteStore):
    """Knowledge documents indexed with SQLite FTS5 (bm25 ranking)."""

    def add_document(self, document: KnowledgeDocument) -> str:
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO knowledge_documents (id, title, category, content, source_file, created_at)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (document.id, document.title, document.category, document.content,
                 document.source_file, document.created_at.isoformat()),
            )
        logger.debug("Indexed knowledge document %s", document.title)
        return document.id

    def get_document(self, document_id: str) -> KnowledgeDocument | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM knowledge_documents WHERE id = ?", (document_id,)
            ).fetchone()
        return row_to_knowledge_document(row) if row else None

    def search(self, query: str, limit: int = 3) -> list[EvidenceSnippet]:
        match = to_match_query(query)
        if not match:
            return []
        with self._connection() as conn:
            rows = conn.execute(
                """SELECT d.title, d.content FROM knowledge_fts
                JOIN knowledge_documents d ON d.rowid = knowledge_fts.rowid
                WHERE knowledge_fts MATCH ? ORDER BY rank LIMIT ?""",
                (match, limit),
            ).fetchall()
        return [EvidenceSnippet(title=r["title"], content=r["content"]) for r in rows]

    def list_documents(self) -> list[dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM knowledge_documents ORDER BY created_at DESC"
            ).fetchall()
        return [row_to_knowledge_document(r).model_dump(mode="json") for r in rows]

    def delete_document(self, document_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM knowledge_documents WHERE id = ?", (document_id,))
        return cursor.rowcount > 0

    def count(self) -> int:
        with self._connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM knowledge_documents").fetchone()[0]
