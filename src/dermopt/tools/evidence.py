"""Evidence retrieval from the knowledge document store."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from dermopt.config.settings import RetrievalSettings
from dermopt.core.models import EvidenceSnippet  # noqa: TC001 - Pydantic needs at runtime


if TYPE_CHECKING:
    from dermopt.core.models import TriageResult
    from dermopt.core.types import DiagnosisType
    from dermopt.storage.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)


class Evidence(BaseModel):
    """Retrieved snippets in query order."""

    snippets: list[EvidenceSnippet] = Field(default_factory=list)
    snippet_chars: int = 500

    @property
    def passages(self) -> list[str]:
        return [s.format(self.snippet_chars) for s in self.snippets]

    def titles(self, limit: int) -> list[str]:
        return [s.title for s in self.snippets[:limit]]


class EvidenceRetriever:
    """Builds search queries from a triage result and runs them concurrently."""

    def __init__(self, knowledge: KnowledgeBase, settings: RetrievalSettings | None = None) -> None:
        self.knowledge = knowledge
        self.settings = settings or RetrievalSettings()

    @staticmethod
    def build_queries(drug_name: str, diagnosis: DiagnosisType, triage: TriageResult) -> list[str]:
        dx = diagnosis.value
        queries: list[str] = []
        if triage.can_dose_reduce:
            queries.append(f"{drug_name} dose reduction interval extension {dx} stable patients")
            queries.append(f"{drug_name} extended dosing efficacy {dx}")
        if triage.should_switch:
            queries.append(f"biosimilar switching {drug_name} {dx}")
            queries.append(f"formulary optimization biologics {dx}")
        return queries

    async def retrieve(self, queries: list[str]) -> Evidence:
        """Run every query and wait for all of them.

        Results are concatenated in the order of ``queries`` regardless of
        completion order.
        """
        if not queries:
            return Evidence(snippet_chars=self.settings.snippet_chars)
        results = await asyncio.gather(*(
            asyncio.to_thread(self.knowledge.search, q, self.settings.results_per_query)
            for q in queries
        ))
        snippets = [s for hits in results for s in hits]
        logger.debug("Retrieved %d evidence snippets for %d queries", len(snippets), len(queries))
        return Evidence(snippets=snippets, snippet_chars=self.settings.snippet_chars)

    async def for_triage(self, drug_name: str, diagnosis: DiagnosisType, triage: TriageResult) -> Evidence:
        return await self.retrieve(self.build_queries(drug_name, diagnosis, triage))
