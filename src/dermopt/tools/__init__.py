"""Retrieval tools used by the decision engine."""

from dermopt.tools.evidence import Evidence, EvidenceRetriever

__all__ = ["Evidence", "EvidenceRetriever"]
