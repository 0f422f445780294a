"""Agents module - LLM decision steps."""

from __future__ import annotations

from dermopt.agents.recommender import RecommendationRequest, RecommenderAgent
from dermopt.agents.triage import TriageAgent


__all__ = [
    "RecommendationRequest",
    "RecommenderAgent",
    "TriageAgent",
]
