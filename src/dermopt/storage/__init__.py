"""SQLite persistence for patients, formularies, evidence and assessments."""

from dermopt.storage.database import Database
from dermopt.storage.knowledge import KnowledgeBase
from dermopt.storage.repository import AssessmentRepository

__all__ = ["AssessmentRepository", "Database", "KnowledgeBase"]
