"""Application settings and configuration."""

from __future__ import annotations

import os
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProviderEnum(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class LLMSettings(BaseModel):
    """LLM provider configuration."""

    provider: LLMProviderEnum = LLMProviderEnum.OPENAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    triage_temperature: float = 0.3
    recommendation_temperature: float = 0.4

    @property
    def enabled(self) -> bool:
        """The LLM path is only used when the selected provider has a key."""
        if self.provider == LLMProviderEnum.ANTHROPIC:
            return bool(self.anthropic_api_key)
        return bool(self.openai_api_key)


class DatabaseSettings(BaseModel):
    """SQLite storage configuration."""

    path: str = "dermopt.db"


class TriageSettings(BaseModel):
    """Thresholds for the triage policy."""

    max_dlqi_for_reduction: int = 5
    min_months_stable: int = 6
    preferred_max_tier: int = 2


class CostSettings(BaseModel):
    """Cost estimation configuration."""

    # Conservative placeholder, not derived from the dosing interval.
    dose_reduction_factor: float = 0.25


class RetrievalSettings(BaseModel):
    """Evidence retrieval configuration."""

    results_per_query: int = 3
    snippet_chars: int = 500
    max_evidence_sources: int = 3


class APISettings(BaseModel):
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # LLM Configuration
    llm: LLMSettings = Field(default_factory=LLMSettings)

    # Storage
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    # Decision engine
    triage: TriageSettings = Field(default_factory=TriageSettings)
    costs: CostSettings = Field(default_factory=CostSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)

    # HTTP API
    api: APISettings = Field(default_factory=APISettings)

    # Logging
    log_level: str = "INFO"

    def __init__(self, **data: Any) -> None:
        """Initialize settings with environment variable overrides."""
        super().__init__(**data)
        self._load_env_overrides()

    def _load_env_overrides(self) -> None:
        """Load environment variable overrides for nested settings."""
        # LLM overrides
        if provider := os.getenv("LLM_PROVIDER"):
            self.llm.provider = LLMProviderEnum(provider)
        if key := os.getenv("OPENAI_API_KEY"):
            self.llm.openai_api_key = key
        if model := os.getenv("OPENAI_MODEL"):
            self.llm.openai_model = model
        if key := os.getenv("ANTHROPIC_API_KEY"):
            self.llm.anthropic_api_key = key
        if model := os.getenv("ANTHROPIC_MODEL"):
            self.llm.anthropic_model = model

        # Storage overrides
        if db_path := os.getenv("DERMOPT_DB_PATH"):
            self.database.path = db_path

        # Triage overrides
        if dlqi := os.getenv("TRIAGE_MAX_DLQI"):
            self.triage.max_dlqi_for_reduction = int(dlqi)
        if months := os.getenv("TRIAGE_MIN_MONTHS_STABLE"):
            self.triage.min_months_stable = int(months)

        # API overrides
        if host := os.getenv("DERMOPT_HOST"):
            self.api.host = host
        if port := os.getenv("DERMOPT_PORT"):
            self.api.port = int(port)
