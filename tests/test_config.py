"""
Tests for settings overrides and LLM client selection.
"""

from dermopt.config.settings import LLMProviderEnum, Settings
from dermopt.core.llm import LLMClient
from dermopt.core.mock_llm import MockLLMClient
from dermopt.core.providers.anthropic import AnthropicClient
from dermopt.core.providers.openai import OpenAIClient


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.triage.max_dlqi_for_reduction == 5
        assert settings.triage.min_months_stable == 6
        assert settings.costs.dose_reduction_factor == 0.25
        assert not settings.llm.enabled

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        monkeypatch.setenv("DERMOPT_DB_PATH", "/tmp/other.db")
        monkeypatch.setenv("TRIAGE_MAX_DLQI", "3")
        monkeypatch.setenv("DERMOPT_PORT", "9000")
        settings = Settings()
        assert settings.llm.provider == LLMProviderEnum.ANTHROPIC
        assert settings.llm.enabled
        assert settings.database.path == "/tmp/other.db"
        assert settings.triage.max_dlqi_for_reduction == 3
        assert settings.api.port == 9000


class TestLLMClientFactory:
    def test_no_key_selects_rule_path(self):
        assert LLMClient.create(Settings()) is None

    def test_mock(self):
        assert isinstance(LLMClient.create(Settings(), mock=True), MockLLMClient)

    def test_openai(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert isinstance(LLMClient.create(Settings()), OpenAIClient)

    def test_anthropic_needs_its_own_key(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert LLMClient.create(Settings()) is None
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        assert isinstance(LLMClient.create(Settings()), AnthropicClient)
