"""Tests for LLM factory and auto-detection."""

from unittest.mock import MagicMock, patch

import pytest

from llm import LLMError, create_llm_provider
from llm.factory import _auto_detect_provider

_KEY_VARS = ("OPENAI_API_KEY", "GROQ_API_KEY", "ANTHROPIC_API_KEY")


@pytest.fixture
def no_keys(monkeypatch):
    for var in _KEY_VARS:
        monkeypatch.delenv(var, raising=False)


class TestAutoDetection:
    def test_detects_anthropic_key(self, monkeypatch, no_keys):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert _auto_detect_provider() == "claude"

    def test_detects_openai_key(self, monkeypatch, no_keys):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert _auto_detect_provider() == "openai"

    def test_detects_groq_key(self, monkeypatch, no_keys):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        assert _auto_detect_provider() == "openai"

    def test_prefers_openai_compatible_when_multiple(self, monkeypatch, no_keys):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        assert _auto_detect_provider() == "openai"

    def test_explicit_key_prefix_wins(self, monkeypatch, no_keys):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        assert _auto_detect_provider("sk-ant-explicit") == "claude"
        assert _auto_detect_provider("gsk_explicit") == "openai"

    def test_unknown_explicit_key_defaults_to_openai(self, monkeypatch, no_keys):
        assert _auto_detect_provider("custom-key-123") == "openai"
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert _auto_detect_provider("custom-key-123") == "openai"

    def test_no_keys_raises(self, no_keys):
        with pytest.raises(LLMError, match="No LLM API key found"):
            _auto_detect_provider()


class TestCreateProvider:
    def test_explicit_claude_with_client(self):
        mock_client = MagicMock()
        provider = create_llm_provider(provider="claude", client=mock_client)
        assert provider.provider_name == "claude"
        assert provider.client is mock_client

    def test_explicit_openai_with_client(self):
        mock_client = MagicMock()
        provider = create_llm_provider(provider="openai", client=mock_client)
        assert provider.provider_name == "openai"
        assert provider.client is mock_client

    def test_unknown_provider_raises(self):
        with pytest.raises(LLMError, match="Unknown provider"):
            create_llm_provider(provider="llama", client=MagicMock())

    def test_explicit_provider_without_key_raises(self, no_keys):
        with pytest.raises(LLMError, match="GROQ_API_KEY"):
            create_llm_provider(provider="openai")

    def test_auto_with_anthropic_key(self, monkeypatch, no_keys):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        # Mock Anthropic client to avoid real init
        with patch("anthropic.Anthropic") as anthropic_cls:
            provider = create_llm_provider()
            assert provider.provider_name == "claude"
        assert anthropic_cls.call_args.kwargs["api_key"] == "sk-ant-test"

    def test_groq_base_url_passed_to_client(self, monkeypatch, no_keys):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        with patch("openai.OpenAI") as openai_cls:
            provider = create_llm_provider(base_url="https://api.groq.com/openai/v1", timeout=12)
        assert provider.provider_name == "openai"
        kwargs = openai_cls.call_args.kwargs
        assert kwargs["api_key"] == "gsk_test"
        assert kwargs["base_url"] == "https://api.groq.com/openai/v1"
        assert kwargs["timeout"] == 12
        assert kwargs["max_retries"] == 0

    def test_custom_model(self):
        mock_client = MagicMock()
        provider = create_llm_provider(
            provider="claude", client=mock_client, model="claude-opus-4-20250514"
        )
        assert provider.model == "claude-opus-4-20250514"

    def test_default_models(self):
        mock_client = MagicMock()
        assert (
            create_llm_provider(provider="claude", client=mock_client).model
            == "claude-sonnet-4-20250514"
        )
        assert (
            create_llm_provider(provider="openai", client=mock_client).model
            == "llama-3.3-70b-versatile"
        )
