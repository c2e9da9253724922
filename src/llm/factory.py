"""LLM provider factory with auto-detection."""

import os

from .base import LLMError, LLMProvider

_PROVIDER_ENV_KEYS = {
    "openai": ("OPENAI_API_KEY", "GROQ_API_KEY"),
    "claude": ("ANTHROPIC_API_KEY",),
}

_AUTO_DETECT_ORDER = ["openai", "claude"]


def create_llm_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    base_url: str | None = None,
    timeout: float = 60.0,
    client=None,
) -> LLMProvider:
    """Create an LLM provider instance.

    Args:
        provider: "openai", "claude", "auto", or None (auto-detect)
        api_key: Explicit API key (overrides env var)
        model: Model name (None = provider default)
        base_url: Chat-completions endpoint for OpenAI-compatible APIs
        timeout: Request timeout in seconds
        client: Pre-built SDK client for testing/DI

    Returns:
        LLMProvider instance
    """
    resolved = provider or "auto"

    if resolved == "auto":
        resolved = _auto_detect_provider(api_key)

    if not api_key and not client:
        api_key = _key_from_env(resolved)
        if not api_key and resolved in _PROVIDER_ENV_KEYS:
            raise LLMError(
                f"No API key for provider {resolved}. "
                f"Set one of: {', '.join(_PROVIDER_ENV_KEYS[resolved])}"
            )

    if resolved == "openai":
        from .providers.openai import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key, model=model, client=client, base_url=base_url, timeout=timeout
        )
    elif resolved == "claude":
        from .providers.claude import ClaudeProvider

        return ClaudeProvider(api_key=api_key, model=model, client=client, timeout=timeout)
    else:
        raise LLMError(f"Unknown provider: {resolved}. Use: openai, claude")


def _key_from_env(provider: str) -> str | None:
    for env_var in _PROVIDER_ENV_KEYS.get(provider, ()):
        value = os.getenv(env_var)
        if value:
            return value
    return None


def _detect_provider_from_key(api_key: str) -> str | None:
    """Infer provider from API key prefix."""
    if api_key.startswith("sk-ant-"):
        return "claude"
    # OpenAI (sk-...) and Groq (gsk_...) both speak chat-completions
    if api_key.startswith(("sk-", "gsk_")):
        return "openai"
    return None


def _auto_detect_provider(api_key: str | None = None) -> str:
    """Detect provider from explicit key prefix, then env vars."""
    if api_key:
        # unrecognised prefix: assume an OpenAI-compatible endpoint
        return _detect_provider_from_key(api_key) or "openai"

    for name in _AUTO_DETECT_ORDER:
        if _key_from_env(name):
            return name
    raise LLMError(
        "No LLM API key found. Set one of: OPENAI_API_KEY, GROQ_API_KEY, ANTHROPIC_API_KEY"
    )
