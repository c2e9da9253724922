"""OpenAI-compatible LLM provider (OpenAI, Groq and other /chat/completions APIs)."""

from ..base import (
    LLMAuthError,
    LLMError,
    LLMProvider,
    LLMRateLimitError,
    LLMUnavailableError,
)

DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_TIMEOUT = 60.0

# Lazy exception references, set when package available
_openai_exceptions = None


def _get_openai_exceptions():
    global _openai_exceptions
    if _openai_exceptions is None:
        try:
            from openai import (
                APIConnectionError,
                APIError,
                AuthenticationError,
                InternalServerError,
                RateLimitError,
            )

            _openai_exceptions = (
                AuthenticationError,
                RateLimitError,
                APIConnectionError,
                InternalServerError,
                APIError,
            )
        except ImportError:
            _openai_exceptions = ()
    return _openai_exceptions


def _handle_openai_error(e: Exception):
    exc = _get_openai_exceptions()
    if exc:
        AuthErr, RateErr, ConnErr, ServerErr, ApiErr = exc
        if isinstance(e, AuthErr):
            raise LLMAuthError(f"AI auth failed: {e}") from e
        if isinstance(e, RateErr):
            raise LLMRateLimitError(f"AI rate limit: {e}") from e
        # APITimeoutError subclasses APIConnectionError
        if isinstance(e, (ConnErr, ServerErr)):
            raise LLMUnavailableError(f"AI temporarily unavailable: {e}") from e
        if isinstance(e, ApiErr):
            raise LLMError(f"AI API error: {e}") from e
    raise LLMError(f"AI error: {e}") from e


class OpenAIProvider(LLMProvider):
    """Chat-completions provider; ``base_url`` points it at any compatible API."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client=None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.model = model or DEFAULT_MODEL
        self.base_url = base_url

        if client:
            self.client = client
            return

        try:
            from openai import OpenAI
        except ImportError:
            raise LLMError("openai package not installed. Run: pip install openai")

        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    def generate(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> str:
        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(messages)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=full_messages,
            )
        except Exception as e:
            _handle_openai_error(e)

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
