"""Base LLM provider abstraction."""

import json
import re
from abc import ABC, abstractmethod


class LLMError(Exception):
    """Base LLM error."""


class LLMRateLimitError(LLMError):
    """Rate limit hit."""


class LLMAuthError(LLMError):
    """Authentication failure."""


class LLMUnavailableError(LLMError):
    """Transient failure: timeout, connection error or 5xx from the provider."""


class LLMResponseError(LLMError):
    """Response could not be parsed into the expected shape."""


_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def parse_json_response(content: str):
    """Parse a model reply as JSON, tolerating a surrounding ``` fence."""
    text = (content or "").strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise LLMResponseError(
            f"failed to parse AI response as JSON: {e} (content: {text[:200]!r})"
        ) from e


class LLMProvider(ABC):
    """Abstract LLM provider interface."""

    provider_name: str = "base"
    model: str

    @abstractmethod
    def generate(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> str:
        """Generate a response from messages.

        Args:
            messages: List of {"role": ..., "content": ...} dicts
            system: Optional system prompt
            max_tokens: Max response tokens
            temperature: Sampling temperature

        Returns:
            Generated text
        """
        ...

    def generate_json(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ):
        """Generate and parse a JSON reply.

        Raises:
            LLMResponseError: reply is not valid JSON
        """
        content = self.generate(
            messages, system=system, max_tokens=max_tokens, temperature=temperature
        )
        return parse_json_response(content)
