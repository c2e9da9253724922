"""Prompt template loading with {{PLACEHOLDER}} substitution."""

import re
import threading
from pathlib import Path
from typing import Optional

import structlog

logger = structlog.get_logger().bind(source="prompts")

PROMPTS_DIR = Path(__file__).parent / "prompts"

_PLACEHOLDER = re.compile(r"\{\{([A-Z0-9_]+)\}\}")


class PromptNotFoundError(LookupError):
    """Template file does not exist."""


class PromptLoader:
    """Load ``<name>.txt`` templates once and cache them.

    Shared by jobs running on different threads, so the cache is locked.
    """

    def __init__(self, prompts_dir: Optional[Path] = None):
        self.prompts_dir = Path(prompts_dir or PROMPTS_DIR)
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self, name: str) -> str:
        """Raw template content, placeholders intact."""
        with self._lock:
            cached = self._cache.get(name)
        if cached is not None:
            return cached

        path = self.prompts_dir / f"{name}.txt"
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise PromptNotFoundError(f"Prompt template not found: {name}") from e

        with self._lock:
            self._cache[name] = content
        return content

    def render(self, name: str, **placeholders) -> str:
        """Load a template and replace each {{KEY}} with placeholders[KEY].

        Unknown placeholders are left as-is and logged.
        """
        template = self.load(name)
        values = {k: str(v) for k, v in placeholders.items()}

        def _sub(match: re.Match) -> str:
            key = match.group(1)
            if key in values:
                return values[key]
            logger.warning("prompt_placeholder_missing", prompt=name, placeholder=key)
            return match.group(0)

        return _PLACEHOLDER.sub(_sub, template)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
