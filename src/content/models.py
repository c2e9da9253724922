"""Category and task records served to the game clients."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

TASK_TYPE_TRUTH = "truth"
TASK_TYPE_DARE = "dare"
TASK_TYPES = (TASK_TYPE_TRUTH, TASK_TYPE_DARE)

AGE_GROUP_KIDS = "kids"
AGE_GROUP_TEEN = "teen"
AGE_GROUP_ADULTS = "adults"

# ISO 639-1 codes
SUPPORTED_LANGUAGES = ["en", "zh", "es", "hi", "ar", "fr", "pt", "bn", "ru", "ur"]

_MIN_AGE = {AGE_GROUP_KIDS: 0, AGE_GROUP_TEEN: 13, AGE_GROUP_ADULTS: 18}


def min_age_for_group(group: str) -> int:
    return _MIN_AGE.get(group, 0)


def is_valid_language(code: str) -> bool:
    return code in SUPPORTED_LANGUAGES


class MultilingualText(dict):
    """Language code -> text mapping stored as a JSON column."""

    def get_text(self, lang: str) -> str:
        """Text for lang, falling back to English, then to any language."""
        if lang in self:
            return self[lang]
        if "en" in self:
            return self["en"]
        for text in self.values():
            return text
        return ""

    def to_json(self) -> str:
        return json.dumps(dict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: Optional[str | bytes]) -> "MultilingualText":
        if not raw:
            return cls()
        return cls(json.loads(raw))


@dataclass
class Category:
    """A prompt category, e.g. "Party" or "Couples"."""

    id: str
    label: MultilingualText
    emoji: str = "📝"
    age_group: str = AGE_GROUP_ADULTS
    requires_consent: bool = False
    is_active: bool = True
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass
class Task:
    """A single truth question or dare."""

    id: str
    category_id: str
    type: str
    text: MultilingualText
    hint: MultilingualText = field(default_factory=MultilingualText)
    min_age: int = 0
    requires_consent: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
