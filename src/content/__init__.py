"""Truth/dare content: models, SQLite storage and prompt templates."""

from .models import (
    AGE_GROUP_ADULTS,
    AGE_GROUP_KIDS,
    AGE_GROUP_TEEN,
    SUPPORTED_LANGUAGES,
    TASK_TYPE_DARE,
    TASK_TYPE_TRUTH,
    Category,
    MultilingualText,
    Task,
    min_age_for_group,
)
from .prompts import PromptLoader, PromptNotFoundError
from .storage import ContentStorage

__all__ = [
    "AGE_GROUP_ADULTS",
    "AGE_GROUP_KIDS",
    "AGE_GROUP_TEEN",
    "SUPPORTED_LANGUAGES",
    "TASK_TYPE_DARE",
    "TASK_TYPE_TRUTH",
    "Category",
    "ContentStorage",
    "MultilingualText",
    "PromptLoader",
    "PromptNotFoundError",
    "Task",
    "min_age_for_group",
]
