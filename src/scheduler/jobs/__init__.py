"""Concrete background jobs."""

from .cleanup import CleanupJob, CleanupPreview, CleanupStats
from .generate import AutoGenerateJob, GenerateError, GenerateStats, is_retryable_error

__all__ = [
    "AutoGenerateJob",
    "CleanupJob",
    "CleanupPreview",
    "CleanupStats",
    "GenerateError",
    "GenerateStats",
    "is_retryable_error",
]
