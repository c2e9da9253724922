"""CLI command modules."""

from .cleanup import cleanup
from .daemon import daemon
from .jobs import jobs

__all__ = [
    "cleanup",
    "daemon",
    "jobs",
]
