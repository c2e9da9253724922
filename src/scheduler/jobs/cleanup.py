"""Retention cleanup: purge old soft-deleted content and reclaim disk space."""

import calendar
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional

from cli.config_models import CleanupConfig
from content import ContentStorage

from ..job import Job, JobContext


@dataclass
class CleanupStats:
    tasks_deleted: int = 0
    categories_deleted: int = 0
    size_before_bytes: int = 0
    size_after_bytes: int = 0
    space_saved_bytes: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CleanupPreview:
    """What a cleanup run would delete right now."""

    cutoff_date: datetime
    retention_months: int
    tasks_to_delete: int = 0
    categories_to_delete: int = 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["cutoff_date"] = self.cutoff_date.isoformat()
        return data


def subtract_months(dt: datetime, months: int) -> datetime:
    """Same wall-clock time ``months`` calendar months earlier.

    The day is clamped to the target month's length (31 Mar - 1 month = 28/29 Feb).
    """
    total = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


class CleanupJob:
    """Permanently deletes soft-deleted tasks and categories past retention."""

    name = "cleanup"
    description = "Clean up soft-deleted data older than retention period and run VACUUM"

    def __init__(
        self,
        storage: ContentStorage,
        config: CleanupConfig,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.config = config
        self._now = now or (lambda: datetime.now().astimezone())

    def cutoff(self) -> datetime:
        return subtract_months(self._now(), self.config.retention_months)

    def to_job(self) -> Job:
        return Job(
            name=self.name,
            schedule=self.config.schedule,
            work=self.execute,
            enabled=self.config.enabled,
            description=self.description,
        )

    def execute(self, ctx: JobContext) -> CleanupStats:
        cutoff = self.cutoff()
        log = ctx.logger
        log.info(
            "cleanup_started",
            retention_months=self.config.retention_months,
            cutoff_date=cutoff.isoformat(),
        )

        stats = CleanupStats()
        stats.tasks_deleted = self._purge("tasks", cutoff, log)
        ctx.raise_if_cancelled()
        stats.categories_deleted = self._purge("categories", cutoff, log)
        log.info(
            "soft_deleted_purged",
            tasks_deleted=stats.tasks_deleted,
            categories_deleted=stats.categories_deleted,
        )

        if self.config.vacuum:
            ctx.raise_if_cancelled()
            self._vacuum(stats, log)

        log.info("cleanup_completed", **stats.to_dict())
        return stats

    def preview(self) -> CleanupPreview:
        """Count what would be purged without deleting anything."""
        cutoff = self.cutoff()
        return CleanupPreview(
            cutoff_date=cutoff,
            retention_months=self.config.retention_months,
            tasks_to_delete=self.storage.count_purgeable("tasks", cutoff),
            categories_to_delete=self.storage.count_purgeable("categories", cutoff),
        )

    def _purge(self, table: str, cutoff: datetime, log) -> int:
        try:
            return self.storage.purge_deleted(table, cutoff)
        except Exception as e:
            log.error("cleanup_table_failed", table=table, error=str(e))
            raise

    def _vacuum(self, stats: CleanupStats, log) -> None:
        log.info("vacuum_started")
        stats.size_before_bytes = self.storage.database_size()
        try:
            self.storage.vacuum()
        except Exception as e:
            log.error("vacuum_failed", error=str(e))
            raise
        stats.size_after_bytes = self.storage.database_size()
        stats.space_saved_bytes = stats.size_before_bytes - stats.size_after_bytes
        log.info(
            "vacuum_completed",
            size_before_bytes=stats.size_before_bytes,
            size_after_bytes=stats.size_after_bytes,
            space_saved_bytes=stats.space_saved_bytes,
        )
