"""Cron-driven background job scheduler for the content backend."""

from .cron import parse_cron
from .errors import DuplicateJobError, InvalidScheduleError, JobCancelledError, SchedulerError
from .job import Job, JobContext, JobInfo, JobRun, RunStatus
from .scheduler import Scheduler
from .setup import build_llm_provider, setup

__all__ = [
    "DuplicateJobError",
    "InvalidScheduleError",
    "Job",
    "JobCancelledError",
    "JobContext",
    "JobInfo",
    "JobRun",
    "RunStatus",
    "Scheduler",
    "SchedulerError",
    "build_llm_provider",
    "parse_cron",
    "setup",
]
