"""Scheduler error types."""


class SchedulerError(Exception):
    """Base scheduler error."""


class InvalidScheduleError(SchedulerError, ValueError):
    """Cron expression could not be parsed."""


class DuplicateJobError(SchedulerError):
    """A job with the same name is already registered."""


class JobCancelledError(SchedulerError):
    """The scheduler is stopping; the running job should return."""
