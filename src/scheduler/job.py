"""Job descriptor, run context and execution records."""

import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from .errors import JobCancelledError

TRIGGER_SCHEDULE = "schedule"
TRIGGER_MANUAL = "manual"


class RunStatus(str, Enum):
    """Outcome of one job invocation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"


class JobContext:
    """Handed to a job's work function on every run.

    All contexts created by one Scheduler share its cancellation event, which
    is set once when the Scheduler stops. Long-running work should call
    ``raise_if_cancelled()`` between units of work and use ``sleep()`` instead
    of ``time.sleep()`` so shutdown is not held up.
    """

    def __init__(
        self,
        job_name: str,
        cancel_event: threading.Event,
        trigger: str = TRIGGER_SCHEDULE,
        run_id: Optional[str] = None,
    ):
        self.job_name = job_name
        self.trigger = trigger
        self.run_id = run_id or uuid.uuid4().hex[:8]
        self._cancel_event = cancel_event
        self.logger = structlog.get_logger().bind(
            source="job", job=job_name, run_id=self.run_id
        )

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise JobCancelledError(f"job {self.job_name} cancelled: scheduler stopping")

    def sleep(self, seconds: float) -> None:
        """Wait up to ``seconds``; raise JobCancelledError as soon as the scheduler stops."""
        if self._cancel_event.wait(max(seconds, 0)):
            raise JobCancelledError(f"job {self.job_name} cancelled: scheduler stopping")


WorkFn = Callable[[JobContext], Any]


@dataclass(frozen=True)
class Job:
    """A named unit of background work on a cron schedule.

    ``work`` signals failure by raising; whatever it returns is kept on the
    run record and logged.
    """

    name: str
    schedule: str
    work: WorkFn
    enabled: bool = True
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Job name must not be empty")
        if not self.schedule or not self.schedule.strip():
            raise ValueError(f"Job {self.name!r} must have a cron schedule")
        if not callable(self.work):
            raise ValueError(f"Job {self.name!r} work must be callable")


@dataclass
class JobRun:
    """Record of one invocation, scheduled or manual."""

    job_name: str
    status: RunStatus
    started_at: datetime
    duration_s: float = 0.0
    trigger: str = TRIGGER_SCHEDULE
    error: Optional[str] = None
    result: Any = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.SUCCEEDED

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        data["started_at"] = self.started_at.isoformat()
        data["result"] = _result_to_dict(self.result)
        return data


def _result_to_dict(result: Any) -> Any:
    if hasattr(result, "to_dict"):
        return result.to_dict()
    if hasattr(result, "__dataclass_fields__"):
        return asdict(result)
    return result


@dataclass
class JobInfo:
    """Read-only snapshot of a registered job for introspection."""

    name: str
    description: str
    schedule: str
    enabled: bool
    next_run: Optional[datetime] = None
    prev_run: Optional[datetime] = None
    last_status: Optional[str] = None
    last_error: Optional[str] = None
    last_duration_s: Optional[float] = None
    run_count: int = 0
    failure_count: int = 0
    running: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("next_run", "prev_run"):
            value = data[key]
            data[key] = value.isoformat() if value else None
        return data


@dataclass
class _Registration:
    """Scheduler-internal state for one registered job."""

    job: Job
    trigger: Any = None  # None for disabled jobs: no clock slot
    clock_job_id: Optional[str] = None
    overlap_lock: threading.Lock = field(default_factory=threading.Lock)
    active_runs: int = 0
    last_run: Optional[JobRun] = None
    run_count: int = 0
    failure_count: int = 0
