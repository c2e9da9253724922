"""In-process cron scheduler for background content jobs."""

import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from typing import Any, Optional

import structlog
import structlog.contextvars
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers import SchedulerNotRunningError
from apscheduler.schedulers.background import BackgroundScheduler

from cli.config_models import SchedulerConfig
from observability import Metrics
from observability import metrics as default_metrics

from .cron import parse_cron
from .errors import DuplicateJobError, JobCancelledError, SchedulerError
from .job import (
    TRIGGER_MANUAL,
    TRIGGER_SCHEDULE,
    Job,
    JobContext,
    JobInfo,
    JobRun,
    RunStatus,
    _Registration,
)

logger = structlog.get_logger().bind(source="scheduler")

STATE_CONSTRUCTED = "constructed"
STATE_STARTED = "started"
STATE_STOPPING = "stopping"
STATE_STOPPED = "stopped"

_STATUS_COUNTERS = {
    RunStatus.SUCCEEDED: "job_success",
    RunStatus.FAILED: "job_failure",
    RunStatus.CANCELLED: "job_cancelled",
    RunStatus.SKIPPED: "job_skipped",
}


class Scheduler:
    """Registry of named jobs driven by a background cron clock.

    Jobs run on a thread pool. Failures inside a job are logged and recorded on
    the job's run history; they never unregister the job or stop the clock.
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        storage: Any = None,
        metrics: Optional[Metrics] = None,
    ):
        self._config = config or SchedulerConfig()
        self._storage = storage
        self._metrics = metrics or default_metrics

        self._lock = threading.RLock()
        self._cancel = threading.Event()
        self._jobs: list[_Registration] = []
        self._state = STATE_CONSTRUCTED
        self._stop_future: Optional[Future] = None

        clock_kwargs: dict[str, Any] = {
            "executors": {"default": ThreadPoolExecutor(self._config.max_workers)},
            "job_defaults": {
                "coalesce": True,
                "max_instances": 1 if not self._config.allow_overlap else self._config.max_workers,
                "misfire_grace_time": self._config.misfire_grace_seconds,
            },
        }
        if self._config.timezone:
            clock_kwargs["timezone"] = self._config.timezone
        self._clock = BackgroundScheduler(**clock_kwargs)
        self._clock.add_listener(
            self._on_clock_event,
            EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES | EVENT_JOB_MISSED,
        )

    # --- accessors ---

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def storage(self) -> Any:
        return self._storage

    @property
    def state(self) -> str:
        return self._state

    @property
    def running(self) -> bool:
        return self._state == STATE_STARTED and self._clock.running

    # --- registration ---

    def add_job(self, job: Job) -> None:
        """Register a job.

        Disabled jobs are kept for introspection and manual runs but get no
        clock slot.

        Raises:
            InvalidScheduleError: cron expression did not parse; job not added
            DuplicateJobError: a job with this name is already registered
            SchedulerError: the scheduler has been stopped
        """
        with self._lock:
            if self._state in (STATE_STOPPING, STATE_STOPPED):
                raise SchedulerError(f"cannot add job {job.name!r}: scheduler is {self._state}")
            if any(reg.job.name == job.name for reg in self._jobs):
                raise DuplicateJobError(f"job {job.name!r} is already registered")

            if not job.enabled:
                self._jobs.append(_Registration(job=job))
                logger.info("job_disabled", job=job.name, schedule=job.schedule)
                return

            try:
                trigger = parse_cron(job.schedule, timezone=self._clock.timezone)
            except SchedulerError as e:
                logger.error("job_schedule_invalid", job=job.name, schedule=job.schedule, error=str(e))
                raise

            reg = _Registration(job=job, trigger=trigger, clock_job_id=job.name)
            self._clock.add_job(
                self._execute,
                trigger=trigger,
                args=(reg, TRIGGER_SCHEDULE),
                id=reg.clock_job_id,
                name=job.name,
            )
            self._jobs.append(reg)
            logger.info(
                "job_scheduled",
                job=job.name,
                schedule=job.schedule,
                description=job.description,
            )

    # --- lifecycle ---

    def start(self) -> None:
        """Start the background clock and return immediately.

        A no-op when scheduling is disabled in config or the clock is already
        running.
        """
        with self._lock:
            if self._state in (STATE_STOPPING, STATE_STOPPED):
                raise SchedulerError("cannot start a stopped scheduler")
            if self._state == STATE_STARTED:
                return
            if not self._config.enabled:
                logger.info("scheduler_disabled", jobs=len(self._jobs))
                return

            self._clock.start()
            self._state = STATE_STARTED
            logger.info(
                "scheduler_started",
                jobs=len(self._jobs),
                enabled_jobs=sum(1 for reg in self._jobs if reg.job.enabled),
                timezone=str(self._clock.timezone),
            )

    def stop(self) -> Future:
        """Signal cancellation and drain in-flight runs in the background.

        The returned future resolves to True once every running job has
        returned. Repeated calls return the same future.
        """
        with self._lock:
            if self._stop_future is not None:
                return self._stop_future

            future: Future = Future()
            self._stop_future = future
            self._state = STATE_STOPPING
            self._cancel.set()
            in_flight = sum(reg.active_runs for reg in self._jobs)

        logger.info("scheduler_stopping", in_flight=in_flight)

        if not self._clock.running:
            self._finish_stop(future)
            return future

        def _drain():
            try:
                self._clock.shutdown(wait=True)
            except SchedulerNotRunningError:
                pass
            except Exception as e:
                logger.error("scheduler_drain_failed", error=str(e), exc_info=True)
                with self._lock:
                    self._state = STATE_STOPPED
                future.set_exception(e)
                return
            self._finish_stop(future)

        threading.Thread(target=_drain, name="scheduler-drain", daemon=True).start()
        return future

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Stop and wait for running jobs, at most ``timeout`` seconds.

        Returns False when a job ignored cancellation past the bound; the
        caller decides whether to abandon it.
        """
        bound = self._config.drain_timeout_seconds if timeout is None else timeout
        future = self.stop()
        try:
            return future.result(timeout=bound)
        except FutureTimeoutError:
            still_running = [reg.job.name for reg in self._jobs if reg.active_runs]
            logger.warning("scheduler_drain_abandoned", timeout_s=bound, running=still_running)
            return False

    def _finish_stop(self, future: Future) -> None:
        with self._lock:
            self._state = STATE_STOPPED
        logger.info("scheduler_stopped")
        future.set_result(True)

    # --- manual runs and introspection ---

    def run_job_now(self, name: str) -> JobRun:
        """Run a job synchronously on the calling thread, disabled or not."""
        with self._lock:
            reg = next((r for r in self._jobs if r.job.name == name), None)

        if reg is None:
            logger.warning("job_not_found", job=name)
            return JobRun(
                job_name=name,
                status=RunStatus.NOT_FOUND,
                started_at=datetime.now(self._clock.timezone),
                trigger=TRIGGER_MANUAL,
                error=f"job {name!r} not found",
            )

        return self._execute(reg, TRIGGER_MANUAL)

    def get_jobs(self) -> list[JobInfo]:
        with self._lock:
            return [self._info(reg) for reg in self._jobs]

    def get_job(self, name: str) -> Optional[JobInfo]:
        with self._lock:
            for reg in self._jobs:
                if reg.job.name == name:
                    return self._info(reg)
        return None

    def _info(self, reg: _Registration) -> JobInfo:
        last = reg.last_run
        return JobInfo(
            name=reg.job.name,
            description=reg.job.description,
            schedule=reg.job.schedule,
            enabled=reg.job.enabled,
            next_run=self._next_run(reg),
            prev_run=last.started_at if last else None,
            last_status=last.status.value if last else None,
            last_error=last.error if last else None,
            last_duration_s=last.duration_s if last else None,
            run_count=reg.run_count,
            failure_count=reg.failure_count,
            running=reg.active_runs > 0,
        )

    def _next_run(self, reg: _Registration) -> Optional[datetime]:
        if reg.trigger is None or not self._config.enabled:
            return None
        if self._state in (STATE_STOPPING, STATE_STOPPED):
            return None
        if self._clock.running:
            clock_job = self._clock.get_job(reg.clock_job_id)
            return getattr(clock_job, "next_run_time", None) if clock_job else None
        # Pending clock jobs have no next_run_time until the clock starts
        now = datetime.now(self._clock.timezone).replace(microsecond=0) + timedelta(seconds=1)
        return reg.trigger.get_next_fire_time(None, now)

    # --- execution ---

    def _execute(self, reg: _Registration, trigger: str) -> JobRun:
        """Run one invocation of a job and record the outcome.

        Every exception raised by the work function is contained here.
        """
        job = reg.job
        ctx = JobContext(job.name, self._cancel, trigger=trigger)
        started_at = datetime.now(self._clock.timezone)
        start = time.monotonic()

        structlog.contextvars.bind_contextvars(job=job.name, run_id=ctx.run_id)
        try:
            if self._cancel.is_set():
                logger.info("job_cancelled", trigger=trigger, reason="scheduler stopping")
                return self._record(
                    reg,
                    JobRun(
                        job_name=job.name,
                        status=RunStatus.CANCELLED,
                        started_at=started_at,
                        trigger=trigger,
                        error="scheduler stopping",
                    ),
                )

            guard = None if self._config.allow_overlap else reg.overlap_lock
            if guard is not None and not guard.acquire(blocking=False):
                logger.warning("job_skipped_overlap", trigger=trigger)
                return self._record(
                    reg,
                    JobRun(
                        job_name=job.name,
                        status=RunStatus.SKIPPED,
                        started_at=started_at,
                        trigger=trigger,
                        error="previous run still in progress",
                    ),
                )

            with self._lock:
                reg.active_runs += 1

            result = None
            error = None
            try:
                logger.info("job_started", trigger=trigger)
                try:
                    result = job.work(ctx)
                except JobCancelledError as e:
                    duration = _elapsed(start)
                    status = RunStatus.CANCELLED
                    error = str(e)
                    logger.info("job_cancelled", trigger=trigger, duration_s=duration)
                except Exception as e:
                    duration = _elapsed(start)
                    status = RunStatus.FAILED
                    error = str(e) or type(e).__name__
                    logger.error(
                        "job_failed",
                        trigger=trigger,
                        error=error,
                        error_type=type(e).__name__,
                        duration_s=duration,
                        exc_info=True,
                    )
                else:
                    duration = _elapsed(start)
                    status = RunStatus.SUCCEEDED
                    logger.info("job_completed", trigger=trigger, duration_s=duration)
            finally:
                with self._lock:
                    reg.active_runs -= 1
                if guard is not None:
                    guard.release()

            self._metrics.observe(f"job_duration:{job.name}", duration)
            return self._record(
                reg,
                JobRun(
                    job_name=job.name,
                    status=status,
                    started_at=started_at,
                    duration_s=duration,
                    trigger=trigger,
                    error=error,
                    result=result,
                ),
            )
        finally:
            structlog.contextvars.unbind_contextvars("job", "run_id")

    def _record(self, reg: _Registration, run: JobRun) -> JobRun:
        with self._lock:
            reg.last_run = run
            reg.run_count += 1
            if run.status == RunStatus.FAILED:
                reg.failure_count += 1
        self._metrics.counter("job_runs")
        self._metrics.counter(_STATUS_COUNTERS[run.status])
        return run

    def _on_clock_event(self, event) -> None:
        """Log clock-level events. Must not take the registry lock."""
        if event.code == EVENT_JOB_MAX_INSTANCES:
            logger.warning("job_fire_skipped", job=event.job_id, reason="max_instances")
            self._metrics.counter("job_skipped")
        elif event.code == EVENT_JOB_MISSED:
            logger.warning(
                "job_fire_missed",
                job=event.job_id,
                scheduled_run_time=str(event.scheduled_run_time),
            )
        else:
            logger.error(
                "job_error",
                job=event.job_id,
                exception=str(event.exception),
                traceback=event.traceback,
            )


def _elapsed(start: float) -> float:
    return round(time.monotonic() - start, 3)
