"""Retry utilities for job-level calls to external services."""

import logging
import time
from typing import Callable

import structlog
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from .config_models import AutoGenerateConfig

logger = structlog.stdlib.get_logger(__name__)


def generation_retry(
    max_attempts: int = 3,
    delay: float = 60.0,
    retryable: Callable[[BaseException], bool] = lambda e: True,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Fixed-delay retry controller for AI generation attempts.

    Args:
        max_attempts: Total attempts including the first
        delay: Seconds between attempts
        retryable: Predicate deciding whether an error is worth another attempt
        sleep: Sleep function; jobs pass a cancellation-aware one so a
               shutdown interrupts the wait
    """
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception(retryable),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def retry_from_config(
    config: AutoGenerateConfig,
    retryable: Callable[[BaseException], bool],
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Build the generation retry controller from the auto-generate config."""
    return generation_retry(
        max_attempts=config.retry_max,
        delay=config.retry_delay_seconds,
        retryable=retryable,
        sleep=sleep,
    )
