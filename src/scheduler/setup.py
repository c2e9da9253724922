"""Wire the concrete jobs into a Scheduler from application config."""

from typing import Optional

import structlog

from cli.config_models import AppConfig
from content import ContentStorage, PromptLoader
from llm import LLMError, LLMProvider, create_llm_provider
from observability import Metrics

from .errors import SchedulerError
from .jobs import AutoGenerateJob, CleanupJob
from .scheduler import Scheduler

logger = structlog.get_logger().bind(source="scheduler_setup")


def build_llm_provider(config: AppConfig) -> Optional[LLMProvider]:
    """Construct the configured LLM provider, or None when no key is available."""
    llm_config = config.llm
    try:
        provider = create_llm_provider(
            provider=llm_config.provider,
            api_key=llm_config.api_key,
            model=llm_config.model,
            base_url=llm_config.base_url,
            timeout=llm_config.timeout_seconds,
        )
    except LLMError as e:
        logger.warning("llm_provider_unavailable", error=str(e))
        return None
    logger.info("llm_provider_ready", provider=provider.provider_name, model=provider.model)
    return provider


def setup(
    config: AppConfig,
    storage: ContentStorage,
    llm: Optional[LLMProvider] = None,
    prompts: Optional[PromptLoader] = None,
    metrics: Optional[Metrics] = None,
) -> Scheduler:
    """Build a Scheduler with the cleanup and auto-generate jobs registered.

    A job that fails to register (bad schedule) is logged and left out; the
    other job is still registered. The Scheduler is returned unstarted.
    """
    scheduler = Scheduler(config.scheduler, storage=storage, metrics=metrics)

    jobs = [
        CleanupJob(storage, config.cleanup),
        AutoGenerateJob(storage, config.auto_generate, llm=llm, prompts=prompts),
    ]
    for job in jobs:
        try:
            scheduler.add_job(job.to_job())
        except SchedulerError as e:
            logger.error("job_registration_failed", job=job.name, error=str(e))

    return scheduler
