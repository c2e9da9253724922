"""AI auto-generation of truths and dares for every category and language."""

import time
from dataclasses import asdict, dataclass, field
from typing import Optional

import structlog

from cli.config_models import AutoGenerateConfig
from cli.retry import retry_from_config
from content import (
    AGE_GROUP_ADULTS,
    TASK_TYPE_DARE,
    TASK_TYPE_TRUTH,
    Category,
    ContentStorage,
    PromptLoader,
    min_age_for_group,
)
from llm import LLMProvider, LLMRateLimitError, LLMResponseError, LLMUnavailableError

from ..errors import JobCancelledError
from ..job import Job, JobContext

logger = structlog.get_logger().bind(source="auto_generate")

PROMPT_NAME = "generate_tasks"

_RETRYABLE_MARKERS = (
    "rate limit",
    "429",
    "too many requests",
    "quota exceeded",
    "temporarily unavailable",
    "timeout",
    "timed out",
    "connection refused",
    "connection reset",
)


def is_retryable_error(error: Optional[BaseException]) -> bool:
    """Whether another attempt could succeed (rate limits, timeouts, dropped connections)."""
    if error is None or isinstance(error, JobCancelledError):
        return False
    if isinstance(error, (LLMRateLimitError, LLMUnavailableError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


@dataclass
class GenerateError:
    category_id: str
    language: str
    error: str


@dataclass
class GenerateStats:
    total_attempts: int = 0
    success_count: int = 0
    failure_count: int = 0
    tasks_created: int = 0
    errors: list[GenerateError] = field(default_factory=list)
    duration_s: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class AutoGenerateJob:
    """Asks the LLM for new truths and dares per (category, language) pair.

    A failed pair is recorded in the stats and does not fail the run; only
    cancellation ends it early.
    """

    name = "auto-generate"
    description = "Generate tasks for all category+language combinations"

    def __init__(
        self,
        storage: ContentStorage,
        config: AutoGenerateConfig,
        llm: Optional[LLMProvider] = None,
        prompts: Optional[PromptLoader] = None,
    ):
        self.storage = storage
        self.config = config
        self.llm = llm
        self.prompts = prompts or PromptLoader()

    def to_job(self) -> Job:
        return Job(
            name=self.name,
            schedule=self.config.schedule,
            work=self.execute,
            enabled=self.config.enabled,
            description=self.description,
        )

    def execute(self, ctx: JobContext) -> GenerateStats:
        log = ctx.logger
        stats = GenerateStats()

        if self.llm is None:
            log.error("llm_not_configured", action="skipping auto-generate")
            return stats

        categories = self.storage.list_categories(active_only=True)
        if not categories:
            log.info("no_active_categories", action="skipping generation")
            return stats

        languages = self.config.languages
        log.info("generation_started", categories=len(categories), languages=len(languages))
        start = time.monotonic()

        for category in categories:
            age_group = category.age_group or AGE_GROUP_ADULTS
            for language in languages:
                ctx.raise_if_cancelled()

                stats.total_attempts += 1
                try:
                    created = self._generate_with_retry(ctx, category, language, age_group)
                except JobCancelledError:
                    raise
                except Exception as e:
                    stats.failure_count += 1
                    stats.errors.append(
                        GenerateError(category_id=category.id, language=language, error=str(e))
                    )
                    log.error(
                        "generation_failed",
                        category_id=category.id,
                        language=language,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                else:
                    stats.success_count += 1
                    stats.tasks_created += created

                ctx.sleep(self.config.request_delay_seconds)

        stats.duration_s = round(time.monotonic() - start, 3)
        log.info(
            "generation_completed",
            total_attempts=stats.total_attempts,
            success_count=stats.success_count,
            failure_count=stats.failure_count,
            tasks_created=stats.tasks_created,
            duration_s=stats.duration_s,
        )
        return stats

    def _generate_with_retry(
        self, ctx: JobContext, category: Category, language: str, age_group: str
    ) -> int:
        retrying = retry_from_config(self.config, retryable=is_retryable_error, sleep=ctx.sleep)
        created = retrying(self._generate_once, category, language, age_group)
        ctx.logger.info(
            "generation_succeeded",
            category_id=category.id,
            language=language,
            tasks_created=created,
            attempts=retrying.statistics.get("attempt_number", 1),
        )
        return created

    def _generate_once(self, category: Category, language: str, age_group: str) -> int:
        """One LLM round trip for a pair. Returns the number of tasks saved."""
        category_name = category.label.get("en") or category.label.get_text(language)
        prompt = self.prompts.render(
            PROMPT_NAME,
            AGE_GROUP=age_group,
            CATEGORY=category_name,
            LANGUAGE=language,
            COUNT=self.config.count,
            EXPLICIT_MODE="true" if category.requires_consent else "false",
        )

        content = self.llm.generate_json(
            [{"role": "user", "content": prompt}],
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        if not isinstance(content, dict):
            raise LLMResponseError(f"expected a JSON object, got {type(content).__name__}")

        created = 0
        for task_type, key in ((TASK_TYPE_TRUTH, "truths"), (TASK_TYPE_DARE, "dares")):
            for text in content.get(key) or []:
                if not isinstance(text, str) or not text.strip():
                    continue
                try:
                    self.storage.create_task(
                        category_id=category.id,
                        task_type=task_type,
                        text={language: text.strip()},
                        min_age=min_age_for_group(age_group),
                        requires_consent=category.requires_consent,
                        is_active=True,
                    )
                except Exception as e:
                    # one bad insert does not discard the rest of the batch
                    logger.warning(
                        "task_insert_failed",
                        category_id=category.id,
                        language=language,
                        task_type=task_type,
                        error=str(e),
                    )
                    continue
                created += 1
        return created

