"""Tests for the AI auto-generate job."""

from unittest.mock import MagicMock

import pytest

from cli.config_models import AutoGenerateConfig
from llm import LLMAuthError, LLMError, LLMRateLimitError, LLMResponseError, LLMUnavailableError
from scheduler.errors import JobCancelledError
from scheduler.jobs.generate import AutoGenerateJob, is_retryable_error

PAYLOAD = {
    "truths": ["What is your biggest fear?", "Who was your first crush?"],
    "dares": ["Sing the chorus of your favourite song."],
}


class TestIsRetryableError:
    @pytest.mark.parametrize(
        "error",
        [
            LLMRateLimitError("slow down"),
            LLMUnavailableError("upstream down"),
            LLMError("Rate limit reached for model"),
            LLMError("status 429"),
            RuntimeError("Too Many Requests"),
            RuntimeError("quota exceeded for today"),
            RuntimeError("service temporarily unavailable"),
            TimeoutError("read timeout"),
            ConnectionError("connection refused"),
            ConnectionError("connection reset by peer"),
        ],
    )
    def test_retryable(self, error):
        assert is_retryable_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            None,
            LLMAuthError("invalid api key"),
            LLMResponseError("failed to parse AI response as JSON"),
            ValueError("bad input"),
            JobCancelledError("scheduler stopping"),
        ],
    )
    def test_not_retryable(self, error):
        assert not is_retryable_error(error)


class TestAutoGenerateJob:
    def test_to_job(self, storage, generate_config):
        job = AutoGenerateJob(storage, generate_config).to_job()
        assert job.name == "auto-generate"
        assert job.schedule == "0 2 * * 0"
        assert job.enabled
        assert job.description == "Generate tasks for all category+language combinations"

    def test_skips_without_llm(self, populated_storage, generate_config, job_ctx):
        stats = AutoGenerateJob(populated_storage, generate_config, llm=None).execute(job_ctx)
        assert stats.total_attempts == 0
        assert populated_storage.count_tasks() == 0

    def test_skips_without_active_categories(self, storage, generate_config, mock_llm, job_ctx):
        storage.create_category({"en": "Retired"}, is_active=False)
        stats = AutoGenerateJob(storage, generate_config, llm=mock_llm).execute(job_ctx)

        assert stats.total_attempts == 0
        mock_llm.generate_json.assert_not_called()

    def test_generates_for_every_category_and_language(
        self, populated_storage, generate_config, mock_llm, job_ctx
    ):
        stats = AutoGenerateJob(populated_storage, generate_config, llm=mock_llm).execute(job_ctx)

        # two active categories x two languages
        assert stats.total_attempts == 4
        assert stats.success_count == 4
        assert stats.failure_count == 0
        assert stats.tasks_created == 12
        assert populated_storage.count_tasks() == 12
        assert populated_storage.count_tasks("cat-retired") == 0

    def test_tasks_carry_age_and_consent(
        self, populated_storage, generate_config, mock_llm, job_ctx
    ):
        AutoGenerateJob(populated_storage, generate_config, llm=mock_llm).execute(job_ctx)

        party = populated_storage.list_tasks("cat-party")
        spicy = populated_storage.list_tasks("cat-spicy")
        assert {t.min_age for t in party} == {13}
        assert {t.min_age for t in spicy} == {18}
        assert not any(t.requires_consent for t in party)
        assert all(t.requires_consent for t in spicy)
        assert all(t.is_active for t in party + spicy)
        assert sorted(t.type for t in party) == ["dare", "dare", "truth", "truth", "truth", "truth"]
        assert {tuple(t.text) for t in party} == {("en",), ("es",)}

    def test_prompt_placeholders(self, populated_storage, generate_config, mock_llm, job_ctx):
        AutoGenerateJob(populated_storage, generate_config, llm=mock_llm).execute(job_ctx)

        prompts = [c.args[0][0]["content"] for c in mock_llm.generate_json.call_args_list]
        first = prompts[0]
        assert "Category: Party" in first
        assert "Audience age group: teen" in first
        assert "Language: en" in first
        assert "Explicit content allowed: false" in first
        assert "exactly 5 truth questions" in first
        assert "{{" not in first
        assert any("Explicit content allowed: true" in p for p in prompts)
        assert any("Language: es" in p for p in prompts)

        kwargs = mock_llm.generate_json.call_args.kwargs
        assert kwargs["temperature"] == 0.8
        assert kwargs["max_tokens"] == 2000

    def test_empty_age_group_defaults_to_adults(self, storage, generate_config, mock_llm, job_ctx):
        storage.create_category({"en": "Misc"}, age_group="", category_id="cat-misc")
        config = generate_config.model_copy(update={"languages": ["en"]})

        AutoGenerateJob(storage, config, llm=mock_llm).execute(job_ctx)

        prompt = mock_llm.generate_json.call_args.args[0][0]["content"]
        assert "Audience age group: adults" in prompt
        assert {t.min_age for t in storage.list_tasks("cat-misc")} == {18}

    def test_retries_retryable_errors(self, storage, generate_config, mock_llm, job_ctx):
        storage.create_category({"en": "Party"}, category_id="cat-party")
        config = generate_config.model_copy(update={"languages": ["en"]})
        mock_llm.generate_json.side_effect = [LLMRateLimitError("429"), PAYLOAD]

        stats = AutoGenerateJob(storage, config, llm=mock_llm).execute(job_ctx)

        assert mock_llm.generate_json.call_count == 2
        assert stats.success_count == 1
        assert stats.tasks_created == 3

    def test_gives_up_after_retry_max(self, storage, generate_config, mock_llm, job_ctx):
        storage.create_category({"en": "Party"}, category_id="cat-party")
        config = generate_config.model_copy(update={"languages": ["en"], "retry_max": 3})
        mock_llm.generate_json.side_effect = LLMUnavailableError("timeout")

        stats = AutoGenerateJob(storage, config, llm=mock_llm).execute(job_ctx)

        assert mock_llm.generate_json.call_count == 3
        assert stats.failure_count == 1
        assert stats.errors[0].category_id == "cat-party"
        assert stats.errors[0].language == "en"
        assert "timeout" in stats.errors[0].error

    def test_non_retryable_error_not_retried(self, storage, generate_config, mock_llm, job_ctx):
        storage.create_category({"en": "Party"}, category_id="cat-party")
        mock_llm.generate_json.side_effect = LLMAuthError("invalid api key")

        stats = AutoGenerateJob(storage, generate_config, llm=mock_llm).execute(job_ctx)

        # one call per language, no retries
        assert mock_llm.generate_json.call_count == 2
        assert stats.failure_count == 2
        assert stats.success_count == 0

    def test_one_failed_pair_does_not_stop_the_rest(
        self, populated_storage, generate_config, mock_llm, job_ctx
    ):
        mock_llm.generate_json.side_effect = [LLMAuthError("nope"), PAYLOAD, PAYLOAD, PAYLOAD]

        stats = AutoGenerateJob(populated_storage, generate_config, llm=mock_llm).execute(job_ctx)

        assert stats.total_attempts == 4
        assert stats.success_count == 3
        assert stats.failure_count == 1

    def test_non_object_reply_is_failure(self, storage, generate_config, mock_llm, job_ctx):
        storage.create_category({"en": "Party"})
        config = generate_config.model_copy(update={"languages": ["en"]})
        mock_llm.generate_json.return_value = ["not", "an", "object"]

        stats = AutoGenerateJob(storage, config, llm=mock_llm).execute(job_ctx)

        assert stats.failure_count == 1
        assert mock_llm.generate_json.call_count == 1

    def test_blank_items_skipped(self, storage, generate_config, mock_llm, job_ctx):
        storage.create_category({"en": "Party"})
        config = generate_config.model_copy(update={"languages": ["en"]})
        mock_llm.generate_json.return_value = {"truths": ["Real question?", "  ", 7], "dares": None}

        stats = AutoGenerateJob(storage, config, llm=mock_llm).execute(job_ctx)

        assert stats.tasks_created == 1

    def test_failed_insert_skipped(self, generate_config, mock_llm, job_ctx, populated_storage):
        storage = MagicMock(wraps=populated_storage)
        storage.create_task.side_effect = [RuntimeError("disk full"), None, None] * 4
        config = generate_config.model_copy(update={"languages": ["en"]})

        stats = AutoGenerateJob(storage, config, llm=mock_llm).execute(job_ctx)

        assert stats.success_count == 2
        assert stats.tasks_created == 4

    def test_cancelled_before_next_pair(
        self, populated_storage, generate_config, mock_llm, job_ctx, cancel_event
    ):
        def reply(*args, **kwargs):
            cancel_event.set()
            return PAYLOAD

        mock_llm.generate_json.side_effect = reply

        with pytest.raises(JobCancelledError):
            AutoGenerateJob(populated_storage, generate_config, llm=mock_llm).execute(job_ctx)
        assert mock_llm.generate_json.call_count == 1

    def test_cancel_interrupts_retry_wait(self, storage, generate_config, mock_llm, job_ctx, cancel_event):
        storage.create_category({"en": "Party"})
        config = AutoGenerateConfig(languages=["en"], retry_max=3, retry_delay_seconds=30)

        def reply(*args, **kwargs):
            cancel_event.set()
            raise LLMRateLimitError("429")

        mock_llm.generate_json.side_effect = reply

        with pytest.raises(JobCancelledError):
            AutoGenerateJob(storage, config, llm=mock_llm).execute(job_ctx)
        assert mock_llm.generate_json.call_count == 1
