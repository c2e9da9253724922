"""Shared test fixtures for the content job runner."""

import sys
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cli.config_models import AppConfig, AutoGenerateConfig, CleanupConfig, SchedulerConfig  # noqa: E402
from content import ContentStorage  # noqa: E402
from observability import Metrics  # noqa: E402
from scheduler.job import JobContext  # noqa: E402


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "truthordare.db"


@pytest.fixture
def storage(db_path):
    return ContentStorage(db_path)


@pytest.fixture
def populated_storage(storage):
    """Two active categories (one consent-gated) and one inactive."""
    storage.create_category(
        {"en": "Party", "es": "Fiesta"},
        emoji="🎉",
        age_group="teen",
        sort_order=1,
        category_id="cat-party",
    )
    storage.create_category(
        {"en": "Spicy"},
        emoji="🌶️",
        age_group="adults",
        requires_consent=True,
        sort_order=2,
        category_id="cat-spicy",
    )
    storage.create_category(
        {"en": "Retired"},
        is_active=False,
        sort_order=3,
        category_id="cat-retired",
    )
    return storage


@pytest.fixture
def mock_llm():
    """LLM provider double returning a fixed truths/dares payload."""
    llm = MagicMock()
    llm.provider_name = "mock"
    llm.model = "mock-model"
    llm.generate_json.return_value = {
        "truths": ["What is your biggest fear?", "Who was your first crush?"],
        "dares": ["Sing the chorus of your favourite song."],
    }
    return llm


@pytest.fixture
def metrics():
    return Metrics()


@pytest.fixture
def scheduler_config():
    return SchedulerConfig(drain_timeout_seconds=5.0)


@pytest.fixture
def app_config(db_path):
    return AppConfig.from_dict(
        {
            "paths": {"db": str(db_path)},
            "scheduler": {"drain_timeout_seconds": 5.0},
            "auto_generate": {
                "languages": ["en", "es"],
                "retry_delay_seconds": 0,
                "request_delay_seconds": 0,
            },
        }
    )


@pytest.fixture
def cleanup_config():
    return CleanupConfig()


@pytest.fixture
def generate_config():
    return AutoGenerateConfig(
        languages=["en", "es"],
        retry_max=3,
        retry_delay_seconds=0,
        request_delay_seconds=0,
    )


@pytest.fixture
def cancel_event():
    return threading.Event()


@pytest.fixture
def job_ctx(cancel_event):
    return JobContext("test-job", cancel_event, trigger="manual")
