"""Pydantic configuration models for the content job runner."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from content.models import SUPPORTED_LANGUAGES, is_valid_language

VALID_LLM_PROVIDERS = {"auto", "openai", "claude"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "auto"
    model: Optional[str] = None  # None = provider default
    api_key: Optional[str] = None
    base_url: Optional[str] = "https://api.groq.com/openai/v1"
    timeout_seconds: float = 60.0

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    db: Path = Path("~/truthordare/truthordare.db")
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db = self.db.expanduser()
        if self.log_file:
            self.log_file = self.log_file.expanduser()
        return self


class SchedulerConfig(BaseModel):
    """Background scheduler settings shared by all jobs."""

    enabled: bool = True
    timezone: Optional[str] = None  # None = local time, like cron
    max_workers: int = Field(default=4, ge=1)
    allow_overlap: bool = False
    misfire_grace_seconds: int = Field(default=300, ge=1)
    drain_timeout_seconds: float = Field(default=30.0, gt=0)


class CleanupConfig(BaseModel):
    """Retention cleanup job."""

    enabled: bool = True
    # Schedules are validated at job registration so one bad value only
    # disables its own job
    schedule: str = "0 0 * * 0"
    retention_months: int = Field(default=2, ge=0)
    vacuum: bool = True


class AutoGenerateConfig(BaseModel):
    """AI task auto-generation job."""

    enabled: bool = True
    schedule: str = "0 2 * * 0"
    count: int = Field(default=5, ge=1)
    retry_max: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=60.0, ge=0)
    request_delay_seconds: float = Field(default=0.5, ge=0)
    temperature: float = 0.8
    max_tokens: int = 2000
    languages: list[str] = Field(default_factory=lambda: list(SUPPORTED_LANGUAGES))

    @field_validator("languages")
    @classmethod
    def validate_languages(cls, v: list[str]) -> list[str]:
        unknown = [code for code in v if not is_valid_language(code)]
        if unknown:
            raise ValueError(f"Unsupported languages: {unknown}. Must be in {SUPPORTED_LANGUAGES}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class AppConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    auto_generate: AutoGenerateConfig = Field(default_factory=AutoGenerateConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        if self.llm.api_key:
            key = self.llm.api_key
            if key.startswith("${") and key.endswith("}"):
                env_var = key[2:-1]
                self.llm.api_key = os.getenv(env_var, "")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        """Create config from dict."""
        if "paths" in data:
            for key in ["db", "log_file"]:
                if isinstance(data["paths"].get(key), str):
                    data["paths"][key] = Path(data["paths"][key])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
