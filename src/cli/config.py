"""Configuration loading: YAML file, then environment overrides."""

import os
from pathlib import Path
from typing import Callable, Mapping, Optional

import structlog
import yaml

from .config_models import AppConfig

logger = structlog.get_logger().bind(source="config")

_TRUE = {"1", "t", "true"}
_FALSE = {"0", "f", "false"}


def _parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_base_url(value: str) -> str:
    # Deployments set the full endpoint; the SDK wants the API root
    return value.strip().removesuffix("/").removesuffix("/chat/completions")


# env var -> (section, field, parser). First match wins for aliased fields.
ENV_OVERRIDES: list[tuple[str, str, str, Callable[[str], object]]] = [
    ("SCHEDULER_ENABLED", "scheduler", "enabled", _parse_bool),
    ("SCHEDULER_TIMEZONE", "scheduler", "timezone", str),
    ("SCHEDULER_DRAIN_TIMEOUT_SECONDS", "scheduler", "drain_timeout_seconds", float),
    ("CLEANUP_ENABLED", "cleanup", "enabled", _parse_bool),
    ("CLEANUP_CRON", "cleanup", "schedule", str),
    ("CLEANUP_RETENTION_MONTHS", "cleanup", "retention_months", int),
    ("AUTO_GENERATE_ENABLED", "auto_generate", "enabled", _parse_bool),
    ("AUTO_GENERATE_CRON", "auto_generate", "schedule", str),
    ("AUTO_GENERATE_COUNT", "auto_generate", "count", int),
    ("AUTO_GENERATE_RETRY_MAX", "auto_generate", "retry_max", int),
    ("AUTO_GENERATE_RETRY_DELAY_SECONDS", "auto_generate", "retry_delay_seconds", float),
    ("DB_PATH", "paths", "db", Path),
    ("AI_API_URL", "llm", "base_url", _parse_base_url),
    ("GROQ_API_URL", "llm", "base_url", _parse_base_url),
    ("AI_MODEL", "llm", "model", str),
    ("GROQ_MODEL", "llm", "model", str),
    ("LOG_LEVEL", "logging", "level", str),
]


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / "config.yaml",
        Path.home() / ".truthordare" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def apply_env_overrides(data: dict, environ: Optional[Mapping[str, str]] = None) -> dict:
    """Overlay environment variables onto a raw config dict.

    Values that fail to parse are ignored and the file/default value is kept.
    """
    env = os.environ if environ is None else environ
    result = {k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()}
    applied: set[tuple[str, str]] = set()

    for env_var, section, field, parser in ENV_OVERRIDES:
        raw = env.get(env_var)
        if raw is None or raw == "" or (section, field) in applied:
            continue
        try:
            value = parser(raw)
        except ValueError:
            logger.warning("config_env_ignored", env_var=env_var, value=raw)
            continue
        if not isinstance(result.get(section), dict):
            result[section] = {}
        result[section][field] = value
        applied.add((section, field))

    return result


def load_config_model(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Load configuration as Pydantic model with validation."""
    base_config = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")

    merged = apply_env_overrides(base_config, environ)

    try:
        return AppConfig.from_dict(merged)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration as a plain dict."""
    return load_config_model(config_path).to_dict()
