"""Shared CLI utilities."""

import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

console = Console()


def get_components(config_path: Optional[Path] = None, with_llm: bool = True) -> dict:
    """Initialize config, storage, LLM provider and an unstarted scheduler.

    Args:
        config_path: Explicit config file; None searches the standard locations
        with_llm: If False, skip provider construction (commands that never call the LLM)
    """
    from cli.config import load_config_model
    from content import ContentStorage, PromptLoader
    from scheduler import build_llm_provider, setup

    try:
        config = load_config_model(config_path)
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    storage = ContentStorage(config.paths.db)
    prompts = PromptLoader()
    llm = build_llm_provider(config) if with_llm else None
    scheduler = setup(config, storage, llm=llm, prompts=prompts)

    return {
        "config": config,
        "storage": storage,
        "prompts": prompts,
        "llm": llm,
        "scheduler": scheduler,
    }


def format_time(value) -> str:
    """Short local rendering of an optional datetime for tables."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M %Z").strip()
