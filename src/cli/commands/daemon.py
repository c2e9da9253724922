"""Daemon CLI commands."""

import logging
import os
import signal
import threading

import click
import structlog
from rich.console import Console

from cli.logging_config import setup_logging
from cli.utils import format_time, get_components
from observability import log_run_summary

console = Console()
logger = structlog.get_logger().bind(source="daemon")

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _wait_for_signal() -> str:
    """Block until SIGINT or SIGTERM arrives. Returns the signal name."""
    received: list[str] = []
    stop = threading.Event()

    def _handler(signum, _frame):
        received.append(signal.Signals(signum).name)
        stop.set()

    previous = {sig: signal.signal(sig, _handler) for sig in _STOP_SIGNALS}
    try:
        while not stop.wait(1.0):
            pass
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return received[0]


@click.group()
def daemon():
    """Run the background scheduler."""
    pass


@daemon.command("start")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines (for log shippers)")
@click.pass_obj
def daemon_start(obj: dict, json_logs: bool):
    """Start the scheduler and block until SIGINT/SIGTERM."""
    c = get_components((obj or {}).get("config_path"))
    config = c["config"]
    scheduler = c["scheduler"]

    if json_logs:
        setup_logging(json_mode=True, level=config.logging.level, log_file=config.paths.log_file)

    scheduler.start()
    if not scheduler.running:
        console.print("[yellow]Scheduler disabled[/] (scheduler.enabled is false); nothing to run")
        return

    for info in scheduler.get_jobs():
        if info.enabled:
            console.print(
                f"[green]Scheduled[/] {info.name} ({info.schedule}), next run {format_time(info.next_run)}"
            )
        else:
            console.print(f"[dim]Disabled[/] {info.name}")
    console.print("Press Ctrl+C to stop")

    sig = _wait_for_signal()
    logger.info("shutdown_signal", signal=sig)
    console.print(
        f"\n[yellow]Stopping[/] (waiting up to {config.scheduler.drain_timeout_seconds:g}s "
        "for running jobs)"
    )

    drained = scheduler.shutdown()
    log_run_summary()
    if not drained:
        console.print("[red]Jobs still running after drain timeout; exiting anyway[/]")
        logging.shutdown()
        # pool workers are joined at interpreter exit; a stuck job would hang it
        os._exit(1)

    console.print("[yellow]Stopped[/]")
