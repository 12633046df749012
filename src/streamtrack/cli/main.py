"""
Main CLI application using Typer with router-based command dispatch.

This module provides the operator command-line interface for StreamTrack:
inspecting and poking the store that the pollers normally drive.
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from .commands import history, queue, roster, schedule
from .router import get_router

app = typer.Typer(help="StreamTrack operator CLI", no_args_is_help=True)

router = get_router(app)

router.register("history", history.app, help_text="Stream history recording and inspection")
router.register("roster", roster.app, help_text="Followed roster inspection")
router.register("queue", queue.app, help_text="Schedule stale-queue operations")
router.register("schedule", schedule.app, help_text="Official and inferred schedule")


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this run"),
):
    """StreamTrack operator CLI."""
    configure_logging(log_level)


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
