"""Helpers shared by the command groups: store opening, option types, parsing."""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from datetime import datetime, timezone
from pathlib import Path

import typer

from ...infra.exceptions import StorageError
from ...infra.settings import settings
from ...store.history_store import HistoryStore

DB_OPTION_HELP = "Path to the StreamTrack database file (default: settings data dir)"


@contextlib.contextmanager
def open_store(db: Path | None) -> Generator[HistoryStore, None, None]:
    """Open the store for one command; storage errors exit 1 with a message on stderr."""
    path = db or settings.db_path
    try:
        with HistoryStore.open(path) as store:
            yield store
    except StorageError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc


def parse_timestamp(value: str) -> datetime:
    """ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid ISO-8601 timestamp: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
