from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import typer

from ...usecases.schedule_view import display_window, merged_schedule
from ._common import DB_OPTION_HELP, open_store, parse_timestamp

app = typer.Typer(name="schedule", help="Official and inferred schedule")


@app.command("show")
def show(
    at: str = typer.Option(None, "--at", help="Treat this ISO-8601 time as now"),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show the schedule for the display window around now.

    Inferred entries are predictions from past weeks and are marked with '~'.
    """
    now = parse_timestamp(at) if at else datetime.now(timezone.utc)
    start, end = display_window(now)

    with open_store(db) as store:
        segments = merged_schedule(store, start, end)

    if json_output:
        typer.echo(json.dumps([s.to_dict() for s in segments], indent=2))
        return

    if not segments:
        typer.echo("No scheduled streams")
        return
    for s in segments:
        marker = "~" if s.is_inferred else " "
        who = s.broadcaster_name or s.broadcaster_login or str(s.broadcaster_id)
        typer.echo(f"{marker} {s.start_time.isoformat()}  {who}  {s.title}".rstrip())
