from __future__ import annotations

import json
from pathlib import Path

import typer

from ...infra.exceptions import ValidationError
from ...infra.settings import settings
from ._common import DB_OPTION_HELP, open_store

app = typer.Typer(name="queue", help="Schedule stale-queue operations")


@app.command("next")
def next_stale(
    stale_hours: int = typer.Option(None, "--stale-hours", min=0, help="Staleness threshold in hours"),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show the followed broadcaster whose schedule is most overdue for a refresh."""
    threshold = stale_hours * 3600 if stale_hours is not None else settings.schedule_stale_seconds

    with open_store(db) as store:
        stale = store.next_stale(threshold)

    if json_output:
        typer.echo(json.dumps(stale._asdict() if stale else None, indent=2))
        return

    if stale is None:
        typer.echo("Nothing stale")
    else:
        typer.echo(f"{stale.broadcaster_id}\t{stale.login}\t{stale.name}")


@app.command("mark")
def mark(
    broadcaster_id: str = typer.Argument(..., help="Numeric broadcaster id"),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Mark a broadcaster's schedule as checked now."""
    with open_store(db) as store:
        try:
            store.mark_checked(broadcaster_id)
        except ValidationError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e

    typer.echo(f"Marked {broadcaster_id} checked")
