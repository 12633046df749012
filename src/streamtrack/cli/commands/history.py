from __future__ import annotations

import json
from pathlib import Path

import typer

from ...infra.exceptions import ValidationError
from ._common import DB_OPTION_HELP, open_store, parse_timestamp

app = typer.Typer(name="history", help="Stream history recording and inspection")


@app.command("record")
def record(
    broadcaster_id: str = typer.Argument(..., help="Numeric broadcaster id"),
    started_at: str = typer.Argument(..., help="Stream start time (ISO-8601, UTC if no offset)"),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Record that a broadcaster went live at a given time.

    Recording the same start twice is a no-op.

    Examples:
        streamtrack history record 12345 2025-07-09T15:00:00Z
    """
    started = parse_timestamp(started_at)

    with open_store(db) as store:
        try:
            inserted = store.record([(broadcaster_id, started)])
        except ValidationError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e

    if json_output:
        payload = {"status": "ok", "broadcaster_id": int(broadcaster_id), "inserted": inserted}
        typer.echo(json.dumps(payload, indent=2))
    elif inserted:
        typer.echo(f"Recorded {broadcaster_id} live at {started.isoformat()}")
    else:
        typer.echo(f"Already recorded: {broadcaster_id} at {started.isoformat()}")


@app.command("earliest")
def earliest(
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show the earliest recorded stream start for every followed broadcaster."""
    with open_store(db) as store:
        roster = store.followed_entries()
        first_seen = store.earliest_observations([e.broadcaster_id for e in roster])

    if json_output:
        payload = [
            {
                "broadcaster_id": e.broadcaster_id,
                "login": e.login,
                "earliest": first_seen[e.broadcaster_id].isoformat() if e.broadcaster_id in first_seen else None,
            }
            for e in roster
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    if not roster:
        typer.echo("No followed broadcasters")
        return
    for e in roster:
        seen = first_seen.get(e.broadcaster_id)
        typer.echo(f"{e.broadcaster_id}\t{e.login}\t{seen.isoformat() if seen else '-'}")
