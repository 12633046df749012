from __future__ import annotations

import json
from pathlib import Path

import typer

from ._common import DB_OPTION_HELP, open_store

app = typer.Typer(name="roster", help="Followed roster inspection")


@app.command("list")
def list_roster(
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List followed broadcasters ordered by id."""
    with open_store(db) as store:
        entries = store.followed_entries()

    if json_output:
        payload = [
            {
                "broadcaster_id": e.broadcaster_id,
                "login": e.login,
                "name": e.name,
                "followed_at": e.followed_at.isoformat(),
            }
            for e in entries
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    if not entries:
        typer.echo("No followed broadcasters")
        return
    for e in entries:
        typer.echo(f"{e.broadcaster_id}\t{e.login}\t{e.name}")
