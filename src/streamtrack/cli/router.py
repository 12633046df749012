"""
CLI Router: Centralized command group registration.

Each command group is a Typer app that handles its own subcommands; the
router adds it to the root app and keeps a record of what was registered.
"""

from __future__ import annotations

from typing import Any

import typer


class CliRouter:
    """Explicit registration of command groups on a root Typer app."""

    def __init__(self, root_app: typer.Typer) -> None:
        self.root_app = root_app
        self._registered_groups: dict[str, dict[str, Any]] = {}

    def register(self, name: str, command_group: typer.Typer, *, help_text: str | None = None) -> None:
        """
        Register a command group with the router.

        Args:
            name: Command group name (e.g., "history", "queue")
            command_group: Typer app instance for this command group
            help_text: Help text for the command group
        """
        if name in self._registered_groups:
            raise ValueError(f"Command group '{name}' is already registered")

        self.root_app.add_typer(command_group, name=name, help=help_text)
        self._registered_groups[name] = {
            "name": name,
            "help": help_text,
            "command_group": command_group,
        }

    def get_registered_groups(self) -> dict[str, dict[str, Any]]:
        return self._registered_groups.copy()

    def is_registered(self, name: str) -> bool:
        return name in self._registered_groups


def get_router(app: typer.Typer) -> CliRouter:
    return CliRouter(app)
