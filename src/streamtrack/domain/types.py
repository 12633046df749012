"""
Value types exchanged with the store.

Callers only ever receive these copies, never ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple


class LiveObservation(NamedTuple):
    """A broadcaster seen live, as reported by the live-stream poll."""

    broadcaster_id: int | str
    started_at: datetime


class StaleBroadcaster(NamedTuple):
    broadcaster_id: int
    login: str
    name: str


@dataclass(frozen=True)
class FollowedEntry:
    """One row of the followed roster."""

    broadcaster_id: int
    login: str
    name: str
    followed_at: datetime


@dataclass(frozen=True)
class ScheduledSegment:
    """A broadcast slot, either officially published or inferred from history.

    ``broadcaster_login``/``broadcaster_name`` are filled from the roster when
    read back; they are ignored on write. ``is_inferred`` marks predictions
    that were never fetched from upstream and are never persisted.
    """

    id: str
    broadcaster_id: int
    start_time: datetime
    title: str = ""
    end_time: datetime | None = None
    category_name: str | None = None
    category_id: str | None = None
    is_recurring: bool = False
    broadcaster_login: str = ""
    broadcaster_name: str = ""
    is_inferred: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "broadcaster_id": self.broadcaster_id,
            "broadcaster_login": self.broadcaster_login,
            "broadcaster_name": self.broadcaster_name,
            "title": self.title,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "category_name": self.category_name,
            "category_id": self.category_id,
            "is_recurring": self.is_recurring,
            "is_inferred": self.is_inferred,
        }
