"""
The schedule shown to the user: official segments plus predictions.

Predictions are only shown for followed broadcasters that have no official
segment in the window.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from ..domain.types import ScheduledSegment
from ..infra.settings import Settings
from ..infra.settings import settings as default_settings
from ..store.history_store import HistoryStore


def display_window(now: datetime, settings: Settings | None = None) -> tuple[datetime, datetime]:
    """``(now - lookbehind, now + lookahead)`` per settings."""
    cfg = settings or default_settings
    return (
        now - timedelta(minutes=cfg.schedule_lookbehind_min),
        now + timedelta(hours=cfg.schedule_lookahead_hours),
    )


def merged_schedule(store: HistoryStore, start: datetime, end: datetime) -> list[ScheduledSegment]:
    official = store.upcoming(start, end)
    covered = {seg.broadcaster_id for seg in official}

    roster = {bid: entry for bid, entry in store.followed_lookup().items() if bid not in covered}
    inferred = store.infer_schedule(roster, start, end) if roster else []

    # Official before inferred on equal start times.
    return sorted(official + inferred, key=lambda s: (s.start_time, s.is_inferred))
