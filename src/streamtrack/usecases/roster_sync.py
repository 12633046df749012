from __future__ import annotations

from collections.abc import Iterable

from ..domain.types import FollowedEntry
from ..infra.logging import get_logger
from ..store.history_store import HistoryStore

log = get_logger(__name__)


def apply_roster_snapshot(store: HistoryStore, entries: Iterable[FollowedEntry]) -> list[int]:
    """Replace the roster with a complete snapshot and enqueue every entry.

    New broadcasters start out never checked; freshness of already queued ones
    is kept. Returns the synced broadcaster ids.
    """
    snapshot = list(entries)
    store.sync_roster(snapshot)
    ids = [e.broadcaster_id for e in snapshot]
    store.ensure_entries(ids)
    log.info("roster.snapshot_applied", count=len(ids))
    return ids
