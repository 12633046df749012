"""
Refresh the official schedule of one stale broadcaster.

One broadcaster per call: the poller decides how often to call, which is how
outbound request rate is limited.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

from ..domain.types import ScheduledSegment, StaleBroadcaster
from ..infra.exceptions import ScheduleFetchError
from ..infra.logging import get_logger
from ..store.history_store import HistoryStore

log = get_logger(__name__)

ScheduleFetcher = Callable[[StaleBroadcaster], list[ScheduledSegment]]


class RefreshOutcome(NamedTuple):
    broadcaster: StaleBroadcaster
    segments_stored: int
    checked: bool


def refresh_next_stale(
    store: HistoryStore,
    fetch: ScheduleFetcher,
    threshold_seconds: int,
) -> RefreshOutcome | None:
    """Fetch and store the schedule of the stalest followed broadcaster.

    An empty fetch result is a definitive "no schedule" and still marks the
    broadcaster checked. A ScheduleFetchError leaves it unmarked so the next
    call retries it. Returns None when nobody is stale.
    """
    broadcaster = store.next_stale(threshold_seconds)
    if broadcaster is None:
        return None

    try:
        segments = list(fetch(broadcaster))
    except ScheduleFetchError as exc:
        log.warning(
            "schedule.fetch_failed",
            broadcaster_id=broadcaster.broadcaster_id,
            login=broadcaster.login,
            error=str(exc),
        )
        return RefreshOutcome(broadcaster=broadcaster, segments_stored=0, checked=False)

    store.replace_future(broadcaster.broadcaster_id, segments)
    store.mark_checked(broadcaster.broadcaster_id)
    log.info(
        "schedule.refreshed",
        broadcaster_id=broadcaster.broadcaster_id,
        login=broadcaster.login,
        segments=len(segments),
    )
    return RefreshOutcome(broadcaster=broadcaster, segments_stored=len(segments), checked=True)
