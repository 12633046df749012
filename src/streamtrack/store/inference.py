"""Weekly-recurrence schedule inference.

Broadcasters rarely publish official schedules, so upcoming slots are
predicted from when they actually went live. The display window is shifted
back by 1, 2 and 3 weeks; start times observed inside those lookback windows
are expressed as offsets from the shifted window start, clustered by
single linkage, and every cluster supported by enough distinct weeks becomes
one predicted slot at the cluster mean rounded to a quarter hour.

A window only counts as evidence if recording had already started for that
broadcaster by the window's start, so a newly tracked broadcaster is not
penalised for weeks nobody was watching. With ``n`` covered weeks, a cluster
needs ``max(1, n - 1)`` distinct weeks: one missed week is tolerated once
there is enough history to afford it.

History is read through exactly four queries per call regardless of roster
size: one for every broadcaster's earliest observation and one per lookback
window.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from ..domain.types import FollowedEntry, ScheduledSegment
from ..infra.logging import get_logger

log = get_logger(__name__)

LOOKBACK_WEEKS = (1, 2, 3)
LINKAGE_SECONDS = 3600
ROUNDING_SECONDS = 900

# (offset seconds from the lookback window start, lookback week number)
OffsetSample = tuple[int, int]


class HistorySource(Protocol):
    """Batched history reads the inferencer needs (implemented by HistoryStore)."""

    def earliest_observations(self, broadcaster_ids: Sequence[int]) -> dict[int, datetime]: ...

    def observations_between(
        self, broadcaster_ids: Sequence[int], start: datetime, end: datetime
    ) -> dict[int, list[datetime]]: ...


@dataclass(frozen=True)
class LookbackWindow:
    week: int
    start: datetime
    end: datetime


def lookback_windows(
    window_start: datetime,
    window_end: datetime,
    weeks: Iterable[int] = LOOKBACK_WEEKS,
) -> list[LookbackWindow]:
    """The display window shifted back by each whole number of weeks."""
    return [
        LookbackWindow(week=w, start=window_start - timedelta(weeks=w), end=window_end - timedelta(weeks=w))
        for w in weeks
    ]


def cluster_offsets(
    samples: Iterable[OffsetSample],
    linkage_seconds: int = LINKAGE_SECONDS,
) -> list[list[OffsetSample]]:
    """Single-linkage clustering of offsets.

    A sample joins a cluster when it lies strictly closer than
    ``linkage_seconds`` to any member already in it, so chains of close
    samples merge even when their extremes are far apart. Clusters come back
    in ascending offset order of their first member.
    """
    ordered = sorted(samples, key=lambda s: s[0])
    used = [False] * len(ordered)
    clusters: list[list[OffsetSample]] = []

    for i, seed in enumerate(ordered):
        if used[i]:
            continue
        used[i] = True
        cluster = [seed]

        changed = True
        while changed:
            changed = False
            for j, candidate in enumerate(ordered):
                if used[j]:
                    continue
                if any(abs(candidate[0] - member[0]) < linkage_seconds for member in cluster):
                    cluster.append(candidate)
                    used[j] = True
                    changed = True

        clusters.append(cluster)

    return clusters


def round_to_step(value: float, step: int = ROUNDING_SECONDS) -> int:
    """Round a non-negative value to the nearest multiple of ``step`` (halves go up)."""
    return int(math.floor(value / step + 0.5)) * step


def predict_offsets(
    earliest: datetime,
    windows: Sequence[LookbackWindow],
    observations_by_week: Mapping[int, Sequence[datetime]],
    window_seconds: int,
    *,
    linkage_seconds: int = LINKAGE_SECONDS,
    rounding_seconds: int = ROUNDING_SECONDS,
) -> list[int]:
    """Predicted offsets (seconds from the display window start) for one broadcaster."""
    covered = [w for w in windows if w.start >= earliest]
    if not covered:
        return []

    threshold = max(1, len(covered) - 1)

    samples: list[OffsetSample] = []
    for window in covered:
        for observed in observations_by_week.get(window.week, ()):
            offset = int((observed - window.start).total_seconds())
            if 0 <= offset <= window_seconds:
                samples.append((offset, window.week))

    predicted: list[int] = []
    for cluster in cluster_offsets(samples, linkage_seconds):
        if len({week for _, week in cluster}) < threshold:
            continue
        mean = sum(offset for offset, _ in cluster) / len(cluster)
        predicted.append(round_to_step(mean, rounding_seconds))
    return predicted


def inferred_segment_id(broadcaster_id: int, offset: int) -> str:
    return f"inferred_{broadcaster_id}_{offset}"


class RecurrenceInferencer:
    """Produces synthetic schedule entries from stream history."""

    def __init__(
        self,
        *,
        weeks: Sequence[int] = LOOKBACK_WEEKS,
        linkage_seconds: int = LINKAGE_SECONDS,
        rounding_seconds: int = ROUNDING_SECONDS,
    ) -> None:
        self.weeks = tuple(weeks)
        self.linkage_seconds = linkage_seconds
        self.rounding_seconds = rounding_seconds

    def infer(
        self,
        source: HistorySource,
        roster: Mapping[int | str, FollowedEntry],
        window_start: datetime,
        window_end: datetime,
    ) -> list[ScheduledSegment]:
        """Predicted segments for *roster* inside ``[window_start, window_end]``.

        Roster keys that are not numeric broadcaster ids are ignored. The
        result is sorted by predicted start time.
        """
        entries: dict[int, FollowedEntry] = {}
        for key, entry in roster.items():
            try:
                entries[int(key)] = entry
            except (TypeError, ValueError):
                log.warning("inference.roster_key_skipped", key=key)

        if not entries or window_end < window_start:
            return []

        ids = sorted(entries)
        window_seconds = int((window_end - window_start).total_seconds())
        windows = lookback_windows(window_start, window_end, self.weeks)

        earliest = source.earliest_observations(ids)
        per_window = {w.week: source.observations_between(ids, w.start, w.end) for w in windows}

        inferred: list[ScheduledSegment] = []
        for broadcaster_id in ids:
            first_seen = earliest.get(broadcaster_id)
            if first_seen is None:
                continue

            observations = {
                week: hits.get(broadcaster_id, []) for week, hits in per_window.items()
            }
            offsets = predict_offsets(
                first_seen,
                windows,
                observations,
                window_seconds,
                linkage_seconds=self.linkage_seconds,
                rounding_seconds=self.rounding_seconds,
            )

            entry = entries[broadcaster_id]
            for offset in offsets:
                predicted = window_start + timedelta(seconds=offset)
                if predicted < window_start:
                    continue
                inferred.append(
                    ScheduledSegment(
                        id=inferred_segment_id(broadcaster_id, offset),
                        broadcaster_id=broadcaster_id,
                        start_time=predicted,
                        title="",
                        end_time=None,
                        category_name=None,
                        category_id=None,
                        is_recurring=False,
                        broadcaster_login=entry.login,
                        broadcaster_name=entry.name,
                        is_inferred=True,
                    )
                )

        inferred.sort(key=lambda s: (s.start_time, s.broadcaster_id))
        log.debug("inference.done", broadcasters=len(ids), predicted=len(inferred))
        return inferred
