"""Small builders for roster entries and segments used across tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from streamtrack.domain.types import FollowedEntry, ScheduledSegment

# Wednesday afternoon; the inference tests look back from here.
NOW = datetime(2025, 7, 16, 14, 0, 0, tzinfo=timezone.utc)

FOLLOWED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def entry(broadcaster_id: int, login: str | None = None, name: str | None = None) -> FollowedEntry:
    login = login or f"user{broadcaster_id}"
    return FollowedEntry(
        broadcaster_id=broadcaster_id,
        login=login,
        name=name or login.title(),
        followed_at=FOLLOWED_AT,
    )


def segment(
    seg_id: str,
    broadcaster_id: int,
    start_time: datetime,
    *,
    title: str = "",
    duration: timedelta | None = None,
    category_id: str | None = None,
) -> ScheduledSegment:
    return ScheduledSegment(
        id=seg_id,
        broadcaster_id=broadcaster_id,
        start_time=start_time,
        title=title,
        end_time=start_time + duration if duration else None,
        category_id=category_id,
    )
