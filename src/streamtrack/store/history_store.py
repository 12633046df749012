"""History Store: the persistent core of StreamTrack.

One SQLite file holds four tables: observed live starts (stream_history),
the followed roster snapshot, per-broadcaster stale-check timestamps, and
the cache of officially published schedule segments. The store owns all of
them; callers only ever get value copies back.

Concurrency: the engine holds a single DB-API connection and every operation
runs under ``self._lock`` inside one unit of work, so operations are fully
serialized and multi-statement writes commit or roll back as a whole.

Scheduled segments with a start time in the past are never deleted by a
refresh. They stay behind as history.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.engine import Engine

from ..domain.entities import Followed, ScheduledStream, ScheduleLastChecked, StreamHistory
from ..domain.types import FollowedEntry, ScheduledSegment, StaleBroadcaster
from ..infra.db import create_store_engine, get_sessionmaker, init_schema, migrate_legacy_file
from ..infra.exceptions import StoreInitError, ValidationError
from ..infra.logging import get_logger
from ..infra.uow import session
from ..runtime.clock import Clock, SystemClock, from_unix, to_unix
from .inference import RecurrenceInferencer

log = get_logger(__name__)

_MALFORMED = (OverflowError, OSError, ValueError)


def parse_broadcaster_id(value: int | str) -> int:
    """Numeric broadcaster id from an int or a numeric string."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid broadcaster id: {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"Invalid broadcaster id: {value!r}") from exc


def _unix(dt: datetime, what: str) -> int:
    if not isinstance(dt, datetime):
        raise ValidationError(f"{what} must be a datetime: {dt!r}")
    try:
        return to_unix(dt)
    except ValueError as exc:
        raise ValidationError(f"{what} must be timezone-aware: {dt!r}") from exc


def _category_id(value: str | int | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        log.debug("store.category_id_dropped", category_id=value)
        return None


class HistoryStore:
    """Embedded store of stream history, roster, stale queue and schedule cache."""

    def __init__(
        self,
        engine: Engine,
        *,
        clock: Clock | None = None,
        inferencer: RecurrenceInferencer | None = None,
    ) -> None:
        self._engine = engine
        self._sessions = get_sessionmaker(engine)
        self._clock = clock or SystemClock()
        self._inferencer = inferencer or RecurrenceInferencer()
        # Reentrant so infer_schedule can hold it across its four reads.
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        clock: Clock | None = None,
        legacy_filename: str | None = None,
    ) -> HistoryStore:
        """Open (creating if needed) the store file at *path*.

        A legacy-named file next to *path* is renamed into place first.
        Any failure raises StoreInitError.
        """
        db_path = Path(path)
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreInitError(f"Failed to create data directory {db_path.parent}: {exc}") from exc

        migrate_legacy_file(db_path, legacy_filename)

        engine = create_store_engine(db_path)
        try:
            init_schema(engine)
        except StoreInitError:
            engine.dispose()
            raise
        log.info("store.opened", path=str(db_path))
        return cls(engine, clock=clock)

    @classmethod
    def in_memory(cls, *, clock: Clock | None = None) -> HistoryStore:
        """A store over a private in-memory database."""
        engine = create_store_engine(None)
        init_schema(engine)
        return cls(engine, clock=clock)

    def close(self) -> None:
        with self._lock:
            self._engine.dispose()

    def __enter__(self) -> HistoryStore:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # History recorder
    # ------------------------------------------------------------------

    def record(self, observations: Iterable[tuple[int | str, datetime]]) -> int:
        """Insert-or-ignore each (broadcaster_id, started_at) pair.

        The whole batch is validated before anything is written. Returns the
        number of rows that were new.
        """
        rows = []
        for observation in observations:
            try:
                bid, started_at = observation
            except (TypeError, ValueError) as exc:
                raise ValidationError(
                    f"Observation must be a (broadcaster_id, started_at) pair: {observation!r}"
                ) from exc
            rows.append(
                {"user_id": parse_broadcaster_id(bid), "started_at": _unix(started_at, "started_at")}
            )
        if not rows:
            return 0

        inserted = 0
        with self._lock, session(self._sessions) as db:
            for row in rows:
                stmt = insert(StreamHistory).values(**row).on_conflict_do_nothing()
                inserted += db.execute(stmt).rowcount or 0

        log.debug("store.history_recorded", observed=len(rows), inserted=inserted)
        return inserted

    def earliest_observations(self, broadcaster_ids: Sequence[int]) -> dict[int, datetime]:
        """Earliest recorded start per broadcaster, one query for all of them."""
        if not broadcaster_ids:
            return {}

        stmt = (
            select(StreamHistory.user_id, func.min(StreamHistory.started_at))
            .where(StreamHistory.user_id.in_(list(broadcaster_ids)))
            .group_by(StreamHistory.user_id)
        )
        with self._lock, session(self._sessions) as db:
            rows = db.execute(stmt).all()

        result: dict[int, datetime] = {}
        for user_id, started_at in rows:
            try:
                result[user_id] = from_unix(started_at)
            except _MALFORMED:
                log.warning("store.row_skipped", table="stream_history", user_id=user_id, value=started_at)
        return result

    def observations_between(
        self, broadcaster_ids: Sequence[int], start: datetime, end: datetime
    ) -> dict[int, list[datetime]]:
        """Recorded starts in ``[start, end]`` grouped by broadcaster, one query."""
        if not broadcaster_ids:
            return {}

        stmt = (
            select(StreamHistory.user_id, StreamHistory.started_at)
            .where(
                StreamHistory.user_id.in_(list(broadcaster_ids)),
                StreamHistory.started_at.between(_unix(start, "start"), _unix(end, "end")),
            )
            .order_by(StreamHistory.user_id, StreamHistory.started_at)
        )
        with self._lock, session(self._sessions) as db:
            rows = db.execute(stmt).all()

        result: dict[int, list[datetime]] = {}
        for user_id, started_at in rows:
            try:
                observed = from_unix(started_at)
            except _MALFORMED:
                log.warning("store.row_skipped", table="stream_history", user_id=user_id, value=started_at)
                continue
            result.setdefault(user_id, []).append(observed)
        return result

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def sync_roster(self, entries: Iterable[FollowedEntry]) -> None:
        """Replace the whole roster with *entries* in one transaction."""
        rows = [
            {
                "broadcaster_id": parse_broadcaster_id(e.broadcaster_id),
                "broadcaster_login": e.login,
                "broadcaster_name": e.name,
                "followed_at": _unix(e.followed_at, "followed_at"),
            }
            for e in entries
        ]

        with self._lock, session(self._sessions) as db:
            db.execute(delete(Followed))
            for row in rows:
                # A repeated id in one snapshot keeps its last occurrence.
                stmt = insert(Followed).values(**row)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Followed.broadcaster_id],
                    set_={
                        "broadcaster_login": stmt.excluded.broadcaster_login,
                        "broadcaster_name": stmt.excluded.broadcaster_name,
                        "followed_at": stmt.excluded.followed_at,
                    },
                )
                db.execute(stmt)

        log.info("store.roster_synced", count=len(rows))

    def followed_ids(self) -> list[int]:
        with self._lock, session(self._sessions) as db:
            return list(db.scalars(select(Followed.broadcaster_id).order_by(Followed.broadcaster_id)))

    def followed_entries(self) -> list[FollowedEntry]:
        with self._lock, session(self._sessions) as db:
            rows = db.scalars(select(Followed).order_by(Followed.broadcaster_id)).all()

        entries: list[FollowedEntry] = []
        for row in rows:
            try:
                followed_at = from_unix(row.followed_at)
            except _MALFORMED:
                log.warning("store.row_skipped", table="followed", broadcaster_id=row.broadcaster_id)
                continue
            entries.append(
                FollowedEntry(
                    broadcaster_id=row.broadcaster_id,
                    login=row.broadcaster_login,
                    name=row.broadcaster_name,
                    followed_at=followed_at,
                )
            )
        return entries

    def followed_lookup(self) -> dict[int, FollowedEntry]:
        return {e.broadcaster_id: e for e in self.followed_entries()}

    # ------------------------------------------------------------------
    # Stale queue
    # ------------------------------------------------------------------

    def ensure_entries(self, broadcaster_ids: Iterable[int | str]) -> None:
        """Create a never-checked row for each id that has none yet."""
        ids = [parse_broadcaster_id(bid) for bid in broadcaster_ids]
        if not ids:
            return

        with self._lock, session(self._sessions) as db:
            for bid in ids:
                stmt = (
                    insert(ScheduleLastChecked)
                    .values(broadcaster_id=bid, last_checked_at=0)
                    .on_conflict_do_nothing()
                )
                db.execute(stmt)

    def next_stale(self, threshold_seconds: int) -> StaleBroadcaster | None:
        """The followed broadcaster checked longest ago, if older than the threshold.

        Ties on the last-checked time go to the lowest broadcaster id.
        """
        cutoff = to_unix(self._clock.now_utc()) - int(threshold_seconds)
        stmt = (
            select(Followed.broadcaster_id, Followed.broadcaster_login, Followed.broadcaster_name)
            .join(ScheduleLastChecked, ScheduleLastChecked.broadcaster_id == Followed.broadcaster_id)
            .where(ScheduleLastChecked.last_checked_at < cutoff)
            .order_by(ScheduleLastChecked.last_checked_at.asc(), Followed.broadcaster_id.asc())
            .limit(1)
        )
        with self._lock, session(self._sessions) as db:
            row = db.execute(stmt).first()

        if row is None:
            return None
        return StaleBroadcaster(broadcaster_id=row[0], login=row[1], name=row[2])

    def mark_checked(self, broadcaster_id: int | str) -> None:
        bid = parse_broadcaster_id(broadcaster_id)
        now = to_unix(self._clock.now_utc())
        stmt = (
            update(ScheduleLastChecked)
            .where(ScheduleLastChecked.broadcaster_id == bid)
            .values(last_checked_at=now)
        )
        with self._lock, session(self._sessions) as db:
            updated = db.execute(stmt).rowcount

        if not updated:
            log.debug("store.mark_checked_missing", broadcaster_id=bid)

    # ------------------------------------------------------------------
    # Schedule cache
    # ------------------------------------------------------------------

    def replace_future(self, broadcaster_id: int | str, segments: Iterable[ScheduledSegment]) -> None:
        """Replace this broadcaster's segments starting at or after now.

        Past rows are kept. "Now" is read once, before the transaction.
        """
        bid = parse_broadcaster_id(broadcaster_id)
        rows = [
            {
                "id": seg.id,
                "broadcaster_id": bid,
                "title": seg.title or "",
                "start_time": _unix(seg.start_time, "start_time"),
                "end_time": _unix(seg.end_time, "end_time") if seg.end_time is not None else None,
                "category_name": seg.category_name,
                "category_id": _category_id(seg.category_id),
                "is_recurring": bool(seg.is_recurring),
            }
            for seg in segments
        ]
        now = to_unix(self._clock.now_utc())

        with self._lock, session(self._sessions) as db:
            db.execute(
                delete(ScheduledStream).where(
                    ScheduledStream.broadcaster_id == bid,
                    ScheduledStream.start_time >= now,
                )
            )
            for row in rows:
                stmt = insert(ScheduledStream).values(**row)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[ScheduledStream.id, ScheduledStream.broadcaster_id],
                    set_={
                        "title": stmt.excluded.title,
                        "start_time": stmt.excluded.start_time,
                        "end_time": stmt.excluded.end_time,
                        "category_name": stmt.excluded.category_name,
                        "category_id": stmt.excluded.category_id,
                        "is_recurring": stmt.excluded.is_recurring,
                    },
                )
                db.execute(stmt)

        log.debug("store.schedule_replaced", broadcaster_id=bid, segments=len(rows))

    def upcoming(self, window_start: datetime, window_end: datetime) -> list[ScheduledSegment]:
        """Official segments of followed broadcasters starting in ``[window_start, window_end]``."""
        stmt = (
            select(ScheduledStream, Followed.broadcaster_login, Followed.broadcaster_name)
            .join(Followed, Followed.broadcaster_id == ScheduledStream.broadcaster_id)
            .where(
                ScheduledStream.start_time.between(
                    _unix(window_start, "window_start"), _unix(window_end, "window_end")
                )
            )
            .order_by(ScheduledStream.start_time, ScheduledStream.broadcaster_id, ScheduledStream.id)
        )
        with self._lock, session(self._sessions) as db:
            rows = db.execute(stmt).all()

        segments: list[ScheduledSegment] = []
        for row, login, name in rows:
            try:
                start_time = from_unix(row.start_time)
                end_time = from_unix(row.end_time) if row.end_time is not None else None
            except _MALFORMED:
                log.warning(
                    "store.row_skipped", table="scheduled_streams", id=row.id, broadcaster_id=row.broadcaster_id
                )
                continue
            segments.append(
                ScheduledSegment(
                    id=row.id,
                    broadcaster_id=row.broadcaster_id,
                    start_time=start_time,
                    title=row.title,
                    end_time=end_time,
                    category_name=row.category_name,
                    category_id=str(row.category_id) if row.category_id is not None else None,
                    is_recurring=bool(row.is_recurring),
                    broadcaster_login=login,
                    broadcaster_name=name,
                    is_inferred=False,
                )
            )
        return segments

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def infer_schedule(
        self,
        roster_lookup: Mapping[int | str, FollowedEntry],
        window_start: datetime,
        window_end: datetime,
    ) -> list[ScheduledSegment]:
        """Predicted segments for the roster inside the window, sorted by start."""
        with self._lock:
            return self._inferencer.infer(self, roster_lookup, window_start, window_end)
