"""Tests for the one-at-a-time schedule stale queue."""

from __future__ import annotations

from sqlalchemy import select

from streamtrack.domain.entities import ScheduleLastChecked
from streamtrack.domain.types import StaleBroadcaster
from util.builders import entry

DAY = 24 * 3600


def _last_checked(store, broadcaster_id):
    with store._engine.connect() as conn:
        return conn.execute(
            select(ScheduleLastChecked.last_checked_at).where(
                ScheduleLastChecked.broadcaster_id == broadcaster_id
            )
        ).scalar_one_or_none()


class TestEnsureEntries:
    def test_new_rows_start_never_checked(self, store):
        store.ensure_entries([1, "2"])

        assert _last_checked(store, 1) == 0
        assert _last_checked(store, 2) == 0

    def test_existing_rows_are_not_reset(self, store):
        store.sync_roster([entry(1)])
        store.ensure_entries([1])
        store.mark_checked(1)
        store.ensure_entries([1])

        assert store.next_stale(1) is None


class TestNextStale:
    def test_returns_never_checked_broadcaster(self, store):
        store.sync_roster([entry(1, "alice", "Alice")])
        store.ensure_entries([1])

        assert store.next_stale(DAY) == StaleBroadcaster(1, "alice", "Alice")

    def test_unfollowed_broadcaster_is_invisible(self, store):
        store.sync_roster([entry(1)])
        store.ensure_entries([1, 2])
        store.mark_checked(1)

        assert store.next_stale(1) is None

    def test_followed_without_queue_row_is_invisible(self, store):
        store.sync_roster([entry(1)])

        assert store.next_stale(1) is None

    def test_oldest_check_first(self, store, clock):
        store.sync_roster([entry(1), entry(2)])
        store.ensure_entries([1, 2])
        store.mark_checked(2)
        clock.advance(3600)
        store.mark_checked(1)
        clock.advance(2 * DAY)

        assert store.next_stale(DAY).broadcaster_id == 2

    def test_ties_go_to_lowest_id(self, store):
        store.sync_roster([entry(9), entry(3), entry(5)])
        store.ensure_entries([9, 5, 3])

        assert store.next_stale(DAY).broadcaster_id == 3

    def test_threshold_must_be_exceeded(self, store, clock):
        store.sync_roster([entry(1)])
        store.ensure_entries([1])
        store.mark_checked(1)

        clock.advance(DAY)
        assert store.next_stale(DAY) is None

        clock.advance(1)
        assert store.next_stale(DAY).broadcaster_id == 1

    def test_roster_sync_keeps_freshness(self, store, clock):
        store.sync_roster([entry(1)])
        store.ensure_entries([1])
        store.mark_checked(1)

        store.sync_roster([entry(1), entry(2)])
        store.ensure_entries([1, 2])

        assert store.next_stale(DAY).broadcaster_id == 2


class TestMarkChecked:
    def test_sets_current_time(self, store, clock):
        store.ensure_entries([1])
        store.mark_checked(1)

        assert _last_checked(store, 1) == int(clock.now_utc().timestamp())

    def test_unknown_broadcaster_is_a_no_op(self, store):
        store.mark_checked(77)

        assert _last_checked(store, 77) is None
