"""End-to-end recurrence inference against a populated store."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import event

from streamtrack.domain.types import ScheduledSegment
from streamtrack.store.inference import RecurrenceInferencer
from util.builders import NOW, entry

WINDOW_START = NOW - timedelta(minutes=15)
WINDOW_END = NOW + timedelta(hours=6)


def _weeks_ago(weeks, hour, minute=0):
    return NOW.replace(hour=hour, minute=minute) - timedelta(weeks=weeks)


def _track_since(store, broadcaster_id, weeks=5):
    """Record an old observation so every lookback week counts as covered."""
    store.record([(broadcaster_id, NOW - timedelta(weeks=weeks))])


@pytest.fixture
def count_queries():
    def attach(engine):
        statements = []

        @event.listens_for(engine, "before_cursor_execute")
        def _count(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        return statements

    return attach


class TestInferSchedule:
    def test_two_of_three_weeks_predicts(self, store):
        _track_since(store, 1)
        store.record([(1, _weeks_ago(1, 15)), (1, _weeks_ago(2, 15, 10))])
        roster = {1: entry(1, "alice", "Alice")}

        (seg,) = store.infer_schedule(roster, WINDOW_START, WINDOW_END)

        assert seg.start_time == NOW.replace(hour=15, minute=0)
        assert seg.is_inferred
        assert seg.broadcaster_login == "alice"
        assert seg.broadcaster_name == "Alice"

    def test_one_of_three_weeks_predicts_nothing(self, store):
        _track_since(store, 1)
        store.record([(1, _weeks_ago(2, 15))])

        assert store.infer_schedule({1: entry(1)}, WINDOW_START, WINDOW_END) == []

    def test_mean_is_rounded_to_quarter_hour(self, store):
        _track_since(store, 1)
        store.record(
            [
                (1, WINDOW_START - timedelta(weeks=1) + timedelta(seconds=10800)),
                (1, WINDOW_START - timedelta(weeks=2) + timedelta(seconds=11580)),
                (1, WINDOW_START - timedelta(weeks=3) + timedelta(seconds=12600)),
            ]
        )

        (seg,) = store.infer_schedule({1: entry(1)}, WINDOW_START, WINDOW_END)

        assert seg.start_time == WINDOW_START + timedelta(seconds=11700)
        assert seg.id == "inferred_1_11700"

    def test_broadcasters_are_independent(self, store):
        for bid in (1, 2):
            _track_since(store, bid)
        store.record(
            [
                (1, _weeks_ago(1, 15)),
                (1, _weeks_ago(2, 15)),
                (2, _weeks_ago(1, 18)),
                (2, _weeks_ago(3, 18)),
            ]
        )
        roster = {1: entry(1), 2: entry(2)}

        segments = store.infer_schedule(roster, WINDOW_START, WINDOW_END)

        assert [(s.broadcaster_id, s.start_time.hour) for s in segments] == [(1, 15), (2, 18)]

    def test_sorted_by_start_across_broadcasters(self, store):
        for bid in (1, 2):
            _track_since(store, bid)
        store.record(
            [
                (1, _weeks_ago(1, 19)),
                (1, _weeks_ago(2, 19)),
                (2, _weeks_ago(1, 16)),
                (2, _weeks_ago(2, 16)),
            ]
        )

        segments = store.infer_schedule({1: entry(1), 2: entry(2)}, WINDOW_START, WINDOW_END)

        assert [s.broadcaster_id for s in segments] == [2, 1]

    def test_inferred_segment_shape(self, store):
        _track_since(store, 7)
        store.record([(7, _weeks_ago(1, 15)), (7, _weeks_ago(2, 15))])

        (seg,) = store.infer_schedule({7: entry(7, "bob", "Bob")}, WINDOW_START, WINDOW_END)

        assert seg == ScheduledSegment(
            id="inferred_7_4500",
            broadcaster_id=7,
            start_time=WINDOW_START + timedelta(seconds=4500),
            title="",
            end_time=None,
            category_name=None,
            category_id=None,
            is_recurring=False,
            broadcaster_login="bob",
            broadcaster_name="Bob",
            is_inferred=True,
        )

    def test_recently_tracked_broadcaster_gets_no_prediction(self, store):
        store.record([(1, _weeks_ago(1, 15))])

        assert store.infer_schedule({1: entry(1)}, WINDOW_START, WINDOW_END) == []

    def test_broadcaster_without_history_is_skipped(self, store):
        _track_since(store, 1)
        store.record([(1, _weeks_ago(1, 15)), (1, _weeks_ago(2, 15))])

        segments = store.infer_schedule({1: entry(1), 2: entry(2)}, WINDOW_START, WINDOW_END)

        assert [s.broadcaster_id for s in segments] == [1]

    def test_string_roster_keys(self, store):
        _track_since(store, 1)
        store.record([(1, _weeks_ago(1, 15)), (1, _weeks_ago(2, 15))])

        segments = store.infer_schedule({"1": entry(1), "bogus": entry(2)}, WINDOW_START, WINDOW_END)

        assert [s.broadcaster_id for s in segments] == [1]

    def test_history_does_not_need_roster_membership(self, store):
        _track_since(store, 1)
        store.record([(1, _weeks_ago(1, 15)), (1, _weeks_ago(2, 15))])
        store.sync_roster([])

        assert len(store.infer_schedule({1: entry(1)}, WINDOW_START, WINDOW_END)) == 1


class TestQueryBudget:
    def test_four_queries_regardless_of_roster_size(self, store, count_queries):
        roster = {bid: entry(bid) for bid in range(1, 51)}
        for bid in roster:
            _track_since(store, bid)
            store.record([(bid, _weeks_ago(1, 15)), (bid, _weeks_ago(2, 15))])

        statements = count_queries(store._engine)
        segments = store.infer_schedule(roster, WINDOW_START, WINDOW_END)

        assert len(segments) == 50
        assert len(statements) == 4

    def test_empty_roster_issues_no_queries(self, store, count_queries):
        statements = count_queries(store._engine)

        assert store.infer_schedule({}, WINDOW_START, WINDOW_END) == []
        assert statements == []


class TestCustomInferencer:
    def test_single_lookback_week(self, store):
        _track_since(store, 1)
        store.record([(1, _weeks_ago(1, 15))])

        inferencer = RecurrenceInferencer(weeks=(1,))
        segments = inferencer.infer(store, {1: entry(1)}, WINDOW_START, WINDOW_END)

        assert [s.start_time for s in segments] == [NOW.replace(hour=15)]


class TestStoreLock:
    def test_inference_reenters_a_held_store_lock(self, store):
        _track_since(store, 1)
        store.record([(1, _weeks_ago(1, 15)), (1, _weeks_ago(2, 15))])

        with store._lock:
            segments = store.infer_schedule({1: entry(1)}, WINDOW_START, WINDOW_END)

        assert len(segments) == 1
