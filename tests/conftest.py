"""
Global test configuration for StreamTrack.

This module provides global pytest configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from streamtrack.runtime.clock import FixedClock  # noqa: E402
from streamtrack.store.history_store import HistoryStore  # noqa: E402
from util.builders import NOW  # noqa: E402


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store(clock):
    s = HistoryStore.in_memory(clock=clock)
    yield s
    s.close()


@pytest.fixture
def file_store(tmp_path, clock):
    s = HistoryStore.open(tmp_path / "data.db", clock=clock)
    yield s
    s.close()
