"""
Persistent store and the recurrence inferencer that reads from it.
"""

from .history_store import HistoryStore
from .inference import RecurrenceInferencer

__all__ = ["HistoryStore", "RecurrenceInferencer"]
