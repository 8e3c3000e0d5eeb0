"""
Journal entries and their local store.
"""

from .models import JournalEntry, now_ms
from .store import EntryStore

__all__ = [
    "JournalEntry",
    "EntryStore",
    "now_ms",
]
