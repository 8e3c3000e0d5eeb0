"""
SQLite-backed journal entry store.

The archive subsystem only needs three operations from it:
    list_all_newest_first(), insert(entry) -> id, delete_all()
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import closing
from pathlib import Path
from typing import Optional

from .models import JournalEntry


_SCHEMA = """
CREATE TABLE IF NOT EXISTS entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    text TEXT NOT NULL,
    photo_path TEXT NOT NULL DEFAULT '',
    timestamp INTEGER NOT NULL,
    latitude REAL,
    longitude REAL
)
"""

_COLUMNS = "id, text, photo_path, timestamp, latitude, longitude"


def _row_to_entry(row: sqlite3.Row) -> JournalEntry:
    return JournalEntry(
        id=int(row["id"]),
        text=row["text"],
        photo_ref=row["photo_path"] or "",
        created_at_ms=int(row["timestamp"]),
        latitude=row["latitude"],
        longitude=row["longitude"],
    )


class EntryStore:
    def __init__(self, *, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()
        self._initialized = False

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=5.0)
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            with conn:
                conn.execute(_SCHEMA)
            self._initialized = True
        return conn

    def list_all_newest_first(self) -> list[JournalEntry]:
        with self._lock, closing(self._connect()) as conn:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM entries ORDER BY timestamp DESC, id DESC").fetchall()
        return [_row_to_entry(r) for r in rows]

    def get(self, entry_id: int) -> Optional[JournalEntry]:
        with self._lock, closing(self._connect()) as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM entries WHERE id = ?", (entry_id,)).fetchone()
        return _row_to_entry(row) if row is not None else None

    def count(self) -> int:
        with self._lock, closing(self._connect()) as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM entries").fetchone()
        return int(n)

    def insert(self, entry: JournalEntry) -> int:
        """Insert a new entry; any id on ``entry`` is ignored."""
        with self._lock, closing(self._connect()) as conn:
            with conn:
                cur = conn.execute(
                    "INSERT INTO entries (text, photo_path, timestamp, latitude, longitude) VALUES (?, ?, ?, ?, ?)",
                    (entry.text, entry.photo_ref, entry.created_at_ms, entry.latitude, entry.longitude),
                )
            return int(cur.lastrowid)

    def delete_all(self) -> int:
        with self._lock, closing(self._connect()) as conn:
            with conn:
                cur = conn.execute("DELETE FROM entries")
            return int(cur.rowcount)
