"""
Models for journal export/import operations.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Optional


class ImportMode(str, Enum):
    """
    How an import treats entries already in the store.

    - ADD: Keep existing entries, append the imported ones
    - OVERWRITE: Delete all existing entries first, then import
    """
    ADD = "add"
    OVERWRITE = "overwrite"


class ImportStage(str, Enum):
    """Steps of an import, in order."""
    VALIDATING = "validating"
    PARSING_MANIFEST = "parsing_manifest"
    CLEARING_STORE = "clearing_store"
    MATERIALIZING_ENTRIES = "materializing_entries"
    DONE = "done"


class ExportError(RuntimeError):
    """Raised when an export cannot produce an archive."""


class JournalImportError(RuntimeError):
    """Raised when an import aborts; ``stage`` is where it stopped."""

    def __init__(self, message: str, *, stage: ImportStage) -> None:
        super().__init__(message)
        self.stage = stage


class ExportStats(NamedTuple):
    """Counts from a finished export."""
    entries_exported: int
    photos_exported: int
    photos_skipped: int


class ImportStats(NamedTuple):
    """Counts from a finished import."""
    entries_imported: int
    photos_imported: int


class ExportResult(NamedTuple):
    """Caller-facing result of exporting the journal."""
    success: bool
    file_path: Optional[str] = None
    error: Optional[str] = None


class ImportResult(NamedTuple):
    """Caller-facing result of importing an archive."""
    success: bool
    entries_imported: int = 0
    photos_imported: int = 0
    error: Optional[str] = None
