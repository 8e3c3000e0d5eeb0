"""
Journal export/import.

Provides:
- JournalExporter: entries + photos -> archive
- JournalImporter: archive -> new assets + new entries (ADD / OVERWRITE)
- JournalTransferService: caller-facing operations with progress tracking
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import (
    ExportError,
    ExportResult,
    ExportStats,
    ImportMode,
    ImportResult,
    ImportStage,
    ImportStats,
    JournalImportError,
)
from .exporter import JournalExporter
from .importer import JournalImporter
from .progress import OperationConflictError, OperationState, OperationTracker
from .service import JournalTransferService

if TYPE_CHECKING:
    from fastapi import APIRouter  # pragma: no cover


def create_transfer_router(*, service: JournalTransferService) -> "APIRouter":
    """
    Lazily import FastAPI router to keep non-web imports lightweight.
    """
    from .api import create_transfer_router as _create_transfer_router

    return _create_transfer_router(service=service)

__all__ = [
    "ExportError",
    "ExportResult",
    "ExportStats",
    "ImportMode",
    "ImportResult",
    "ImportStage",
    "ImportStats",
    "JournalImportError",
    "JournalExporter",
    "JournalImporter",
    "OperationConflictError",
    "OperationState",
    "OperationTracker",
    "JournalTransferService",
    "create_transfer_router",
]
