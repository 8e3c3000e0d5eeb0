"""
API routes for journal export/import.

Endpoints are plain ``def`` functions, so FastAPI runs each operation on its
worker threadpool and the event loop stays responsive.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from src.shared.operation_status import OperationStatus

from .models import ImportMode
from .progress import OperationConflictError, OperationState
from .service import JournalTransferService


class ExportIn(BaseModel):
    """Request body for export; output_path defaults to the export directory."""
    output_path: Optional[str] = None


class ExportOut(BaseModel):
    success: bool
    file_path: Optional[str] = None
    error: Optional[str] = None


class ImportIn(BaseModel):
    archive_path: str = Field(min_length=1)
    mode: ImportMode = ImportMode.ADD


class ImportOut(BaseModel):
    success: bool
    entries_imported: int
    photos_imported: int
    error: Optional[str] = None


class OperationStateOut(BaseModel):
    status: OperationStatus
    details: dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None
    updated_at: str


def _state_out(state: OperationState) -> OperationStateOut:
    public = state.to_public_dict()
    return OperationStateOut(
        status=state.status,
        details=public["details"],
        message=public["message"],
        updated_at=public["updated_at"],
    )


def create_transfer_router(*, service: JournalTransferService) -> APIRouter:
    """
    Create the journal export/import API router.

    Args:
        service: The transfer service wired to the store and asset store.

    Returns:
        FastAPI router with export/import endpoints.
    """
    router = APIRouter(prefix="/api/journal", tags=["journal"])

    @router.post("/export", response_model=ExportOut)
    def export_journal(body: Optional[ExportIn] = None) -> ExportOut:
        output_path = body.output_path.strip() if body and body.output_path and body.output_path.strip() else None
        try:
            result = service.export_journal(output_path)
        except OperationConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

        if not result.success:
            raise HTTPException(status_code=500, detail=result.error)

        return ExportOut(success=True, file_path=result.file_path, error=None)

    @router.get("/export/state", response_model=OperationStateOut)
    def get_export_state() -> OperationStateOut:
        return _state_out(service.export_state.state)

    @router.post("/export/ack", response_model=OperationStateOut)
    def acknowledge_export() -> OperationStateOut:
        return _state_out(service.export_state.acknowledge())

    @router.post("/import", response_model=ImportOut)
    def import_journal(body: ImportIn) -> ImportOut:
        path = Path(body.archive_path.strip()).expanduser()
        if not path.is_file():
            raise HTTPException(status_code=404, detail=f"Archive not found: {path}")

        try:
            result = service.import_journal(path, body.mode)
        except OperationConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

        if not result.success:
            raise HTTPException(status_code=500, detail=result.error)

        return ImportOut(
            success=True,
            entries_imported=result.entries_imported,
            photos_imported=result.photos_imported,
            error=None,
        )

    @router.get("/import/state", response_model=OperationStateOut)
    def get_import_state() -> OperationStateOut:
        return _state_out(service.import_state.state)

    @router.post("/import/ack", response_model=OperationStateOut)
    def acknowledge_import() -> OperationStateOut:
        return _state_out(service.import_state.acknowledge())

    return router
