from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..transfer.service import JournalTransferService
from .models import APP_VERSION, JournalSettings
from .store import SettingsStore


class ExportDirIn(BaseModel):
    export_dir: str = Field(min_length=1)


class SettingsOut(BaseModel):
    app_version: str
    data_root: str
    export_dir: str
    assets_dir: str
    database_file: str


def _public_settings(settings: JournalSettings, *, repo_root: Path) -> SettingsOut:
    return SettingsOut(
        app_version=APP_VERSION,
        data_root=str(settings.resolve_data_root(repo_root)),
        export_dir=str(settings.export_path(repo_root)),
        assets_dir=str(settings.assets_path(repo_root)),
        database_file=str(settings.database_path(repo_root)),
    )


def _resolve_export_dir(export_dir: str, *, settings: JournalSettings, repo_root: Path) -> Path:
    raw = export_dir.strip()
    if not raw:
        raise ValueError("Export directory must not be empty")
    return settings.resolve(raw, repo_root)


def _ensure_dir_writable(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ValueError(f"Cannot create directory: {exc}") from exc

    if not path.is_dir():
        raise ValueError("Export directory is not a directory")

    try:
        with tempfile.NamedTemporaryFile(prefix=".pj_write_test_", dir=str(path), delete=True):
            pass
    except PermissionError as exc:
        raise ValueError("Export directory is not writable") from exc
    except OSError as exc:
        raise ValueError(f"Cannot write to export directory: {exc}") from exc


def create_settings_router(
    *, store: SettingsStore, repo_root: Path, service: Optional[JournalTransferService] = None
) -> APIRouter:
    router = APIRouter(prefix="/api/settings", tags=["settings"])

    @router.get("", response_model=SettingsOut)
    def get_settings() -> SettingsOut:
        return _public_settings(store.load(), repo_root=repo_root)

    @router.post("/export-dir", response_model=SettingsOut)
    def set_export_dir(body: ExportDirIn) -> SettingsOut:
        try:
            path = _resolve_export_dir(body.export_dir, settings=store.load(), repo_root=repo_root)
            _ensure_dir_writable(path)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        updated = store.set_value(key="export_dir", value=str(path))
        if service is not None:
            service.set_export_dir(path)
        return _public_settings(updated, repo_root=repo_root)

    return router
