from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from .runtime import create_service, default_config_path, default_root
from .settings.api import create_settings_router
from .settings.models import APP_VERSION
from .settings.store import SettingsStore
from .transfer.api import create_transfer_router


def create_app(*, repo_root: Optional[Path] = None, config_path: Optional[Path] = None) -> FastAPI:
    repo_root = repo_root or default_root()
    config_path = config_path or default_config_path(repo_root)

    store = SettingsStore(path=config_path)
    service = create_service(settings_store=store, repo_root=repo_root)

    app = FastAPI(title="photo-journal-archive", version=APP_VERSION)
    app.include_router(create_settings_router(store=store, repo_root=repo_root, service=service))
    app.include_router(create_transfer_router(service=service))

    app.state.settings_store = store
    app.state.transfer_service = service
    app.state.repo_root = repo_root
    return app


app = create_app()
