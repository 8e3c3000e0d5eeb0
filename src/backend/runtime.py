from __future__ import annotations

from pathlib import Path

from .fs import FileAssetStore
from .journal import EntryStore
from .settings.models import APP_VERSION
from .settings.store import SettingsStore
from .transfer.service import JournalTransferService


def default_root() -> Path:
    """
    Directory that holds ``data/`` when no root is given.

    A source checkout keeps its data next to the code; an installed package
    uses the current working directory instead of site-packages.
    """
    checkout = Path(__file__).resolve().parents[2]
    if (checkout / "pyproject.toml").is_file():
        return checkout
    return Path.cwd()


def default_config_path(root: Path) -> Path:
    return root / "data" / "config.json"


def create_service(*, settings_store: SettingsStore, repo_root: Path) -> JournalTransferService:
    settings = settings_store.load()
    return JournalTransferService(
        store=EntryStore(path=settings.database_path(repo_root)),
        assets=FileAssetStore(settings.assets_path(repo_root)),
        export_dir=settings.export_path(repo_root),
        app_version=APP_VERSION,
    )
