from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any


APP_VERSION = "1.0.0"

DEFAULT_DATA_ROOT = "data"
DEFAULT_EXPORT_DIR = "exports"
DEFAULT_ASSETS_DIR = "assets"
DEFAULT_DATABASE_FILE = "journal.sqlite3"


def _str_or_default(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


@dataclass
class JournalSettings:
    data_root: str = DEFAULT_DATA_ROOT
    export_dir: str = DEFAULT_EXPORT_DIR
    assets_dir: str = DEFAULT_ASSETS_DIR
    database_file: str = DEFAULT_DATABASE_FILE

    def resolve_data_root(self, repo_root: Path) -> Path:
        p = Path(self.data_root).expanduser()
        if not p.is_absolute():
            p = (repo_root / p).resolve()
        return p

    def resolve(self, value: str, repo_root: Path) -> Path:
        """Resolve a path setting; relative values live under data_root."""
        p = Path(value).expanduser()
        if not p.is_absolute():
            p = self.resolve_data_root(repo_root) / p
        return p

    def export_path(self, repo_root: Path) -> Path:
        return self.resolve(self.export_dir, repo_root)

    def assets_path(self, repo_root: Path) -> Path:
        return self.resolve(self.assets_dir, repo_root)

    def database_path(self, repo_root: Path) -> Path:
        return self.resolve(self.database_file, repo_root)

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "version": 1,
            "data_root": self.data_root,
            "export_dir": self.export_dir,
            "assets_dir": self.assets_dir,
            "database_file": self.database_file,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "JournalSettings":
        return cls(
            data_root=_str_or_default(data.get("data_root"), DEFAULT_DATA_ROOT),
            export_dir=_str_or_default(data.get("export_dir"), DEFAULT_EXPORT_DIR),
            assets_dir=_str_or_default(data.get("assets_dir"), DEFAULT_ASSETS_DIR),
            database_file=_str_or_default(data.get("database_file"), DEFAULT_DATABASE_FILE),
        )
