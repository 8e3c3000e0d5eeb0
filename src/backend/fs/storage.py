"""
Filesystem-backed photo asset store.

Directory structure:
    <assets_root>/<asset_id>

Assets are addressed by opaque references of the form ``asset://media/<asset_id>``.
Callers must treat references as opaque strings; only this module knows how they
map onto files.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional

from .naming import get_extension_for_mime


logger = logging.getLogger(__name__)

ASSET_REF_PREFIX = "asset://media/"
DEFAULT_MIME_TYPE = "image/jpeg"

# Display names end up in filenames; keep them boring.
_SAFE_DISPLAY_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class AssetStoreError(OSError):
    """Raised when an asset reference cannot be resolved, read, or written."""


def imported_display_name(now: Optional[datetime] = None) -> str:
    """
    Display name for an asset materialized by an import.

    Format: imported_<YYYY-MM-DD-HH-MM-SS> (same shape as camera captures).
    """
    now = now or datetime.now()
    return f"imported_{now.strftime('%Y-%m-%d-%H-%M-%S')}"


class FileAssetStore:
    """
    Stores each photo asset as one file under a root directory.

    Implements the three capabilities the archive subsystem needs:
        open_for_read(ref), create_new_asset(display_name, mime_type), open_for_write(ref)
    """

    def __init__(self, root: Path):
        """
        Initialize the asset store.

        Args:
            root: Directory holding the asset files (created lazily).
        """
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        """Get the assets root directory."""
        return self._root

    def path_for(self, ref: str) -> Path:
        """
        Resolve a reference to the file that backs it.

        Raises:
            AssetStoreError: If the reference is not one of ours.
        """
        if not ref or not ref.startswith(ASSET_REF_PREFIX):
            raise AssetStoreError(f"Not an asset reference: {ref!r}")

        asset_id = ref[len(ASSET_REF_PREFIX):]
        if not asset_id or "\x00" in asset_id or "/" in asset_id or "\\" in asset_id or asset_id in (".", ".."):
            raise AssetStoreError(f"Malformed asset reference: {ref!r}")
        return self._root / asset_id

    def exists(self, ref: str) -> bool:
        try:
            return self.path_for(ref).is_file()
        except AssetStoreError:
            return False

    def open_for_read(self, ref: str) -> BinaryIO:
        """
        Open an asset for reading.

        Raises:
            AssetStoreError: If the reference is malformed, stale, or unreadable.
        """
        path = self.path_for(ref)
        try:
            return open(path, "rb")
        except OSError as exc:
            raise AssetStoreError(f"Cannot read asset {ref}: {exc}") from exc

    def create_new_asset(self, display_name: str, mime_type: str = DEFAULT_MIME_TYPE) -> str:
        """
        Allocate a new, empty asset owned by this store.

        Args:
            display_name: Human-readable name prefix.
            mime_type: MIME type, used to pick the file extension.

        Returns:
            The new asset reference.

        Raises:
            AssetStoreError: If the backing file cannot be created.
        """
        stem = _SAFE_DISPLAY_NAME.sub("_", display_name).strip("._") or "asset"
        ext = get_extension_for_mime(mime_type)

        try:
            self._root.mkdir(parents=True, exist_ok=True)
            while True:
                asset_id = f"{stem}-{uuid.uuid4().hex[:12]}.{ext}"
                path = self._root / asset_id
                try:
                    # "x" mode: never hand out a file that already exists
                    with open(path, "xb"):
                        pass
                    break
                except FileExistsError:
                    continue
        except OSError as exc:
            raise AssetStoreError(f"Cannot create asset {display_name!r}: {exc}") from exc

        return ASSET_REF_PREFIX + asset_id

    def open_for_write(self, ref: str) -> BinaryIO:
        """
        Open an existing asset for (over)writing.

        Raises:
            AssetStoreError: If the asset was never created or cannot be opened.
        """
        path = self.path_for(ref)
        if not path.is_file():
            raise AssetStoreError(f"Unknown asset {ref}")
        try:
            return open(path, "wb")
        except OSError as exc:
            raise AssetStoreError(f"Cannot write asset {ref}: {exc}") from exc

    def delete(self, ref: str) -> bool:
        """
        Delete an asset if it exists.

        Returns:
            True if a file was removed.
        """
        try:
            path = self.path_for(ref)
        except AssetStoreError:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def put_bytes(self, data: bytes, display_name: str, mime_type: str = DEFAULT_MIME_TYPE) -> str:
        """Create a new asset holding ``data`` and return its reference."""
        ref = self.create_new_asset(display_name, mime_type)
        try:
            with self.open_for_write(ref) as out:
                out.write(data)
        except OSError:
            self.delete(ref)
            raise
        logger.debug("Stored %d bytes as %s", len(data), ref)
        return ref

    def list_refs(self) -> list[str]:
        """All asset references currently stored."""
        if not self._root.exists():
            return []
        return sorted(ASSET_REF_PREFIX + f.name for f in self._root.iterdir() if f.is_file())
