"""
Journal archive container: one zip file holding a manifest plus photo assets.

Layout:
    data.json           UTF-8 manifest (see manifest.py)
    photos/<name>       raw JPEG bytes, one per distinct non-sentinel photo_filename

Compression is ZIP_DEFLATED, no encryption. Reading is lazy: opening an archive
only checks the container and the presence of the manifest; photos are pulled one
at a time by name.
"""

from __future__ import annotations

import json
import logging
import zipfile
import zlib
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import IO, BinaryIO, Callable, NamedTuple, Optional, Union

from pydantic import ValidationError

from .manifest import SUPPORTED_MAJOR_VERSION, ArchiveManifest, format_major_version


logger = logging.getLogger(__name__)

MANIFEST_NAME = "data.json"
PHOTOS_PREFIX = "photos/"
EXPORT_FILENAME_PREFIX = "photojournal_export_"

ArchiveSource = Union[str, Path, IO[bytes]]

# Returns the bytes for an archive photo name, or None to leave it out.
AssetSourceFn = Callable[[str], Optional[bytes]]


class FormatErrorReason(str, Enum):
    CORRUPT_CONTAINER = "corrupt_container"
    MISSING_MANIFEST = "missing_manifest"
    UNPARSEABLE_MANIFEST = "unparseable_manifest"
    UNSUPPORTED_VERSION = "unsupported_version"


class FormatError(ValueError):
    """Raised when a byte stream is not a readable journal archive."""

    def __init__(self, reason: FormatErrorReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = reason.value.replace("_", " ")
        super().__init__(f"{message}: {detail}" if detail else message)


class ArchiveWriteResult(NamedTuple):
    """Result of encoding an archive."""
    records_written: int
    photos_written: int
    photos_skipped: int
    bytes_archived: int


def generate_export_filename(now_ms: Optional[int] = None) -> str:
    """
    Generate the default export filename.

    Format: photojournal_export_<unix-millis>.zip
    """
    if now_ms is None:
        now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"{EXPORT_FILENAME_PREFIX}{now_ms}.zip"


def photo_member_name(name: str) -> str:
    return f"{PHOTOS_PREFIX}{name}"


def write_archive(
    target: ArchiveSource,
    manifest: ArchiveManifest,
    asset_source: AssetSourceFn,
) -> ArchiveWriteResult:
    """
    Encode a manifest and its photos into a zip container.

    The manifest is always written first. Then, for each distinct photo name in
    record order, ``asset_source(name)`` is asked for the bytes; a None result
    leaves that photo out of the archive while its records still reference it.

    Args:
        target: Path or writable binary file object.
        manifest: The manifest to embed as data.json.
        asset_source: Callback returning photo bytes by archive name.

    Returns:
        ArchiveWriteResult with counts.

    Raises:
        OSError: If the target cannot be written.
    """
    photos_written = 0
    photos_skipped = 0
    bytes_archived = 0

    with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zf:
        payload = manifest.to_json_bytes()
        zf.writestr(MANIFEST_NAME, payload)
        bytes_archived += len(payload)

        for name in manifest.photo_names():
            data = asset_source(name)
            if data is None:
                photos_skipped += 1
                continue
            zf.writestr(photo_member_name(name), data)
            photos_written += 1
            bytes_archived += len(data)

    return ArchiveWriteResult(
        records_written=len(manifest.entries),
        photos_written=photos_written,
        photos_skipped=photos_skipped,
        bytes_archived=bytes_archived,
    )


class ArchiveReader:
    """
    Read access to an opened journal archive.

    Use open_archive() rather than constructing this directly; it runs the
    container and manifest-presence checks first.

    Usage:
        with open_archive(path) as reader:
            manifest = reader.read_manifest()
            data = reader.read_photo("1000000255.jpg")  # None if unavailable
    """

    def __init__(self, zf: zipfile.ZipFile) -> None:
        self._zf = zf
        self._names = frozenset(zf.namelist())

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    def photo_names(self) -> list[str]:
        """Names of all photo members physically present."""
        return sorted(
            n[len(PHOTOS_PREFIX):]
            for n in self._names
            if n.startswith(PHOTOS_PREFIX) and len(n) > len(PHOTOS_PREFIX)
        )

    def has_photo(self, name: str) -> bool:
        return bool(name) and photo_member_name(name) in self._names

    def read_manifest(self) -> ArchiveManifest:
        """
        Decode and validate data.json.

        Raises:
            FormatError: UNPARSEABLE_MANIFEST if it is not the expected shape,
                UNSUPPORTED_VERSION if its major format version is unknown.
        """
        try:
            raw = self._zf.read(MANIFEST_NAME)
        except (OSError, zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise FormatError(FormatErrorReason.UNPARSEABLE_MANIFEST, f"cannot read {MANIFEST_NAME}: {exc}") from exc

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise FormatError(FormatErrorReason.UNPARSEABLE_MANIFEST, str(exc)) from exc

        if not isinstance(data, dict):
            raise FormatError(FormatErrorReason.UNPARSEABLE_MANIFEST, "top level must be an object")

        try:
            manifest = ArchiveManifest.model_validate(data)
        except ValidationError as exc:
            raise FormatError(FormatErrorReason.UNPARSEABLE_MANIFEST, _summarize(exc)) from exc

        major = format_major_version(manifest.export_version)
        if major != SUPPORTED_MAJOR_VERSION:
            raise FormatError(
                FormatErrorReason.UNSUPPORTED_VERSION,
                f"export_version {manifest.export_version!r} (supported: {SUPPORTED_MAJOR_VERSION}.x)",
            )
        return manifest

    def open_photo(self, name: str) -> Optional[BinaryIO]:
        """
        Open a photo member for streaming, or None if it is not in the archive.

        Damaged data surfaces as zipfile.BadZipFile / zlib.error while reading.
        """
        if not self.has_photo(name):
            return None
        try:
            return self._zf.open(photo_member_name(name), "r")
        except (OSError, zipfile.BadZipFile, zlib.error) as exc:
            logger.warning("Photo %s is unreadable in archive: %s", name, exc)
            return None

    def read_photo(self, name: str) -> Optional[bytes]:
        """Read a photo member fully; None if missing or damaged."""
        stream = self.open_photo(name)
        if stream is None:
            return None
        try:
            with stream:
                return stream.read()
        except (OSError, zipfile.BadZipFile, zlib.error, EOFError) as exc:
            logger.warning("Photo %s is damaged in archive: %s", name, exc)
            return None


def open_archive(source: ArchiveSource) -> ArchiveReader:
    """
    Open a journal archive after the two-step structural check.

    1. The source must be a readable zip container.
    2. The container must hold data.json.

    Nothing is decompressed by these checks.

    Raises:
        FormatError: CORRUPT_CONTAINER or MISSING_MANIFEST.
        FileNotFoundError: If a path source does not exist.
    """
    try:
        zf = zipfile.ZipFile(source, "r")
    except FileNotFoundError:
        raise
    except (zipfile.BadZipFile, zlib.error, EOFError, ValueError, OSError) as exc:
        raise FormatError(FormatErrorReason.CORRUPT_CONTAINER, str(exc)) from exc

    if MANIFEST_NAME not in zf.namelist():
        zf.close()
        raise FormatError(FormatErrorReason.MISSING_MANIFEST, f"no {MANIFEST_NAME} in archive")

    return ArchiveReader(zf)


def _summarize(exc: ValidationError, limit: int = 3) -> str:
    parts = []
    for err in exc.errors()[:limit]:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    extra = exc.error_count() - limit
    if extra > 0:
        parts.append(f"... {extra} more")
    return "; ".join(parts)
