"""
File system utilities for journal archives and photo assets.

Provides:
- Photo asset storage behind opaque references (storage.py)
- Archive asset naming (naming.py)
- Manifest wire models (manifest.py)
- Zip container encode/decode (archive_zip.py)
"""

from .storage import AssetStoreError, FileAssetStore
from .naming import NO_PHOTO_SENTINEL, AssetNamer, derive_base_name
from .manifest import FORMAT_VERSION, ArchiveManifest, ArchiveRecord
from .archive_zip import (
    ArchiveReader,
    ArchiveWriteResult,
    FormatError,
    FormatErrorReason,
    generate_export_filename,
    open_archive,
    write_archive,
)

__all__ = [
    "AssetStoreError",
    "FileAssetStore",
    "NO_PHOTO_SENTINEL",
    "AssetNamer",
    "derive_base_name",
    "FORMAT_VERSION",
    "ArchiveManifest",
    "ArchiveRecord",
    "ArchiveReader",
    "ArchiveWriteResult",
    "FormatError",
    "FormatErrorReason",
    "generate_export_filename",
    "open_archive",
    "write_archive",
]
