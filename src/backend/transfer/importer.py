"""
Journal importer: archive -> new photo assets + new store entries.

Stages run strictly in order:

    VALIDATING -> PARSING_MANIFEST -> (CLEARING_STORE, overwrite only)
        -> MATERIALIZING_ENTRIES -> DONE

A failure in any stage aborts the import. Within MATERIALIZING_ENTRIES a photo
that is missing from the archive or cannot be written degrades to an entry
without a photo; only store failures abort. Entries inserted before an abort are
not rolled back.
"""

from __future__ import annotations

import logging
import zipfile
import zlib
from typing import Any, BinaryIO, Callable

from src.backend.fs.archive_zip import ArchiveReader, ArchiveSource, FormatError, open_archive
from src.backend.fs.manifest import ArchiveManifest, ArchiveRecord
from src.backend.journal.models import JournalEntry

from .models import ImportMode, ImportStage, ImportStats, JournalImportError


logger = logging.getLogger(__name__)

# (archive photo name, photo bytes stream) -> new asset reference; raises OSError on failure.
AssetWriterFn = Callable[[str, BinaryIO], str]
StoreInsertFn = Callable[[JournalEntry], Any]
StoreClearFn = Callable[[], Any]

_PHOTO_READ_ERRORS = (OSError, zipfile.BadZipFile, zlib.error, EOFError)


class JournalImporter:
    """
    Imports journal archives into a store.

    Usage:
        importer = JournalImporter(
            asset_writer=materialize,
            store_insert=store.insert,
            store_clear=store.delete_all,
        )
        stats = importer.import_archive(path, ImportMode.ADD)
    """

    def __init__(
        self,
        *,
        asset_writer: AssetWriterFn,
        store_insert: StoreInsertFn,
        store_clear: StoreClearFn,
    ):
        self._asset_writer = asset_writer
        self._store_insert = store_insert
        self._store_clear = store_clear
        self._stage = ImportStage.VALIDATING

    @property
    def stage(self) -> ImportStage:
        """Stage reached by the current (or last) import."""
        return self._stage

    def import_archive(self, source: ArchiveSource, mode: ImportMode) -> ImportStats:
        """
        Import every record of an archive.

        Args:
            source: Archive path or readable binary file object.
            mode: ADD keeps existing entries, OVERWRITE clears them first.

        Returns:
            ImportStats with entries inserted and photos materialized.

        Raises:
            JournalImportError: If the archive is invalid, the manifest is
                unparseable, or the store rejects a change.
        """
        mode = ImportMode(mode)

        self._stage = ImportStage.VALIDATING
        try:
            reader = open_archive(source)
        except FileNotFoundError as exc:
            raise JournalImportError(f"Archive not found: {exc.filename or source}", stage=self._stage) from exc
        except FormatError as exc:
            raise JournalImportError(f"Invalid archive: {exc}", stage=self._stage) from exc

        with reader:
            self._stage = ImportStage.PARSING_MANIFEST
            try:
                manifest = reader.read_manifest()
            except FormatError as exc:
                raise JournalImportError(f"Unparseable manifest: {exc}", stage=self._stage) from exc

            if mode == ImportMode.OVERWRITE:
                self._stage = ImportStage.CLEARING_STORE
                try:
                    self._store_clear()
                except Exception as exc:  # noqa: BLE001
                    raise JournalImportError(f"Failed to clear existing entries: {exc}", stage=self._stage) from exc

            self._stage = ImportStage.MATERIALIZING_ENTRIES
            stats = self._materialize(reader, manifest)

        self._stage = ImportStage.DONE
        return stats

    def _materialize(self, reader: ArchiveReader, manifest: ArchiveManifest) -> ImportStats:
        entries_imported = 0
        photos_imported = 0

        for record in manifest.entries:
            photo_ref = self._materialize_photo(reader, record) if record.has_photo else ""
            if photo_ref:
                photos_imported += 1

            entry = JournalEntry(
                text=record.text,
                photo_ref=photo_ref,
                created_at_ms=record.timestamp,
                latitude=record.latitude,
                longitude=record.longitude,
            )
            try:
                self._store_insert(entry)
            except Exception as exc:  # noqa: BLE001
                raise JournalImportError(
                    f"Failed to insert entry {record.id} after {entries_imported} imported: {exc}",
                    stage=self._stage,
                ) from exc
            entries_imported += 1

        return ImportStats(entries_imported=entries_imported, photos_imported=photos_imported)

    def _materialize_photo(self, reader: ArchiveReader, record: ArchiveRecord) -> str:
        """New asset reference for the record's photo, or "" if unavailable."""
        name = record.photo_filename
        stream = reader.open_photo(name)
        if stream is None:
            logger.warning("Photo %s for entry %s is missing from archive", name, record.id)
            return ""

        try:
            with stream:
                new_ref = self._asset_writer(name, stream)
        except _PHOTO_READ_ERRORS as exc:
            logger.warning("Failed to import photo %s for entry %s: %s", name, record.id, exc)
            return ""

        return new_ref or ""
