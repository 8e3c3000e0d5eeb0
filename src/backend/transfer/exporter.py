"""
Journal exporter: entries + photo assets -> one archive.

Entries are exported in the order given (the store yields newest first). Each
distinct photo reference gets one archive name via AssetNamer; entries without a
photo use the "null.jpg" sentinel. A photo that cannot be read (stale or revoked
reference) is logged and left out, but its records keep the allocated name.
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Callable, Iterable, Optional, Sequence

from src.backend.fs.archive_zip import ArchiveSource, write_archive
from src.backend.fs.manifest import FORMAT_VERSION, ArchiveManifest, ArchiveRecord
from src.backend.fs.naming import NO_PHOTO_SENTINEL, AssetNamer
from src.backend.journal.models import JournalEntry, now_ms

from .models import ExportError, ExportStats


logger = logging.getLogger(__name__)

# Opens a photo reference for reading; raises OSError if it is gone.
AssetReaderFn = Callable[[str], BinaryIO]


def entry_to_record(entry: JournalEntry, photo_filename: str) -> ArchiveRecord:
    return ArchiveRecord(
        id=entry.id or 0,
        text=entry.text,
        photo_filename=photo_filename,
        timestamp=entry.created_at_ms,
        latitude=entry.latitude,
        longitude=entry.longitude,
    )


class JournalExporter:
    """
    Builds journal archives.

    Usage:
        exporter = JournalExporter(asset_reader=assets.open_for_read, producer_version="1.0.0")
        with open(path, "wb") as fh:
            stats = exporter.export(store.list_all_newest_first(), fh)
    """

    def __init__(
        self,
        asset_reader: AssetReaderFn,
        *,
        producer_version: str,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the exporter.

        Args:
            asset_reader: Opens a photo reference as a binary stream.
            producer_version: Application version recorded as app_version.
            clock: Returns the current time in epoch milliseconds.
        """
        self._asset_reader = asset_reader
        self._producer_version = producer_version
        self._clock = clock

    def build_manifest(self, entries: Iterable[JournalEntry], namer: AssetNamer) -> ArchiveManifest:
        records = []
        for entry in entries:
            name = namer.allocate(entry.photo_ref) if entry.has_photo else NO_PHOTO_SENTINEL
            records.append(entry_to_record(entry, name))

        return ArchiveManifest(
            export_version=FORMAT_VERSION,
            export_timestamp=self._clock(),
            app_version=self._producer_version,
            entries=records,
        )

    def export(self, entries: Sequence[JournalEntry], target: ArchiveSource) -> ExportStats:
        """
        Write all entries and their photos to ``target``.

        Args:
            entries: Entries in store order.
            target: Path or writable binary file object.

        Returns:
            ExportStats with counts.

        Raises:
            ExportError: If there is nothing to export or the archive cannot be written.
        """
        if not entries:
            raise ExportError("No entries to export")

        namer = AssetNamer()
        manifest = self.build_manifest(entries, namer)
        ref_by_name = {name: ref for ref, name in namer.assignments.items()}

        def read_photo(name: str) -> Optional[bytes]:
            ref = ref_by_name[name]
            try:
                with self._asset_reader(ref) as stream:
                    return stream.read()
            except OSError as exc:
                logger.warning("Failed to export photo %s (%s): %s", ref, name, exc)
                return None

        try:
            result = write_archive(target, manifest, read_photo)
        except OSError as exc:
            raise ExportError(f"Export failed: {exc}") from exc

        if result.photos_skipped:
            logger.warning(
                "Export wrote %d photos, skipped %d unreadable",
                result.photos_written,
                result.photos_skipped,
            )

        return ExportStats(
            entries_exported=result.records_written,
            photos_exported=result.photos_written,
            photos_skipped=result.photos_skipped,
        )

    def export_bytes(self, entries: Sequence[JournalEntry]) -> bytes:
        """Export into memory and return the archive bytes."""
        buffer = io.BytesIO()
        self.export(entries, buffer)
        return buffer.getvalue()
