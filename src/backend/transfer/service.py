"""
Caller-facing export/import operations.

Wires the exporter and importer to the journal store and the asset store, and
reports every run through an OperationTracker. A call that finds an operation
of the same kind already running raises OperationConflictError before touching
anything; every other call ends in exactly one Success or Error result and
errors never escape as exceptions.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from src.backend.fs.archive_zip import generate_export_filename
from src.backend.fs.storage import DEFAULT_MIME_TYPE, FileAssetStore, imported_display_name
from src.backend.journal.models import now_ms
from src.backend.journal.store import EntryStore
from src.backend.settings.models import APP_VERSION

from .exporter import JournalExporter
from .importer import JournalImporter
from .models import ExportError, ExportResult, ImportMode, ImportResult, JournalImportError
from .progress import OperationTracker


logger = logging.getLogger(__name__)


class JournalTransferService:
    def __init__(
        self,
        *,
        store: EntryStore,
        assets: FileAssetStore,
        export_dir: Path,
        app_version: str = APP_VERSION,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._assets = assets
        self._export_dir = Path(export_dir)
        self._app_version = app_version
        self._clock = clock
        self.export_state = OperationTracker("export")
        self.import_state = OperationTracker("import")

    @property
    def export_dir(self) -> Path:
        return self._export_dir

    def set_export_dir(self, export_dir: Path) -> None:
        self._export_dir = Path(export_dir)

    def create_default_export_filename(self, now_ms: Optional[int] = None) -> str:
        return generate_export_filename(self._clock() if now_ms is None else now_ms)

    # ---------------------------------------------------------------------
    # Export
    # ---------------------------------------------------------------------

    def export_journal(self, output_path: Optional[Union[str, Path]] = None) -> ExportResult:
        """
        Export the whole journal to one archive file.

        Args:
            output_path: Destination file; defaults to
                <export_dir>/photojournal_export_<unix-millis>.zip.

        Raises:
            OperationConflictError: If an export is already in progress.
        """
        self.export_state.start()

        target = Path(output_path) if output_path else self._export_dir / self.create_default_export_filename()
        tmp_path = target.with_name(target.name + ".tmp")
        logger.info("Exporting journal to %s", target)

        try:
            entries = self._store.list_all_newest_first()
            exporter = JournalExporter(
                asset_reader=self._assets.open_for_read,
                producer_version=self._app_version,
                clock=self._clock,
            )
            if not entries:
                # Fail before touching the filesystem
                raise ExportError("No entries to export")

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ExportError(f"Export failed: {exc}") from exc

            stats = exporter.export(entries, tmp_path)
            try:
                tmp_path.replace(target)
            except OSError as exc:
                raise ExportError(f"Export failed: {exc}") from exc
        except ExportError as exc:
            _discard(tmp_path)
            logger.error("Export failed: %s", exc)
            self.export_state.fail(str(exc))
            return ExportResult(success=False, error=str(exc))
        except Exception as exc:  # noqa: BLE001 - surface as string to UI
            _discard(tmp_path)
            logger.exception("Export failed")
            error = f"Export failed: {exc}"
            self.export_state.fail(error)
            return ExportResult(success=False, error=error)

        file_path = str(target.resolve())
        logger.info(
            "Exported %d entries, %d photos (%d skipped) to %s",
            stats.entries_exported,
            stats.photos_exported,
            stats.photos_skipped,
            file_path,
        )
        self.export_state.succeed(file_path=file_path)
        return ExportResult(success=True, file_path=file_path)

    # ---------------------------------------------------------------------
    # Import
    # ---------------------------------------------------------------------

    def materialize_photo(self, name: str, stream: BinaryIO) -> str:
        """
        Copy archived photo bytes into a brand-new asset and return its reference.

        Raises:
            OSError: If the asset cannot be created or written (nothing is left behind).
        """
        ref = self._assets.create_new_asset(imported_display_name(), DEFAULT_MIME_TYPE)
        try:
            with self._assets.open_for_write(ref) as out:
                shutil.copyfileobj(stream, out)
        except BaseException:
            self._assets.delete(ref)
            raise
        logger.debug("Materialized %s as %s", name, ref)
        return ref

    def import_journal(self, archive_path: Union[str, Path], mode: ImportMode) -> ImportResult:
        """
        Import an archive into the journal.

        Raises:
            OperationConflictError: If an import is already in progress.
        """
        self.import_state.start()
        logger.info("Importing %s (mode=%s)", archive_path, ImportMode(mode).value)

        importer = JournalImporter(
            asset_writer=self.materialize_photo,
            store_insert=self._store.insert,
            store_clear=self._store.delete_all,
        )
        try:
            stats = importer.import_archive(Path(archive_path), mode)
        except JournalImportError as exc:
            logger.error("Import failed at %s: %s", exc.stage.value, exc)
            error = f"Import failed: {exc}"
            self.import_state.fail(error)
            return ImportResult(success=False, error=error)
        except Exception as exc:  # noqa: BLE001 - surface as string to UI
            logger.exception("Import failed at %s", importer.stage.value)
            error = f"Import failed: {exc}"
            self.import_state.fail(error)
            return ImportResult(success=False, error=error)

        logger.info("Imported %d entries, %d photos", stats.entries_imported, stats.photos_imported)
        self.import_state.succeed(
            entries_imported=stats.entries_imported,
            photos_imported=stats.photos_imported,
        )
        return ImportResult(
            success=True,
            entries_imported=stats.entries_imported,
            photos_imported=stats.photos_imported,
        )


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove partial export %s: %s", path, exc)
