"""
End-to-end tests for JournalTransferService with the SQLite store and file assets.

Covers:
1. Round trip preserves text/timestamp/coordinates for Unicode-heavy entries
2. Concrete pecorino scenario: entriesImported=1, photosImported=1
3. Empty journal: Error result, no archive file left behind
4. Imported photos are new, independently owned assets
5. Tracker ends in exactly one terminal state per call
"""

import tempfile
import unittest
import zipfile
from pathlib import Path

from src.backend.fs.archive_zip import open_archive
from src.backend.fs.storage import FileAssetStore
from src.backend.journal.models import JournalEntry
from src.backend.journal.store import EntryStore
from src.backend.transfer.models import ImportMode
from src.backend.transfer.progress import OperationConflictError
from src.backend.transfer.service import JournalTransferService
from src.shared.operation_status import OperationStatus


class _Journal:
    """One device: its own database, asset folder and export folder."""

    def __init__(self, root: Path, name: str) -> None:
        base = root / name
        self.store = EntryStore(path=base / "journal.sqlite3")
        self.assets = FileAssetStore(base / "assets")
        self.service = JournalTransferService(
            store=self.store,
            assets=self.assets,
            export_dir=base / "exports",
            app_version="test",
            clock=lambda: 1755813600000,
        )


def _key(entry: JournalEntry):
    return (entry.text, entry.created_at_ms, entry.latitude, entry.longitude)


class TestRoundTrip(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.source = _Journal(self.root, "source")
        self.target = _Journal(self.root, "target")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_concrete_scenario(self) -> None:
        photo_ref = self.source.assets.put_bytes(b"\xff\xd8\xff\xe0pecorino", "capture")
        self.source.store.insert(
            JournalEntry(
                text="terribile\nmild pecorino",
                photo_ref=photo_ref,
                created_at_ms=1755813502803,
                latitude=42.42302267,
                longitude=-71.19617533,
            )
        )

        exported = self.source.service.export_journal()
        self.assertTrue(exported.success, exported.error)
        self.assertEqual(Path(exported.file_path).name, "photojournal_export_1755813600000.zip")

        with zipfile.ZipFile(exported.file_path) as zf:
            photo_members = [n for n in zf.namelist() if n.startswith("photos/")]
        self.assertEqual(len(photo_members), 1)

        imported = self.target.service.import_journal(exported.file_path, ImportMode.ADD)
        self.assertTrue(imported.success, imported.error)
        self.assertEqual((imported.entries_imported, imported.photos_imported), (1, 1))

        (entry,) = self.target.store.list_all_newest_first()
        self.assertEqual(entry.text, "terribile\nmild pecorino")
        self.assertEqual(entry.created_at_ms, 1755813502803)
        self.assertAlmostEqual(entry.latitude, 42.42302267, delta=1e-8)
        self.assertAlmostEqual(entry.longitude, -71.19617533, delta=1e-8)
        self.assertNotEqual(entry.photo_ref, photo_ref)
        with self.target.assets.open_for_read(entry.photo_ref) as fh:
            self.assertEqual(fh.read(), b"\xff\xd8\xff\xe0pecorino")

    def test_unicode_and_optional_fields_round_trip(self) -> None:
        originals = [
            JournalEntry(text="emoji 🍷🧀", created_at_ms=1, latitude=12.123456789, longitude=-0.000000012),
            JournalEntry(text="日本語のメモ\n二行目", created_at_ms=2),
            JournalEntry(text="שלום עולם", created_at_ms=3, latitude=-89.99999999, longitude=179.99999999),
            JournalEntry(text="", created_at_ms=4, photo_ref=self.source.assets.put_bytes(b"img", "x")),
        ]
        for e in originals:
            self.source.store.insert(e)

        exported = self.source.service.export_journal()
        self.assertTrue(exported.success, exported.error)
        imported = self.target.service.import_journal(exported.file_path, ImportMode.ADD)
        self.assertTrue(imported.success, imported.error)
        self.assertEqual((imported.entries_imported, imported.photos_imported), (4, 1))

        self.assertEqual(
            sorted(_key(e) for e in self.target.store.list_all_newest_first()),
            sorted(_key(e) for e in originals),
        )

    def test_entry_without_photo_or_location(self) -> None:
        self.source.store.insert(JournalEntry(text="bare", created_at_ms=10))
        exported = self.source.service.export_journal()

        with zipfile.ZipFile(exported.file_path) as zf:
            self.assertEqual(zf.namelist(), ["data.json"])

        self.target.service.import_journal(exported.file_path, ImportMode.ADD)
        (entry,) = self.target.store.list_all_newest_first()
        self.assertEqual(entry.photo_ref, "")
        self.assertIsNone(entry.latitude)
        self.assertIsNone(entry.longitude)

    def test_stale_photo_reference_still_exports(self) -> None:
        self.source.store.insert(
            JournalEntry(text="revoked", created_at_ms=1, photo_ref="asset://media/deleted-long-ago.jpg")
        )
        exported = self.source.service.export_journal()
        self.assertTrue(exported.success, exported.error)

        imported = self.target.service.import_journal(exported.file_path, ImportMode.ADD)
        self.assertEqual((imported.entries_imported, imported.photos_imported), (1, 0))

    def test_overwrite_replaces_existing_entries(self) -> None:
        self.source.store.insert(JournalEntry(text="from archive", created_at_ms=5))
        exported = self.source.service.export_journal()
        self.target.store.insert(JournalEntry(text="local only", created_at_ms=6))

        imported = self.target.service.import_journal(exported.file_path, ImportMode.OVERWRITE)
        self.assertTrue(imported.success)
        self.assertEqual([e.text for e in self.target.store.list_all_newest_first()], ["from archive"])

    def test_reexport_is_idempotent_in_content(self) -> None:
        self.source.store.insert(JournalEntry(text="a", created_at_ms=1, latitude=1.5, longitude=2.5))
        self.source.store.insert(JournalEntry(text="b", created_at_ms=2))
        first = self.source.service.export_journal(self.root / "first.zip")
        self.target.service.import_journal(first.file_path, ImportMode.ADD)
        second = self.target.service.export_journal(self.root / "second.zip")

        def records(path):
            with open_archive(path) as reader:
                return [(r.text, r.timestamp, r.latitude, r.longitude, r.photo_filename)
                        for r in reader.read_manifest().entries]

        self.assertEqual(records(first.file_path), records(second.file_path))


class TestFailures(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.journal = _Journal(self.root, "j")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_empty_export_leaves_no_file(self) -> None:
        result = self.journal.service.export_journal()

        self.assertFalse(result.success)
        self.assertEqual(result.error, "No entries to export")
        self.assertFalse((self.root / "j" / "exports").exists())
        state = self.journal.service.export_state.state
        self.assertEqual(state.status, OperationStatus.ERROR)
        self.assertEqual(state.message, "No entries to export")

    def test_invalid_archive_is_error_result(self) -> None:
        bogus = self.root / "bogus.zip"
        bogus.write_bytes(b"not a zip")
        self.journal.store.insert(JournalEntry(text="keep", created_at_ms=1))

        result = self.journal.service.import_journal(bogus, ImportMode.OVERWRITE)

        self.assertFalse(result.success)
        self.assertIn("Invalid archive", result.error)
        self.assertEqual(self.journal.store.count(), 1)
        self.assertEqual(self.journal.service.import_state.state.status, OperationStatus.ERROR)

    def test_missing_archive_is_error_result(self) -> None:
        result = self.journal.service.import_journal(self.root / "nope.zip", ImportMode.ADD)
        self.assertFalse(result.success)
        self.assertIn("Archive not found", result.error)

    def test_success_details_and_acknowledge(self) -> None:
        self.journal.store.insert(JournalEntry(text="x", created_at_ms=1))
        result = self.journal.service.export_journal()

        state = self.journal.service.export_state.state
        self.assertEqual(state.status, OperationStatus.SUCCESS)
        self.assertEqual(state.details, {"file_path": result.file_path})

        self.assertEqual(self.journal.service.export_state.acknowledge().status, OperationStatus.IDLE)

    def test_concurrent_start_is_rejected(self) -> None:
        self.journal.service.import_state.start()
        with self.assertRaises(OperationConflictError):
            self.journal.service.import_journal(self.root / "any.zip", ImportMode.ADD)

    def test_rejected_call_leaves_running_operation_alone(self) -> None:
        self.journal.store.insert(JournalEntry(text="keep", created_at_ms=1))
        running = self.journal.service.export_state.start()

        with self.assertRaises(OperationConflictError):
            self.journal.service.export_journal(self.root / "second.zip")

        self.assertIs(self.journal.service.export_state.state, running)
        self.assertFalse((self.root / "second.zip").exists())
        self.assertFalse((self.root / "second.zip.tmp").exists())
        self.assertEqual(self.journal.store.count(), 1)

    def test_failed_photo_write_leaves_no_orphan_asset(self) -> None:
        class BrokenStream:
            def read(self, *args):
                raise OSError("read error")

        with self.assertRaises(OSError):
            self.journal.service.materialize_photo("x.jpg", BrokenStream())
        self.assertEqual(self.journal.assets.list_refs(), [])


if __name__ == "__main__":
    unittest.main()
