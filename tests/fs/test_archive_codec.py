"""
Tests for the journal archive container.

Covers:
1. data.json is written first with the documented field names
2. photos/<name> members hold the exact bytes; None skips a photo
3. Two-step gate: corrupt container / missing manifest
4. Manifest shape errors and unsupported major versions
5. Missing or damaged photos read as unavailable
"""

import io
import json
import tempfile
import unittest
import zipfile
from pathlib import Path

from src.backend.fs.archive_zip import (
    MANIFEST_NAME,
    FormatError,
    FormatErrorReason,
    generate_export_filename,
    open_archive,
    write_archive,
)
from src.backend.fs.manifest import ArchiveManifest, ArchiveRecord


def _manifest(*records: ArchiveRecord) -> ArchiveManifest:
    return ArchiveManifest(export_version="1.0", export_timestamp=1700000000000, app_version="9.9", entries=list(records))


def _zip_bytes(members: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buffer.getvalue()


class TestWriteArchive(unittest.TestCase):
    def test_layout_and_field_names(self):
        manifest = _manifest(
            ArchiveRecord(id=7, text="terribile\nmild pecorino", photo_filename="1000000255.jpg",
                          timestamp=1755813502803, latitude=42.42302267, longitude=-71.19617533),
            ArchiveRecord(id=6, text="no photo", photo_filename="null.jpg", timestamp=1755813400000),
        )
        buffer = io.BytesIO()
        result = write_archive(buffer, manifest, lambda name: b"\xff\xd8jpeg-bytes")

        self.assertEqual(result.records_written, 2)
        self.assertEqual(result.photos_written, 1)
        self.assertEqual(result.photos_skipped, 0)

        with zipfile.ZipFile(io.BytesIO(buffer.getvalue())) as zf:
            names = zf.namelist()
            self.assertEqual(names, [MANIFEST_NAME, "photos/1000000255.jpg"])
            self.assertEqual(zf.read("photos/1000000255.jpg"), b"\xff\xd8jpeg-bytes")
            self.assertEqual(zf.getinfo(MANIFEST_NAME).compress_type, zipfile.ZIP_DEFLATED)
            data = json.loads(zf.read(MANIFEST_NAME).decode("utf-8"))

        self.assertEqual(set(data), {"export_version", "export_timestamp", "app_version", "entries"})
        self.assertEqual(data["export_version"], "1.0")
        first, second = data["entries"]
        self.assertEqual(set(first), {"id", "text", "photo_filename", "timestamp", "latitude", "longitude"})
        self.assertEqual(first["photo_filename"], "1000000255.jpg")
        self.assertEqual(first["latitude"], 42.42302267)
        self.assertEqual(first["longitude"], -71.19617533)
        self.assertEqual(first["timestamp"], 1755813502803)
        self.assertEqual(second["photo_filename"], "null.jpg")
        self.assertIsNone(second["latitude"])
        self.assertIsNone(second["longitude"])

    def test_shared_photo_written_once_and_skips_counted(self):
        manifest = _manifest(
            ArchiveRecord(text="a", photo_filename="1.jpg", timestamp=1),
            ArchiveRecord(text="b", photo_filename="1.jpg", timestamp=2),
            ArchiveRecord(text="c", photo_filename="2.jpg", timestamp=3),
        )
        requested = []

        def source(name):
            requested.append(name)
            return None if name == "2.jpg" else b"one"

        buffer = io.BytesIO()
        result = write_archive(buffer, manifest, source)

        self.assertEqual(requested, ["1.jpg", "2.jpg"])
        self.assertEqual(result.photos_written, 1)
        self.assertEqual(result.photos_skipped, 1)
        with zipfile.ZipFile(io.BytesIO(buffer.getvalue())) as zf:
            self.assertNotIn("photos/2.jpg", zf.namelist())

    def test_unicode_text_is_utf8(self):
        text = "emoji 🍷 CJK 日本語 RTL שלום"
        buffer = io.BytesIO()
        write_archive(buffer, _manifest(ArchiveRecord(text=text, photo_filename="null.jpg", timestamp=1)), lambda n: None)
        with zipfile.ZipFile(io.BytesIO(buffer.getvalue())) as zf:
            raw = zf.read(MANIFEST_NAME)
        self.assertIn(text.encode("utf-8"), raw)


class TestOpenArchiveGate(unittest.TestCase):
    def test_not_a_zip_is_corrupt_container(self):
        with self.assertRaises(FormatError) as ctx:
            open_archive(io.BytesIO(b"definitely not a zip file"))
        self.assertEqual(ctx.exception.reason, FormatErrorReason.CORRUPT_CONTAINER)
        self.assertIn("corrupt container", str(ctx.exception))

    def test_truncated_zip_is_corrupt_container(self):
        data = _zip_bytes({MANIFEST_NAME: b"{}", "photos/a.jpg": b"x" * 1000})
        with self.assertRaises(FormatError) as ctx:
            open_archive(io.BytesIO(data[: len(data) // 2]))
        self.assertEqual(ctx.exception.reason, FormatErrorReason.CORRUPT_CONTAINER)

    def test_missing_manifest(self):
        data = _zip_bytes({"photos/a.jpg": b"x"})
        with self.assertRaises(FormatError) as ctx:
            open_archive(io.BytesIO(data))
        self.assertEqual(ctx.exception.reason, FormatErrorReason.MISSING_MANIFEST)
        self.assertIn("missing manifest", str(ctx.exception))

    def test_path_source(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "a.zip"
            path.write_bytes(_zip_bytes({MANIFEST_NAME: json.dumps({"entries": []})}))
            with open_archive(path) as reader:
                self.assertEqual(reader.read_manifest().entries, [])

    def test_missing_path_raises_file_not_found(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileNotFoundError):
                open_archive(Path(tmpdir) / "nope.zip")


class TestReadManifest(unittest.TestCase):
    def _read(self, payload) -> ArchiveManifest:
        raw = payload if isinstance(payload, (bytes, str)) else json.dumps(payload)
        with open_archive(io.BytesIO(_zip_bytes({MANIFEST_NAME: raw}))) as reader:
            return reader.read_manifest()

    def _assert_reason(self, payload, reason):
        with self.assertRaises(FormatError) as ctx:
            self._read(payload)
        self.assertEqual(ctx.exception.reason, reason)

    def test_defaults_and_unknown_fields(self):
        manifest = self._read({
            "export_version": "1.3",
            "future_field": {"x": 1},
            "entries": [{"text": "hi", "photo_filename": "null.jpg", "timestamp": 5, "mood": "ok"}],
        })
        self.assertEqual(manifest.app_version, "")
        self.assertEqual(manifest.export_timestamp, 0)
        record = manifest.entries[0]
        self.assertEqual(record.id, 0)
        self.assertIsNone(record.latitude)
        self.assertFalse(record.has_photo)

    def test_invalid_json(self):
        self._assert_reason(b"{not json", FormatErrorReason.UNPARSEABLE_MANIFEST)

    def test_top_level_array(self):
        self._assert_reason([], FormatErrorReason.UNPARSEABLE_MANIFEST)

    def test_missing_entries(self):
        self._assert_reason({"export_version": "1.0"}, FormatErrorReason.UNPARSEABLE_MANIFEST)

    def test_wrong_field_type(self):
        self._assert_reason(
            {"entries": [{"text": None, "photo_filename": "null.jpg", "timestamp": 1}]},
            FormatErrorReason.UNPARSEABLE_MANIFEST,
        )

    def test_lone_latitude(self):
        self._assert_reason(
            {"entries": [{"text": "x", "photo_filename": "null.jpg", "timestamp": 1, "latitude": 1.0}]},
            FormatErrorReason.UNPARSEABLE_MANIFEST,
        )

    def test_odd_photo_names_do_not_reject_manifest(self):
        manifest = self._read({"entries": [
            {"text": "a", "photo_filename": "../evil.jpg", "timestamp": 1},
            {"text": "b", "photo_filename": "", "timestamp": 2},
        ]})
        self.assertEqual([r.text for r in manifest.entries], ["a", "b"])
        self.assertTrue(manifest.entries[0].has_photo)
        self.assertFalse(manifest.entries[1].has_photo)
        self.assertEqual(manifest.photo_names(), ["../evil.jpg"])

    def test_unsupported_major_version(self):
        self._assert_reason({"export_version": "2.0", "entries": []}, FormatErrorReason.UNSUPPORTED_VERSION)

    def test_app_version_does_not_gate(self):
        manifest = self._read({"app_version": "99.0-weird", "entries": []})
        self.assertEqual(manifest.app_version, "99.0-weird")


class TestReadPhotos(unittest.TestCase):
    def test_present_and_missing_photos(self):
        data = _zip_bytes({MANIFEST_NAME: json.dumps({"entries": []}), "photos/a.jpg": b"AAA"})
        with open_archive(io.BytesIO(data)) as reader:
            self.assertEqual(reader.photo_names(), ["a.jpg"])
            self.assertEqual(reader.read_photo("a.jpg"), b"AAA")
            self.assertIsNone(reader.read_photo("x.jpg"))
            self.assertIsNone(reader.open_photo("x.jpg"))
            self.assertIsNone(reader.open_photo(""))
            self.assertIsNone(reader.open_photo("sub/a.jpg"))

    def test_damaged_photo_reads_as_unavailable(self):
        payload = bytes(range(256)) * 4
        data = bytearray(_zip_bytes({MANIFEST_NAME: json.dumps({"entries": []}), "photos/a.jpg": payload}))
        # Flip bytes inside the compressed photo data (after its local header)
        start = bytes(data).index(b"photos/a.jpg") + len("photos/a.jpg")
        for i in range(start + 2, start + 12):
            data[i] ^= 0xFF

        with open_archive(io.BytesIO(bytes(data))) as reader:
            self.assertIsNone(reader.read_photo("a.jpg"))


class TestExportFilename(unittest.TestCase):
    def test_pattern(self):
        self.assertEqual(generate_export_filename(1755813502803), "photojournal_export_1755813502803.zip")
        self.assertRegex(generate_export_filename(), r"^photojournal_export_\d{13}\.zip$")


if __name__ == "__main__":
    unittest.main()
