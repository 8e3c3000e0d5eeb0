"""
Wire models for the archive manifest (``data.json``).

Layout (format version 1.x):

    {
      "export_version": "1.0",
      "export_timestamp": 1755813502803,
      "app_version": "1.0.0",
      "entries": [
        {"id": 7, "text": "...", "photo_filename": "1000000255.jpg",
         "timestamp": 1755813502803, "latitude": 42.42302267, "longitude": -71.19617533}
      ]
    }

Unknown fields are ignored so newer 1.x producers stay readable.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from .naming import is_photo_name


FORMAT_VERSION = "1.0"
SUPPORTED_MAJOR_VERSION = 1


def format_major_version(version: str) -> Optional[int]:
    """Major component of a dotted version string, or None if it has none."""
    head = version.strip().split(".", 1)[0]
    try:
        return int(head)
    except ValueError:
        return None


class ArchiveRecord(BaseModel):
    """One exported journal entry."""

    model_config = ConfigDict(extra="ignore")

    # Source entry id, kept for traceability only; never reused as a store key.
    id: int = 0
    text: str
    # Only used to look up an archive member; an unusable name degrades to "no photo".
    photo_filename: str
    timestamp: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @model_validator(mode="after")
    def _coordinates_paired(self) -> "ArchiveRecord":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must both be set or both be null")
        return self

    @property
    def has_photo(self) -> bool:
        return is_photo_name(self.photo_filename)


class ArchiveManifest(BaseModel):
    """The whole ``data.json`` document."""

    model_config = ConfigDict(extra="ignore")

    export_version: str = FORMAT_VERSION
    export_timestamp: int = 0
    app_version: str = ""
    entries: list[ArchiveRecord]

    def photo_names(self) -> list[str]:
        """Distinct non-sentinel photo names, in first-seen record order."""
        seen: dict[str, None] = {}
        for record in self.entries:
            if record.has_photo:
                seen.setdefault(record.photo_filename, None)
        return list(seen)

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(indent=2).encode("utf-8")
