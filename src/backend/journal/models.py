from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Optional


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


@dataclass(frozen=True)
class JournalEntry:
    text: str
    photo_ref: str = ""  # "" means no photo
    created_at_ms: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    id: Optional[int] = None  # assigned by the store

    def __post_init__(self) -> None:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must both be set or both be None")

    @property
    def has_photo(self) -> bool:
        return bool(self.photo_ref)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None

    def with_id(self, entry_id: Optional[int]) -> "JournalEntry":
        return replace(self, id=entry_id)

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "photo_ref": self.photo_ref,
            "created_at_ms": self.created_at_ms,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
