"""
Archive asset naming conventions.

Photo assets have no inherent filename: they are identified by opaque references
such as ``content://media/external/images/media/1000000255`` or
``asset://media/imported_2026-01-13-10-30-00-a1b2c3.jpg``. Inside an archive each
asset needs a unique, filesystem-safe name:

- base: last path segment of the reference, keeping only [a-zA-Z0-9]
  (falls back to "photo" when nothing survives)
- name: <base>.jpg, then <base>_1.jpg, <base>_2.jpg, ... on collision
- after MAX_SUFFIX_ATTEMPTS collisions a random uuid4 name is used instead
"""

from __future__ import annotations

import re
import uuid
from typing import Optional
from urllib.parse import urlparse


# Reserved photo_filename meaning "this entry has no photo"
NO_PHOTO_SENTINEL = "null.jpg"

DEFAULT_BASE_NAME = "photo"
DEFAULT_EXTENSION = "jpg"
MAX_SUFFIX_ATTEMPTS = 100

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def last_path_segment(source_ref: str) -> str:
    """
    Get the last path-like segment of an opaque reference.

    Args:
        source_ref: A URI (``scheme://authority/path``) or plain path.

    Returns:
        The last non-empty segment, or "" if there is none.
    """
    parsed = urlparse(source_ref)
    path = parsed.path if parsed.scheme else source_ref
    if not path.strip("/") and parsed.netloc:
        path = parsed.netloc

    segments = [s for s in re.split(r"[\\/]", path) if s]
    return segments[-1] if segments else ""


def derive_base_name(source_ref: str) -> str:
    """
    Derive a filesystem-safe base name from a source reference.

    Args:
        source_ref: The opaque photo reference.

    Returns:
        Alphanumeric base name, or DEFAULT_BASE_NAME if stripping leaves nothing.
    """
    base = _UNSAFE_CHARS.sub("", last_path_segment(source_ref))
    return base or DEFAULT_BASE_NAME


def is_photo_name(name: Optional[str]) -> bool:
    """True if ``name`` refers to an archived photo (not empty, not the sentinel)."""
    return bool(name) and name != NO_PHOTO_SENTINEL


def get_extension_for_mime(mime_type: str) -> str:
    """
    Get the file extension for a MIME type.

    Args:
        mime_type: The MIME type (e.g., 'image/jpeg', 'image/png').

    Returns:
        File extension without dot (e.g., 'jpg', 'png').
    """
    mime_to_ext = {
        'image/jpeg': 'jpg',
        'image/jpg': 'jpg',
        'image/png': 'png',
        'image/gif': 'gif',
        'image/webp': 'webp',
        'image/heic': 'heic',
    }

    mime_lower = mime_type.lower().split(';')[0].strip()
    return mime_to_ext.get(mime_lower, mime_lower.split('/')[-1] or DEFAULT_EXTENSION)


class AssetNamer:
    """
    Allocates unique archive names for photo references within one operation.

    The same reference always gets the same name, so a photo shared by several
    entries is archived once.

    Usage:
        namer = AssetNamer()
        name = namer.allocate("content://media/external/images/media/42")
        # -> "42.jpg"
    """

    def __init__(self, extension: str = DEFAULT_EXTENSION) -> None:
        self._extension = extension.lstrip(".")
        self._by_ref: dict[str, str] = {}
        self._allocated: set[str] = set()

    @property
    def allocated(self) -> frozenset[str]:
        """All names handed out so far."""
        return frozenset(self._allocated)

    @property
    def assignments(self) -> dict[str, str]:
        """Reference -> allocated name, in allocation order."""
        return dict(self._by_ref)

    def allocate(self, source_ref: str) -> str:
        """
        Allocate (or recall) the archive name for a photo reference.

        Args:
            source_ref: The opaque photo reference (must be non-empty).

        Returns:
            A unique name ending in the namer's extension.

        Raises:
            ValueError: If source_ref is empty (use NO_PHOTO_SENTINEL instead).
        """
        if not source_ref:
            raise ValueError("source_ref must not be empty")

        existing = self._by_ref.get(source_ref)
        if existing is not None:
            return existing

        name = allocate_name(source_ref, self._allocated, extension=self._extension)
        self._by_ref[source_ref] = name
        self._allocated.add(name)
        return name


def allocate_name(
    source_ref: str,
    already_allocated: set[str] | frozenset[str],
    *,
    extension: str = DEFAULT_EXTENSION,
) -> str:
    """
    Pick a name for ``source_ref`` that is not in ``already_allocated``.

    Does not record the result; see AssetNamer for the memoized variant.
    """
    ext = extension.lstrip(".")
    base = derive_base_name(source_ref)

    candidate = f"{base}.{ext}"
    counter = 1
    while candidate in already_allocated:
        if counter > MAX_SUFFIX_ATTEMPTS:
            break
        candidate = f"{base}_{counter}.{ext}"
        counter += 1
    else:
        return candidate

    candidate = f"{uuid.uuid4()}.{ext}"
    while candidate in already_allocated:
        candidate = f"{uuid.uuid4()}.{ext}"
    return candidate
