"""Value conversions shared by the record decoder and entity builder.

These helpers are pure functions: epoch conversion from the device's platform
epoch, display formatting for byte counts, path canonicalization, and the
metadata-object ("MHOD") type classification.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Union

from .errors import TimestampRangeError

PLATFORM_EPOCH = datetime(1904, 1, 1, tzinfo=timezone.utc)
PLATFORM_EPOCH_OFFSET = 2_082_844_800

ONE_KB_AS_BYTES = 1000.0
ONE_MB_AS_BYTES = 1_000_000.0

_DEVICE_SEPARATORS = (":", "\\")
CANONICAL_SEPARATOR = "/"


def decode_timestamp(epoch: int) -> datetime:
    """Convert seconds since the platform epoch into a UTC timestamp.

    Args:
        epoch: Raw seconds since 1904-01-01T00:00:00Z.

    Returns:
        datetime: Timezone-aware UTC timestamp. ``0`` maps to the platform
        epoch itself, which callers treat as "unset".

    Raises:
        TimestampRangeError: If the value is negative or beyond ``datetime.max``.
    """
    if epoch < 0:
        raise TimestampRangeError(epoch)
    try:
        return PLATFORM_EPOCH + timedelta(seconds=epoch)
    except OverflowError as exc:
        raise TimestampRangeError(epoch) from exc


def format_size(size_bytes: int) -> str:
    """Return a display string using the largest unit whose value is at least 1.

    Only kilobytes and megabytes are used (decimal units), e.g. ``1245916``
    renders as ``"1.25 MB"``. A kilobyte value that would round up to
    ``1000.00`` is shown in megabytes instead, so ``999999`` is ``"1.00 MB"``.
    """
    if size_bytes < 0:
        raise ValueError(f"File size cannot be negative: {size_bytes}")

    size_in_kb = size_bytes / ONE_KB_AS_BYTES
    size_in_mb = size_bytes / ONE_MB_AS_BYTES
    kb_text = f"{size_in_kb:.2f}"
    if size_in_mb < 1.0 and float(kb_text) < 1000.0:
        return f"{kb_text} KB"
    return f"{size_in_mb:.2f} MB"


def canonical_path(raw: str) -> str:
    """Map device path separators onto ``/`` without any other change."""
    path = raw
    for separator in _DEVICE_SEPARATORS:
        path = path.replace(separator, CANONICAL_SEPARATOR)
    return path


class MetadataObjectType(IntEnum):
    """Known metadata-object type tags."""

    ALBUM_NAME = 1
    THUMBNAIL_IMAGE = 2
    FILE_NAME = 3
    CONTAINER = 5

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]

    @classmethod
    def from_code(cls, code: int) -> "MetadataObjectKind":
        """Return the known member for ``code`` or an unsupported marker."""
        try:
            return cls(code)
        except ValueError:
            return UnsupportedMetadataObjectType(code)


@dataclass(frozen=True, slots=True)
class UnsupportedMetadataObjectType:
    """Catch-all for tags that are not part of the documented set.

    Attributes:
        code: Original numeric tag as read from the record header.
    """

    code: int

    @property
    def label(self) -> str:
        return f"Unsupported ({self.code})"


MetadataObjectKind = Union[MetadataObjectType, UnsupportedMetadataObjectType]

_TYPE_LABELS = {
    MetadataObjectType.ALBUM_NAME: "Album Name",
    MetadataObjectType.THUMBNAIL_IMAGE: "Thumbnail image",
    MetadataObjectType.FILE_NAME: "File name",
    MetadataObjectType.CONTAINER: "Container (unused)",
}


def decode_metadata_type(code: int) -> str:
    """Return the descriptive label for a metadata-object type tag.

    Tags outside the documented table (e.g. ``6``, seen on real devices) are
    reported as ``"Unsupported (<code>)"`` instead of failing.
    """
    return MetadataObjectType.from_code(code).label


__all__ = [
    "PLATFORM_EPOCH",
    "PLATFORM_EPOCH_OFFSET",
    "CANONICAL_SEPARATOR",
    "decode_timestamp",
    "format_size",
    "canonical_path",
    "MetadataObjectType",
    "UnsupportedMetadataObjectType",
    "MetadataObjectKind",
    "decode_metadata_type",
]
