"""Record-level decoding for Photo Database containers."""

from .errors import DecodeError, RecordError, TimestampRangeError
from .records import Record, RecordDecoder, iter_records, read_string
from .values import (
    MetadataObjectType,
    UnsupportedMetadataObjectType,
    canonical_path,
    decode_metadata_type,
    decode_timestamp,
    format_size,
)

__all__ = [
    "DecodeError",
    "RecordError",
    "TimestampRangeError",
    "Record",
    "RecordDecoder",
    "iter_records",
    "read_string",
    "MetadataObjectType",
    "UnsupportedMetadataObjectType",
    "canonical_path",
    "decode_metadata_type",
    "decode_timestamp",
    "format_size",
]
