"""Decoding errors."""

from __future__ import annotations


class DecodeError(Exception):
    """Base exception for Photo Database decoding failures."""


class RecordError(DecodeError):
    """Raised when a record cannot be read from the buffer."""

    def __init__(self, offset: int, tag: str | None, message: str) -> None:
        self.offset = offset
        self.tag = tag
        label = f"'{tag}' record" if tag else "record"
        super().__init__(f"{label} at offset 0x{offset:08X}: {message}")


class TimestampRangeError(DecodeError):
    """Raised when a platform epoch does not fit the calendar range."""

    def __init__(self, epoch: int) -> None:
        self.epoch = epoch
        super().__init__(f"Epoch value {epoch} is outside the representable calendar range")
