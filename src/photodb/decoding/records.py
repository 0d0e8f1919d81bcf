"""Record decoder for the Photo Database container.

The container is a tree of little-endian records. Every record starts with a
4-byte ASCII tag, the header length (u32) and a third u32 that holds the total
record length for sized records, or the item count for list headers
(``mhli``, ``mhla``, ``mhlf``) whose items simply follow the header.

``RecordDecoder.walk`` visits the tree depth-first and yields one ``Record``
per header, skipping unknown records by their declared length.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Dict, Iterator, Literal, Optional, Tuple, Union

from .errors import RecordError
from .values import MetadataObjectKind, MetadataObjectType

LOGGER = logging.getLogger(__name__)

COMMON_HEADER_SIZE = 12
ROOT_TAG = "mhfd"

Role = Literal["container", "list", "leaf"]
FieldDef = Tuple[str, int, str]

# Metadata objects of these types wrap an ``mhni`` thumbnail reference.
CONTAINER_MHOD_TYPES = frozenset(
    {MetadataObjectType.THUMBNAIL_IMAGE, MetadataObjectType.CONTAINER}
)

SECTION_IMAGE_LIST = 1
SECTION_ALBUM_LIST = 2
SECTION_FILE_LIST = 3


@dataclass(frozen=True, slots=True)
class RecordLayout:
    """Static description of a record type.

    Attributes:
        role: How the walker treats the record body.
        description: Human-readable name used in diagnostics.
        fields: ``(name, offset, struct format)`` triples read from the header.
    """

    role: Role
    description: str
    fields: Tuple[FieldDef, ...] = ()


LAYOUTS: Dict[str, RecordLayout] = {
    "mhfd": RecordLayout(
        "container",
        "Data file",
        (("child_count", 20, "<I"), ("next_image_id", 28, "<I")),
    ),
    "mhsd": RecordLayout("container", "Section", (("index", 12, "<H"),)),
    "mhli": RecordLayout("list", "Image list", (("count", 8, "<I"),)),
    "mhla": RecordLayout("list", "Album list", (("count", 8, "<I"),)),
    "mhlf": RecordLayout("list", "File list", (("count", 8, "<I"),)),
    "mhii": RecordLayout(
        "container",
        "Image item",
        (
            ("child_count", 12, "<I"),
            ("image_id", 16, "<I"),
            ("song_id", 20, "<Q"),
            ("rating", 32, "<I"),
            ("original_date", 40, "<I"),
            ("digitized_date", 44, "<I"),
            ("source_image_size", 48, "<I"),
        ),
    ),
    "mhod": RecordLayout(
        "leaf",
        "Data object",
        (("type", 12, "<H"), ("padding_length", 15, "<B")),
    ),
    "mhni": RecordLayout(
        "container",
        "Image name",
        (
            ("child_count", 12, "<I"),
            ("correlation_id", 16, "<I"),
            ("ithmb_offset", 20, "<I"),
            ("image_size", 24, "<I"),
            ("vertical_padding", 28, "<h"),
            ("horizontal_padding", 30, "<h"),
            ("height", 32, "<H"),
            ("width", 34, "<H"),
        ),
    ),
    "mhba": RecordLayout(
        "container",
        "Photo album",
        (
            ("mhod_count", 12, "<I"),
            ("item_count", 16, "<I"),
            ("album_id", 20, "<I"),
            ("album_type", 30, "<B"),
        ),
    ),
    "mhia": RecordLayout("leaf", "Album item", (("image_id", 16, "<I"),)),
    "mhif": RecordLayout(
        "leaf",
        "File",
        (("correlation_id", 16, "<I"), ("image_size", 20, "<I")),
    ),
}


@dataclass(frozen=True, slots=True)
class Record:
    """A decoded record header and its payload.

    Attributes:
        tag: Four-character type identifier (e.g. ``"mhii"``).
        offset: Byte offset of the record within the buffer.
        header_length: Size of the fixed header in bytes.
        declared_length: Total record length; equals ``header_length`` for
            list headers whose third field is an item count.
        role: ``container``, ``list`` or ``leaf``.
        known: Whether the tag is part of the documented layout.
        fields: Parsed fixed-width header fields.
        payload: Copy of the body bytes for leaf records; empty for
            containers and lists, whose bodies are yielded as child records.
        depth: Nesting depth, ``0`` for top-level records.
        parent: Enclosing container or list record.
    """

    tag: str
    offset: int
    header_length: int
    declared_length: int
    role: Role
    known: bool
    fields: Dict[str, int] = field(default_factory=dict)
    payload: bytes = b""
    depth: int = 0
    parent: Optional["Record"] = field(default=None, repr=False, compare=False)

    @property
    def end(self) -> int:
        return self.offset + self.declared_length

    @property
    def metadata_type(self) -> Optional[MetadataObjectKind]:
        """Return the metadata-object classification for ``mhod`` records."""
        if self.tag != "mhod":
            return None
        return MetadataObjectType.from_code(self.fields["type"])

    def ancestor(self, tag: str) -> Optional["Record"]:
        """Return the nearest enclosing record with ``tag``, if any."""
        node = self.parent
        while node is not None:
            if node.tag == tag:
                return node
            node = node.parent
        return None

    def describe(self) -> str:
        """Return a one-line summary for diagnostics."""
        layout = LAYOUTS.get(self.tag)
        name = layout.description if layout else "Unknown"
        parts = [f"{self.tag} ({name}) @ 0x{self.offset:08X}", f"len={self.declared_length}"]
        kind = self.metadata_type
        if kind is not None:
            parts.append(f"type={kind.label}")
        parts.extend(f"{key}={value}" for key, value in self.fields.items() if key != "type")
        return " ".join(parts)


BufferLike = Union[bytes, bytearray, memoryview]


class RecordDecoder:
    """Walk the records of an in-memory Photo Database buffer."""

    def __init__(self, buffer: BufferLike) -> None:
        self._data = memoryview(buffer).cast("B")

    @property
    def size(self) -> int:
        """Return the size of the underlying buffer in bytes."""
        return len(self._data)

    def __iter__(self) -> Iterator[Record]:
        return self.walk()

    def walk(self) -> Iterator[Record]:
        """Yield records depth-first in container order.

        Every call starts a fresh pass over the buffer.

        Raises:
            RecordError: If the buffer does not start with an ``mhfd`` record,
                a header cannot be read, or a declared length runs past the
                buffer or the enclosing record.
        """
        # (end offset, record) for each open container or list
        stack: list[tuple[int, Record]] = []
        cursor = 0
        while True:
            while stack and cursor >= stack[-1][0]:
                stack.pop()
            bound = stack[-1][0] if stack else self.size
            # an empty buffer still owes the root header
            if cursor >= bound and cursor > 0:
                return

            parent = stack[-1][1] if stack else None
            record = self._read_record(cursor, bound, parent, len(stack))
            yield record

            if record.role == "container":
                stack.append((record.end, record))
                cursor = record.offset + record.header_length
            elif record.role == "list":
                stack.append((bound, record))
                cursor = record.end
            else:
                cursor = record.end

    def _read_record(
        self, offset: int, bound: int, parent: Optional[Record], depth: int
    ) -> Record:
        if offset + COMMON_HEADER_SIZE > self.size:
            raise RecordError(
                offset,
                None,
                f"{self.size - offset} bytes left, a record header needs {COMMON_HEADER_SIZE}",
            )

        tag = bytes(self._data[offset : offset + 4]).decode("ascii", errors="replace")
        header_length, third = struct.unpack_from("<II", self._data, offset + 4)
        if header_length < COMMON_HEADER_SIZE:
            raise RecordError(offset, tag, f"header length {header_length} is too small")
        if offset == 0 and tag != ROOT_TAG:
            raise RecordError(offset, tag, f"the buffer must start with an '{ROOT_TAG}' record")

        layout = LAYOUTS.get(tag)
        known = layout is not None
        role: Role = layout.role if layout else "leaf"
        declared_length = header_length if role == "list" else third

        if declared_length < header_length:
            raise RecordError(
                offset,
                tag,
                f"declared length {declared_length} is shorter than its header ({header_length})",
            )
        end = offset + declared_length
        if end > self.size:
            raise RecordError(
                offset,
                tag,
                f"declared length {declared_length} exceeds the {self.size - offset} "
                "bytes remaining in the buffer",
            )
        if end > bound:
            enclosing = parent.tag if parent is not None else "buffer"
            raise RecordError(
                offset,
                tag,
                f"declared length {declared_length} runs past the enclosing {enclosing}",
            )

        fields = self._read_fields(offset, tag, header_length, layout)
        if tag == "mhod" and fields["type"] in CONTAINER_MHOD_TYPES:
            role = "container"
        if not known:
            LOGGER.debug("Skipping unknown record %r at offset 0x%08X", tag, offset)

        payload = b""
        if role == "leaf":
            payload = bytes(self._data[offset + header_length : end])

        return Record(
            tag=tag,
            offset=offset,
            header_length=header_length,
            declared_length=declared_length,
            role=role,
            known=known,
            fields=fields,
            payload=payload,
            depth=depth,
            parent=parent,
        )

    def _read_fields(
        self, offset: int, tag: str, header_length: int, layout: Optional[RecordLayout]
    ) -> Dict[str, int]:
        fields: Dict[str, int] = {}
        if layout is None:
            return fields
        for name, field_offset, fmt in layout.fields:
            if field_offset + struct.calcsize(fmt) > header_length:
                raise RecordError(
                    offset,
                    tag,
                    f"header length {header_length} is too short to hold field '{name}'",
                )
            (fields[name],) = struct.unpack_from(fmt, self._data, offset + field_offset)
        return fields


def iter_records(buffer: BufferLike) -> Iterator[Record]:
    """Shortcut for ``RecordDecoder(buffer).walk()``."""
    return RecordDecoder(buffer).walk()


_STRING_HEADER = struct.Struct("<III")
_ENCODINGS = {1: "utf-8", 2: "utf-16-le"}


def read_string(record: Record, *, default_encoding: str = "utf-8") -> str:
    """Decode the string body carried by an album-name or file-name ``mhod``.

    The body holds the byte length (u32), the encoding (u32, ``1`` UTF-8,
    ``2`` UTF-16LE), a reserved u32 and then the string bytes.

    Raises:
        RecordError: If the body is too short for the declared string length.
    """
    body = record.payload
    if len(body) < _STRING_HEADER.size:
        raise RecordError(record.offset, record.tag, "string body is shorter than its header")
    length, encoding, _reserved = _STRING_HEADER.unpack_from(body, 0)
    start = _STRING_HEADER.size
    if start + length > len(body):
        raise RecordError(
            record.offset,
            record.tag,
            f"string length {length} exceeds the {len(body) - start} bytes available",
        )
    codec = _ENCODINGS.get(encoding, default_encoding)
    return body[start : start + length].decode(codec, errors="replace")


__all__ = [
    "COMMON_HEADER_SIZE",
    "ROOT_TAG",
    "CONTAINER_MHOD_TYPES",
    "LAYOUTS",
    "SECTION_IMAGE_LIST",
    "SECTION_ALBUM_LIST",
    "SECTION_FILE_LIST",
    "Record",
    "RecordLayout",
    "RecordDecoder",
    "iter_records",
    "read_string",
]
