"""Assemble catalogue entities from the decoded record stream."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Iterator, Optional, Union

from photodb.config.models import DecodingSettings
from photodb.decoding.errors import TimestampRangeError
from photodb.decoding.records import (
    SECTION_ALBUM_LIST,
    SECTION_FILE_LIST,
    SECTION_IMAGE_LIST,
    BufferLike,
    Record,
    RecordDecoder,
    read_string,
)
from photodb.decoding.values import MetadataObjectType, UnsupportedMetadataObjectType

from .models import Album, FileEntry, Image, ImageBuilder, PhotoDatabase, Thumbnail

LOGGER = logging.getLogger(__name__)

# Lower wins: the full-resolution copy names the photo better than a bare file-name object.
_FULL_RESOLUTION_NAME = 0
_DIRECT_NAME = 1

# Entry records only count inside the section that lists them.
_HOME_SECTIONS = {
    "mhii": SECTION_IMAGE_LIST,
    "mhba": SECTION_ALBUM_LIST,
    "mhif": SECTION_FILE_LIST,
}


def _in_home_section(record: Record) -> bool:
    expected = _HOME_SECTIONS.get(record.tag)
    if expected is None:
        return True
    section = record.ancestor("mhsd")
    if section is not None and section.fields["index"] == expected:
        return True
    LOGGER.debug(
        "Ignoring %s record at offset 0x%08X outside section %d",
        record.tag,
        record.offset,
        expected,
    )
    return False


class _PendingImage:
    """Image entry whose records are still being read."""

    def __init__(self, record: Record) -> None:
        self.record = record
        self.builder = ImageBuilder(image_id=record.fields["image_id"])
        self.thumbnails: Dict[int, Thumbnail] = {}
        self.name_priority: Optional[int] = None

    @property
    def end(self) -> int:
        return self.record.end

    def offer_filename(self, raw: str, priority: int) -> None:
        if self.name_priority is None or priority < self.name_priority:
            self.builder.set_filename(raw)
            self.name_priority = priority


class EntityBuilder:
    """Group records by their owning entries and emit catalogue entities.

    Images are produced lazily by ``build``; albums, thumbnail files and
    field-level errors accumulate on the instance while the stream is consumed.
    """

    def __init__(self, settings: DecodingSettings | None = None) -> None:
        self.settings = settings or DecodingSettings()
        self.albums: list[Album] = []
        self.files: list[FileEntry] = []
        self.errors: list[str] = []
        self._albums_by_offset: Dict[int, Album] = {}

    def build(self, records: Iterable[Record]) -> Iterator[Image]:
        """Yield one ``Image`` per image entry, in container order.

        An image is only yielded once every record inside its entry was read.

        Raises:
            RecordError: Propagated from the record stream or string bodies.
            TimestampRangeError: When ``strict_timestamps`` is enabled and a
                date cannot be converted.
        """
        pending: Optional[_PendingImage] = None
        for record in records:
            if pending is not None and record.offset >= pending.end:
                yield pending.builder.build()
                pending = None

            if not _in_home_section(record):
                continue
            if record.tag == "mhii":
                pending = self._start_image(record)
            elif record.tag == "mhni" and pending is not None:
                self._add_thumbnail(pending, record)
            elif record.tag == "mhod":
                self._handle_metadata_object(pending, record)
            elif record.tag == "mhba":
                self._start_album(record)
            elif record.tag == "mhia":
                self._add_album_item(record)
            elif record.tag == "mhif":
                self.files.append(
                    FileEntry(
                        correlation_id=record.fields["correlation_id"],
                        image_size=record.fields["image_size"],
                    )
                )

        if pending is not None:
            yield pending.builder.build()

    def _start_image(self, record: Record) -> _PendingImage:
        pending = _PendingImage(record)
        builder = pending.builder
        builder.set_filesize(record.fields["source_image_size"])
        self._apply_date(builder.set_original_date, record, "original_date")
        self._apply_date(builder.set_digitized_date, record, "digitized_date")
        return pending

    def _apply_date(self, setter: Callable[[int], None], record: Record, name: str) -> None:
        try:
            setter(record.fields[name])
        except TimestampRangeError as exc:
            if self.settings.strict_timestamps:
                raise
            image_id = record.fields["image_id"]
            message = f"image {image_id} at offset 0x{record.offset:08X}: {name}: {exc}"
            LOGGER.warning("Leaving field unset: %s", message)
            self.errors.append(message)

    def _add_thumbnail(self, pending: _PendingImage, record: Record) -> None:
        container = record.ancestor("mhod")
        kind = "thumbnail"
        if container is not None and container.metadata_type is MetadataObjectType.CONTAINER:
            kind = "full_resolution"
        fields = record.fields
        thumbnail = Thumbnail(
            kind=kind,
            correlation_id=fields["correlation_id"],
            ithmb_offset=fields["ithmb_offset"],
            image_size=fields["image_size"],
            width=fields["width"],
            height=fields["height"],
            vertical_padding=fields["vertical_padding"],
            horizontal_padding=fields["horizontal_padding"],
        )
        pending.thumbnails[record.offset] = thumbnail
        pending.builder.thumbnails.append(thumbnail)

    def _handle_metadata_object(self, pending: Optional[_PendingImage], record: Record) -> None:
        kind = record.metadata_type
        if isinstance(kind, UnsupportedMetadataObjectType):
            LOGGER.debug("Ignoring %s data object at offset 0x%08X", kind.label, record.offset)
            return

        if kind is MetadataObjectType.FILE_NAME:
            if pending is not None:
                self._assign_filename(pending, record)
        elif kind is MetadataObjectType.ALBUM_NAME:
            owner = record.ancestor("mhba")
            album = self._albums_by_offset.get(owner.offset) if owner is not None else None
            if album is not None:
                album.name = read_string(
                    record, default_encoding=self.settings.default_string_encoding
                )

    def _assign_filename(self, pending: _PendingImage, record: Record) -> None:
        name = read_string(record, default_encoding=self.settings.default_string_encoding)
        holder = record.ancestor("mhni")
        if holder is None:
            pending.offer_filename(name, _DIRECT_NAME)
            return

        thumbnail = pending.thumbnails.get(holder.offset)
        if thumbnail is None:
            return
        thumbnail.filename = name
        if thumbnail.kind == "full_resolution":
            pending.offer_filename(name, _FULL_RESOLUTION_NAME)

    def _start_album(self, record: Record) -> None:
        album = Album(album_id=record.fields["album_id"], album_type=record.fields["album_type"])
        self._albums_by_offset[record.offset] = album
        self.albums.append(album)

    def _add_album_item(self, record: Record) -> None:
        owner = record.ancestor("mhba")
        album = self._albums_by_offset.get(owner.offset) if owner is not None else None
        if album is None:
            LOGGER.debug("Album item at offset 0x%08X has no enclosing album", record.offset)
            return
        album.image_ids.append(record.fields["image_id"])


class PhotoDatabaseDecoder:
    """Decode complete Photo Database buffers into catalogue entities."""

    def __init__(self, settings: DecodingSettings | None = None) -> None:
        self.settings = settings or DecodingSettings()

    def iter_images(self, buffer: BufferLike) -> Iterator[Image]:
        """Lazily yield the images of ``buffer``."""
        return EntityBuilder(self.settings).build(RecordDecoder(buffer).walk())

    def decode(self, buffer: BufferLike) -> PhotoDatabase:
        """Decode images, albums and thumbnail files from ``buffer``.

        Raises:
            DecodeError: If the buffer is structurally invalid.
        """
        builder = EntityBuilder(self.settings)
        images = list(builder.build(RecordDecoder(buffer).walk()))
        LOGGER.info(
            "Decoded %d images, %d albums and %d thumbnail files",
            len(images),
            len(builder.albums),
            len(builder.files),
        )
        return PhotoDatabase(
            images=images,
            albums=builder.albums,
            files=builder.files,
            errors=builder.errors,
        )


def iter_images(
    source: Union[BufferLike, Iterable[Record]],
    settings: DecodingSettings | None = None,
) -> Iterator[Image]:
    """Yield images from a raw buffer or from an already decoded record stream."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return PhotoDatabaseDecoder(settings).iter_images(source)
    return EntityBuilder(settings).build(source)


__all__ = ["EntityBuilder", "PhotoDatabaseDecoder", "iter_images"]
