"""Entity models for decoded Photo Database catalogues."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from photodb.decoding.errors import TimestampRangeError
from photodb.decoding.values import canonical_path, decode_timestamp, format_size


class CatalogueModel(BaseModel):
    """Shared configuration for catalogue models."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class Thumbnail(CatalogueModel):
    """Reference to a rendition of an image stored in an ``.ithmb`` file.

    Attributes:
        kind: ``thumbnail`` for device thumbnails or ``full_resolution`` for
            the copy of the original photo.
        correlation_id: Format identifier shared with the file list entry.
        ithmb_offset: Byte offset of the rendition within its ``.ithmb`` file.
        image_size: Size of the rendition in bytes.
        width: Rendition width in pixels.
        height: Rendition height in pixels.
        vertical_padding: Vertical padding applied by the device.
        horizontal_padding: Horizontal padding applied by the device.
        filename: Canonical path of the file holding the rendition.
    """

    kind: Literal["thumbnail", "full_resolution"] = "thumbnail"
    correlation_id: int = 0
    ithmb_offset: int = 0
    image_size: int = 0
    width: int = 0
    height: int = 0
    vertical_padding: int = 0
    horizontal_padding: int = 0
    filename: str = ""

    @field_validator("filename")
    @classmethod
    def _canonical_filename(cls, value: str) -> str:
        return canonical_path(value)


class Image(CatalogueModel):
    """One catalogued photograph.

    The human-readable size and both timestamps are computed from the raw
    fields on access, so they always agree with them.
    """

    filename: str = ""
    file_size_bytes: int = Field(default=0, ge=0)
    original_date_epoch: int = Field(default=0, ge=0)
    digitized_date_epoch: int = Field(default=0, ge=0)
    image_id: Optional[int] = None
    thumbnails: List[Thumbnail] = Field(default_factory=list)

    @field_validator("filename")
    @classmethod
    def _canonical_filename(cls, value: str) -> str:
        return canonical_path(value)

    @field_validator("original_date_epoch", "digitized_date_epoch")
    @classmethod
    def _representable_epoch(cls, value: int) -> int:
        try:
            decode_timestamp(value)
        except TimestampRangeError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def file_size_human_readable(self) -> str:
        return format_size(self.file_size_bytes)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def original_date_ts(self) -> datetime:
        return decode_timestamp(self.original_date_epoch)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def digitized_date_ts(self) -> datetime:
        return decode_timestamp(self.digitized_date_epoch)

    def set_filename(self, filename: str) -> None:
        self.filename = canonical_path(filename)

    def set_filesize(self, filesize_in_bytes: int) -> None:
        self.file_size_bytes = filesize_in_bytes

    def set_original_date(self, epoch: int) -> None:
        """Set the capture time.

        Raises:
            TimestampRangeError: If ``epoch`` has no calendar representation;
                the image is left unchanged.
        """
        decode_timestamp(epoch)
        self.original_date_epoch = epoch

    def set_digitized_date(self, epoch: int) -> None:
        """Set the digitization time, with the same checks as ``set_original_date``."""
        decode_timestamp(epoch)
        self.digitized_date_epoch = epoch

    def are_dates_valid(self) -> bool:
        """Return True when both timestamps were set (epoch ``0`` means unset)."""
        return self.original_date_epoch > 0 and self.digitized_date_epoch > 0


@dataclass(slots=True)
class ImageBuilder:
    """Collect the fields of one image as its records are decoded.

    ``None`` marks a field that has not been read yet, which keeps "missing"
    apart from "read as zero" until ``build`` applies the defaults.

    Attributes:
        image_id: Identifier from the image entry header.
        filename: Canonical filename, once read.
        file_size_bytes: Source image size, once read.
        original_date_epoch: Raw capture time, once read.
        digitized_date_epoch: Raw digitization time, once read.
        thumbnails: Thumbnail references collected so far.
    """

    image_id: Optional[int] = None
    filename: Optional[str] = None
    file_size_bytes: Optional[int] = None
    original_date_epoch: Optional[int] = None
    digitized_date_epoch: Optional[int] = None
    thumbnails: List[Thumbnail] = field(default_factory=list)

    def set_filename(self, filename: str) -> None:
        self.filename = canonical_path(filename)

    def set_filesize(self, filesize_in_bytes: int) -> None:
        if filesize_in_bytes < 0:
            raise ValueError(f"File size cannot be negative: {filesize_in_bytes}")
        self.file_size_bytes = filesize_in_bytes

    def set_original_date(self, epoch: int) -> None:
        decode_timestamp(epoch)
        self.original_date_epoch = epoch

    def set_digitized_date(self, epoch: int) -> None:
        decode_timestamp(epoch)
        self.digitized_date_epoch = epoch

    def missing_fields(self) -> List[str]:
        """Return the names of fields that were never read."""
        names = ("filename", "file_size_bytes", "original_date_epoch", "digitized_date_epoch")
        return [name for name in names if getattr(self, name) is None]

    def build(self) -> Image:
        """Return the finished ``Image``, using defaults for unread fields."""
        return Image(
            image_id=self.image_id,
            filename=self.filename or "",
            file_size_bytes=self.file_size_bytes or 0,
            original_date_epoch=self.original_date_epoch or 0,
            digitized_date_epoch=self.digitized_date_epoch or 0,
            thumbnails=list(self.thumbnails),
        )


class Album(CatalogueModel):
    """A photo album from the album list.

    Attributes:
        album_id: Album identifier.
        name: Album name, empty when the album carries no name object.
        album_type: Raw album type byte (``1`` marks the master library).
        image_ids: Identifiers of the member images, in album order.
    """

    album_id: int
    name: str = ""
    album_type: int = 0
    image_ids: List[int] = Field(default_factory=list)


class FileEntry(CatalogueModel):
    """An ``.ithmb`` thumbnail file described by the file list."""

    correlation_id: int
    image_size: int


class PhotoDatabase(CatalogueModel):
    """Everything decoded from one container buffer.

    Attributes:
        images: Images in container order.
        albums: Albums in container order.
        files: Thumbnail file descriptions.
        errors: Field-level failures recorded under the best-effort policy.
    """

    images: List[Image] = Field(default_factory=list)
    albums: List[Album] = Field(default_factory=list)
    files: List[FileEntry] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    def images_by_id(self) -> Dict[int, Image]:
        return {image.image_id: image for image in self.images if image.image_id is not None}

    def album_images(self, album: Album) -> List[Image]:
        """Return the images referenced by ``album``, skipping unknown ids."""
        lookup = self.images_by_id()
        return [lookup[image_id] for image_id in album.image_ids if image_id in lookup]


__all__ = [
    "CatalogueModel",
    "Thumbnail",
    "Image",
    "ImageBuilder",
    "Album",
    "FileEntry",
    "PhotoDatabase",
]
