"""Shared fixtures that assemble synthetic Photo Database buffers."""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Iterable, Sequence, Tuple

import pytest

FieldValue = Tuple[int, str, int]

# Two capture times after the Unix epoch, expressed in platform epoch seconds.
ORIGINAL_EPOCH = 3_300_000_000
DIGITIZED_EPOCH = 3_300_003_600


class ContainerFactory:
    """Build records using the header lengths devices write."""

    ORIGINAL_EPOCH = ORIGINAL_EPOCH
    DIGITIZED_EPOCH = DIGITIZED_EPOCH

    @staticmethod
    def header(
        tag: bytes, header_length: int, third: int, values: Iterable[FieldValue] = ()
    ) -> bytearray:
        data = bytearray(header_length)
        data[0:4] = tag
        struct.pack_into("<II", data, 4, header_length, third)
        for offset, fmt, value in values:
            struct.pack_into(fmt, data, offset, value)
        return data

    @classmethod
    def sized(
        cls, tag: bytes, header_length: int, values: Iterable[FieldValue] = (), body: bytes = b""
    ) -> bytes:
        return bytes(cls.header(tag, header_length, header_length + len(body), values)) + body

    @classmethod
    def listing(cls, tag: bytes, items: Sequence[bytes]) -> bytes:
        return bytes(cls.header(tag, 0x5C, len(items))) + b"".join(items)

    @classmethod
    def string_object(cls, mhod_type: int, text: str, encoding: int = 2) -> bytes:
        raw = text.encode("utf-16-le" if encoding == 2 else "utf-8")
        body = struct.pack("<III", len(raw), encoding, 0) + raw
        return cls.sized(b"mhod", 0x18, [(12, "<H", mhod_type)], body)

    @classmethod
    def thumbnail(
        cls,
        filename: str,
        *,
        correlation_id: int = 1019,
        ithmb_offset: int = 0,
        image_size: int = 6_400,
        width: int = 42,
        height: int = 30,
        mhod_type: int = 2,
    ) -> bytes:
        mhni = cls.sized(
            b"mhni",
            0x4C,
            [
                (12, "<I", 1),
                (16, "<I", correlation_id),
                (20, "<I", ithmb_offset),
                (24, "<I", image_size),
                (32, "<H", height),
                (34, "<H", width),
            ],
            cls.string_object(3, filename),
        )
        return cls.sized(b"mhod", 0x18, [(12, "<H", mhod_type)], mhni)

    @classmethod
    def image(
        cls,
        image_id: int,
        *,
        size: int,
        original: int = ORIGINAL_EPOCH,
        digitized: int = DIGITIZED_EPOCH,
        children: Sequence[bytes] = (),
    ) -> bytes:
        return cls.sized(
            b"mhii",
            0x98,
            [
                (12, "<I", len(children)),
                (16, "<I", image_id),
                (40, "<I", original),
                (44, "<I", digitized),
                (48, "<I", size),
            ],
            b"".join(children),
        )

    @classmethod
    def album(
        cls, album_id: int, name: str, image_ids: Sequence[int], album_type: int = 2
    ) -> bytes:
        items = b"".join(cls.sized(b"mhia", 0x28, [(16, "<I", image_id)]) for image_id in image_ids)
        return cls.sized(
            b"mhba",
            0x94,
            [
                (12, "<I", 1),
                (16, "<I", len(image_ids)),
                (20, "<I", album_id),
                (30, "<B", album_type),
            ],
            cls.string_object(1, name, encoding=1) + items,
        )

    @classmethod
    def file_entry(cls, correlation_id: int, image_size: int) -> bytes:
        return cls.sized(b"mhif", 0x7C, [(16, "<I", correlation_id), (20, "<I", image_size)])

    @classmethod
    def section(cls, index: int, payload: bytes) -> bytes:
        return cls.sized(b"mhsd", 0x60, [(12, "<H", index)], payload)

    @classmethod
    def container(cls, *sections: bytes) -> bytes:
        return cls.sized(b"mhfd", 0x84, [(20, "<I", len(sections))], b"".join(sections))

    @classmethod
    def images_only(cls, *images: bytes) -> bytes:
        return cls.container(cls.section(1, cls.listing(b"mhli", images)))


@pytest.fixture
def factory() -> type[ContainerFactory]:
    return ContainerFactory


@pytest.fixture
def single_image_buffer(factory: type[ContainerFactory]) -> bytes:
    """Container holding one photo with a full-resolution copy and a thumbnail."""
    image = factory.image(
        1,
        size=1_245_916,
        children=[
            factory.thumbnail(":Thumbs:F1019_1.ithmb", correlation_id=1019),
            factory.thumbnail(
                ":Full Resolution:2004:IMG_0001.JPG",
                correlation_id=1,
                image_size=1_245_916,
                width=2048,
                height=1536,
                mhod_type=5,
            ),
        ],
    )
    return factory.images_only(image)


@pytest.fixture
def library_buffer(factory: type[ContainerFactory]) -> bytes:
    """Container with two images, two albums and a thumbnail file list."""
    first = factory.image(
        100,
        size=2_000_000,
        children=[
            factory.thumbnail(":Thumbs:F1019_1.ithmb"),
            factory.string_object(3, ":DCIM:IMG_0100.JPG"),
        ],
    )
    second = factory.image(101, size=850_000, original=0, digitized=0)
    return factory.container(
        factory.section(1, factory.listing(b"mhli", [first, second])),
        factory.section(
            2,
            factory.listing(
                b"mhla",
                [
                    factory.album(1, "Library", [100, 101], album_type=1),
                    factory.album(2, "Holiday", [101]),
                ],
            ),
        ),
        factory.section(3, factory.listing(b"mhlf", [factory.file_entry(1019, 6_400)])),
    )


@pytest.fixture
def database_file(tmp_path: Path, library_buffer: bytes) -> Path:
    path = tmp_path / "Photo Database"
    path.write_bytes(library_buffer)
    return path
