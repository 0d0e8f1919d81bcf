"""Catalogue entities built from Photo Database records."""

from .builder import EntityBuilder, PhotoDatabaseDecoder, iter_images
from .models import Album, FileEntry, Image, ImageBuilder, PhotoDatabase, Thumbnail

__all__ = [
    "EntityBuilder",
    "PhotoDatabaseDecoder",
    "iter_images",
    "Album",
    "FileEntry",
    "Image",
    "ImageBuilder",
    "PhotoDatabase",
    "Thumbnail",
]
