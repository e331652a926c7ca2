"""Metadata codecs: serialize tag directories and splice them into images.

`MetadataCodec.embed` is the only entry point the pipeline uses. It is
best-effort: if the block cannot be built or spliced the image is still
delivered, re-encoded and without metadata.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
import io
import struct
from typing import Callable

import piexif

from seo_geotagger.core.models import GeoLocation, MetadataRecord
from seo_geotagger.exif.directories import (
    MetadataDirectories,
    TagDirectory,
    TagType,
    TagValue,
    build_directories,
)
from seo_geotagger.exif.segments import (
    APP0,
    APP1,
    MAX_SEGMENT_LENGTH,
    count_exif_blocks,
    exif_blocks,
    iter_segments,
)
from seo_geotagger.imaging.transform import JPEG_QUALITY, is_jpeg, needs_orientation_bake, to_jpeg
from seo_geotagger.util.errors import EmbeddingFailure

LogCb = Callable[[str], None]

_PIEXIF_TYPES = {
    piexif.TYPES.Ascii: TagType.ASCII,
    piexif.TYPES.Byte: TagType.BYTE,
    piexif.TYPES.Undefined: TagType.UNDEFINED,
    piexif.TYPES.Rational: TagType.RATIONAL,
}


class MetadataCodec(ABC):
    """One implementation per container format."""

    def __init__(self, quality: int = JPEG_QUALITY, log: LogCb | None = None) -> None:
        self.quality = quality
        self.log = log

    @abstractmethod
    def normalize(self, data: bytes) -> bytes:
        """Bring `data` into this codec's container."""

    @abstractmethod
    def serialize(self, dirs: MetadataDirectories) -> bytes:
        """Lay the directories out as a binary metadata block."""

    @abstractmethod
    def strip(self, data: bytes) -> bytes:
        """Remove every managed metadata block."""

    @abstractmethod
    def insert(self, block: bytes, data: bytes) -> bytes:
        """Insert `block` into a stream that carries no managed block."""

    @abstractmethod
    def fallback(self, data: bytes) -> bytes:
        """Container-conformant copy of `data` without any managed block."""

    def embed(
        self,
        data: bytes,
        record: MetadataRecord,
        identity: str,
        location: GeoLocation,
        now: datetime | None = None,
    ) -> bytes:
        try:
            normalized = self.normalize(data)
            block = self.serialize(build_directories(record, identity, location, now))
            return self.insert(block, self.strip(normalized))
        except Exception as e:
            if self.log:
                self.log(f"Metadata embedding failed, delivering image without metadata: {e}")
            return self.fallback(data)


class JpegExifCodec(MetadataCodec):
    """Exif APP1 blocks in JPEG streams, serialized with piexif."""

    def normalize(self, data: bytes) -> bytes:
        if is_jpeg(data) and not needs_orientation_bake(data):
            # walk the header once so malformed streams fail here
            for _ in iter_segments(data):
                pass
            return data
        return to_jpeg(data, self.quality)

    def serialize(self, dirs: MetadataDirectories) -> bytes:
        exif_dict = {
            "0th": _plain(dirs.primary),
            "Exif": _plain(dirs.capture),
            "GPS": _plain(dirs.location),
            "1st": {},
            "thumbnail": None,
        }
        try:
            return piexif.dump(exif_dict)
        except (ValueError, TypeError, struct.error) as e:
            raise EmbeddingFailure(f"Could not serialize metadata block: {e}") from e

    def strip(self, data: bytes) -> bytes:
        out = io.BytesIO()
        try:
            piexif.remove(data, out)
        except (ValueError, IndexError, struct.error) as e:
            raise EmbeddingFailure(f"Could not strip metadata block: {e}") from e
        return out.getvalue()

    def insert(self, block: bytes, data: bytes) -> bytes:
        """Splice `block` as an APP1 segment right after SOI, or after a JFIF APP0."""
        if len(block) + 2 > MAX_SEGMENT_LENGTH:
            raise EmbeddingFailure(f"Metadata block of {len(block)} bytes does not fit one segment.")
        at = next(seg.offset for seg in iter_segments(data) if seg.marker != APP0)
        segment = bytes((0xFF, APP1)) + struct.pack(">H", len(block) + 2) + block
        result = data[:at] + segment + data[at:]
        blocks = count_exif_blocks(result)
        if blocks != 1:
            raise EmbeddingFailure(f"Expected exactly one metadata block, found {blocks}.")
        return result

    def fallback(self, data: bytes) -> bytes:
        return to_jpeg(data, self.quality)


def _plain(directory: TagDirectory) -> dict[int, object]:
    return {tag: entry.value for tag, entry in directory.entries.items()}


def read_directories(data: bytes) -> MetadataDirectories | None:
    """Load the first embedded Exif block of a JPEG back into directories.

    Pointer tags and value types outside the model are skipped.
    """
    blocks = exif_blocks(data)
    if not blocks:
        return None
    loaded = piexif.load(blocks[0])
    dirs = MetadataDirectories()
    for ifd, directory in (("0th", dirs.primary), ("Exif", dirs.capture), ("GPS", dirs.location)):
        for tag, value in (loaded.get(ifd) or {}).items():
            info = piexif.TAGS[ifd].get(tag)
            kind = _PIEXIF_TYPES.get(info["type"]) if info else None
            if kind is None:
                continue
            if kind == TagType.BYTE:
                value = bytes(value)
            directory.entries[tag] = TagValue(kind, value)
    return dirs
