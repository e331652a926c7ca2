from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator
import struct

from seo_geotagger.util.errors import EmbeddingFailure

SOI = 0xD8
EOI = 0xD9
SOS = 0xDA
APP0 = 0xE0
APP1 = 0xE1
EXIF_HEADER = b"Exif\x00\x00"
MAX_SEGMENT_LENGTH = 0xFFFF

# Markers that stand alone without a length field.
_STANDALONE = {0x01, *range(0xD0, 0xD8)}


@dataclass(frozen=True)
class Segment:
    marker: int
    offset: int  # position of the 0xFF marker byte
    payload: bytes  # bytes after the length field

    @property
    def is_exif(self) -> bool:
        return self.marker == APP1 and self.payload.startswith(EXIF_HEADER)


def iter_segments(data: bytes) -> Iterator[Segment]:
    """Yield header segments of a JPEG stream up to (and including) SOS.

    Raises EmbeddingFailure on anything that is not a well formed JPEG header.
    """
    if data[:2] != b"\xff\xd8":
        raise EmbeddingFailure("Not a JPEG stream (missing SOI marker).")
    pos = 2
    size = len(data)
    while pos < size:
        if data[pos] != 0xFF:
            raise EmbeddingFailure(f"Expected marker at offset {pos}.")
        start = pos
        while pos < size and data[pos] == 0xFF:
            pos += 1
        if pos >= size:
            break
        marker = data[pos]
        pos += 1
        if marker in _STANDALONE:
            yield Segment(marker, start, b"")
            continue
        if marker == EOI:
            yield Segment(marker, start, b"")
            return
        if pos + 2 > size:
            raise EmbeddingFailure(f"Truncated segment length at offset {pos}.")
        (length,) = struct.unpack(">H", data[pos:pos + 2])
        if length < 2 or pos + length > size:
            raise EmbeddingFailure(f"Invalid segment length {length} at offset {pos}.")
        yield Segment(marker, start, data[pos + 2:pos + length])
        pos += length
        if marker == SOS:
            return
    raise EmbeddingFailure("JPEG stream ended before the first scan.")


def exif_blocks(data: bytes) -> list[bytes]:
    return [seg.payload for seg in iter_segments(data) if seg.is_exif]


def count_exif_blocks(data: bytes) -> int:
    return len(exif_blocks(data))

