"""In-memory tag directory model for the embedded metadata block.

The three directories mirror the IFDs of an Exif block:

- primary  (0th IFD)  file level descriptive fields + Windows XP fields
- capture  (Exif IFD) free text annotation
- location (GPS IFD)  coordinates and date stamp

Values are stored already encoded (bytes / rationals) so that a serializer
only has to lay them out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

import piexif.helper

from seo_geotagger.core.models import GeoLocation, MetadataRecord
from seo_geotagger.core.records import aggregate_tags

SOFTWARE_NAME = "Asset Master SEO Tagger"
TAG_SEPARATOR = "; "

# 0th IFD
IMAGE_DESCRIPTION = 0x010E
SOFTWARE = 0x0131
DATE_TIME = 0x0132
ARTIST = 0x013B
COPYRIGHT = 0x8298
XP_TITLE = 0x9C9B
XP_COMMENT = 0x9C9C
XP_AUTHOR = 0x9C9D
XP_KEYWORDS = 0x9C9E
XP_SUBJECT = 0x9C9F

# Exif IFD
USER_COMMENT = 0x9286

# GPS IFD
GPS_LATITUDE_REF = 0x0001
GPS_LATITUDE = 0x0002
GPS_LONGITUDE_REF = 0x0003
GPS_LONGITUDE = 0x0004
GPS_DATE_STAMP = 0x001D

Rational = tuple[int, int]
DMS = tuple[Rational, Rational, Rational]


class TagType(str, Enum):
    ASCII = "ascii"
    BYTE = "byte"
    UNDEFINED = "undefined"
    RATIONAL = "rational"


TagPayload = Union[bytes, tuple[Rational, ...]]


@dataclass(frozen=True)
class TagValue:
    type: TagType
    value: TagPayload


@dataclass
class TagDirectory:
    name: str
    entries: dict[int, TagValue] = field(default_factory=dict)

    def set_ascii(self, tag: int, text: str) -> None:
        # ASCII-typed fields carry UTF-8 so non-latin text survives
        self.entries[tag] = TagValue(TagType.ASCII, text.encode("utf-8"))

    def set_bytes(self, tag: int, data: bytes) -> None:
        self.entries[tag] = TagValue(TagType.BYTE, data)

    def set_undefined(self, tag: int, data: bytes) -> None:
        self.entries[tag] = TagValue(TagType.UNDEFINED, data)

    def set_rationals(self, tag: int, values: tuple[Rational, ...]) -> None:
        self.entries[tag] = TagValue(TagType.RATIONAL, tuple(values))

    def get(self, tag: int) -> TagPayload | None:
        entry = self.entries.get(tag)
        return entry.value if entry else None

    def __contains__(self, tag: int) -> bool:
        return tag in self.entries

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class MetadataDirectories:
    primary: TagDirectory = field(default_factory=lambda: TagDirectory("0th"))
    capture: TagDirectory = field(default_factory=lambda: TagDirectory("Exif"))
    location: TagDirectory = field(default_factory=lambda: TagDirectory("GPS"))


def xp_string(text: str) -> bytes:
    """UTF-16LE with a two byte null terminator, as Windows Explorer reads it."""
    return text.encode("utf-16-le") + b"\x00\x00"


def decode_xp(data: bytes | tuple[int, ...]) -> str:
    raw = bytes(data)
    if raw.endswith(b"\x00\x00") and len(raw) % 2 == 0:
        raw = raw[:-2]
    return raw.decode("utf-16-le")


def to_dms(value: float) -> DMS:
    d = abs(value)
    degrees = int(d)
    minutes_f = (d - degrees) * 60
    minutes = int(minutes_f)
    seconds = round((minutes_f - minutes) * 60 * 100)
    return ((degrees, 1), (minutes, 1), (seconds, 100))


def from_dms(dms: DMS) -> float:
    (d, dd), (m, md), (s, sd) = dms
    return d / dd + (m / md) / 60 + (s / sd) / 3600


def gps_lat_ref(lat: float) -> str:
    return "N" if lat >= 0 else "S"


def gps_lon_ref(lng: float) -> str:
    return "E" if lng >= 0 else "W"


def copyright_notice(identity: str, year: int) -> str:
    return f"Copyright {year} {identity}. All Rights Reserved."


def user_comment(text: str) -> bytes:
    encoding = "ascii" if text.isascii() else "unicode"
    return piexif.helper.UserComment.dump(text, encoding=encoding)


def build_directories(
    record: MetadataRecord,
    identity: str,
    location: GeoLocation,
    now: datetime | None = None,
) -> MetadataDirectories:
    now = now or datetime.now()
    tags_text = TAG_SEPARATOR.join(aggregate_tags(record, identity))
    dirs = MetadataDirectories()

    primary = dirs.primary
    primary.set_ascii(ARTIST, identity)
    primary.set_ascii(COPYRIGHT, copyright_notice(identity, now.year))
    # Viewers that ignore XPTitle fall back to ImageDescription for the title.
    primary.set_ascii(IMAGE_DESCRIPTION, record.name)
    primary.set_ascii(SOFTWARE, SOFTWARE_NAME)
    primary.set_ascii(DATE_TIME, now.strftime("%Y:%m:%d %H:%M:%S"))
    primary.set_bytes(XP_TITLE, xp_string(record.name))
    primary.set_bytes(XP_COMMENT, xp_string(record.description))
    primary.set_bytes(XP_AUTHOR, xp_string(identity))
    primary.set_bytes(XP_KEYWORDS, xp_string(tags_text))
    primary.set_bytes(XP_SUBJECT, xp_string(record.caption))

    dirs.capture.set_undefined(USER_COMMENT, user_comment(record.description))

    gps = dirs.location
    gps.set_ascii(GPS_LATITUDE_REF, gps_lat_ref(location.lat))
    gps.set_rationals(GPS_LATITUDE, to_dms(location.lat))
    gps.set_ascii(GPS_LONGITUDE_REF, gps_lon_ref(location.lng))
    gps.set_rationals(GPS_LONGITUDE, to_dms(location.lng))
    gps.set_ascii(GPS_DATE_STAMP, now.strftime("%Y:%m:%d"))
    return dirs
