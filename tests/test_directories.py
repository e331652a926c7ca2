from __future__ import annotations

from datetime import datetime
import random

import pytest

from seo_geotagger.core.models import GeoLocation, MetadataRecord
from seo_geotagger.core.records import aggregate_tags
from seo_geotagger.exif.directories import (
    ARTIST,
    COPYRIGHT,
    GPS_DATE_STAMP,
    GPS_LATITUDE,
    GPS_LATITUDE_REF,
    GPS_LONGITUDE_REF,
    SOFTWARE,
    SOFTWARE_NAME,
    USER_COMMENT,
    XP_KEYWORDS,
    XP_TITLE,
    TagType,
    build_directories,
    decode_xp,
    from_dms,
    gps_lat_ref,
    gps_lon_ref,
    to_dms,
    xp_string,
)


def _record(**kw) -> MetadataRecord:
    base = dict(
        name="samsung-fridge-acme-repairs",
        description="Fridge repair in Melbourne.",
        alt_text="A silver fridge",
        caption="Cold again!",
        tags=("fridge",),
    )
    base.update(kw)
    return MetadataRecord(**base)


def _arcsec_error(value: float) -> float:
    return abs(from_dms(to_dms(value)) - abs(value)) * 3600


def test_dms_round_trip_within_hundredth_arcsecond() -> None:
    rng = random.Random(1234)
    values = [rng.uniform(-180.0, 180.0) for _ in range(20000)]
    values += [-180.0, -90.0, 0.0, 90.0, 180.0, -37.8136, 144.9631]
    worst = max(_arcsec_error(v) for v in values)
    assert worst <= 0.01


@pytest.mark.parametrize("value", [10.999999, -10.999999, 37.9999999, 179.99999999])
def test_dms_seconds_rounding_up_to_a_full_minute(value: float) -> None:
    (_, _), (m, _), (s, sd) = to_dms(value)
    assert _arcsec_error(value) <= 0.01
    assert 0 <= m <= 60 and 0 <= s <= 60 * sd


def test_hemisphere_refs() -> None:
    assert gps_lat_ref(-37.81) == "S"
    assert gps_lon_ref(144.96) == "E"
    assert gps_lat_ref(0.0) == "N"
    assert gps_lon_ref(-0.1) == "W"


def test_xp_string_is_utf16_with_terminator() -> None:
    raw = xp_string("Hi")
    assert raw == b"H\x00i\x00\x00\x00"
    assert decode_xp(raw) == "Hi"
    assert decode_xp(xp_string("Café ☕")) == "Café ☕"


def test_aggregate_tags_appends_identity_once() -> None:
    assert aggregate_tags(_record(), "Acme Repairs") == ["fridge", "Acme Repairs"]
    assert aggregate_tags(_record(tags=("ACME repairs", "fridge")), "Acme Repairs") == ["ACME repairs", "fridge"]


def test_build_directories_fields() -> None:
    now = datetime(2024, 5, 6, 7, 8, 9)
    dirs = build_directories(_record(), "Acme Repairs", GeoLocation(-37.81, 144.96), now)

    assert dirs.primary.get(ARTIST) == b"Acme Repairs"
    assert dirs.primary.get(COPYRIGHT) == b"Copyright 2024 Acme Repairs. All Rights Reserved."
    assert dirs.primary.get(SOFTWARE) == SOFTWARE_NAME.encode()
    assert decode_xp(dirs.primary.get(XP_TITLE)) == "samsung-fridge-acme-repairs"
    assert decode_xp(dirs.primary.get(XP_KEYWORDS)) == "fridge; Acme Repairs"
    assert dirs.primary.entries[XP_TITLE].type == TagType.BYTE

    assert USER_COMMENT in dirs.capture
    assert dirs.capture.get(USER_COMMENT).startswith(b"ASCII\x00\x00\x00")

    gps = dirs.location
    assert gps.get(GPS_LATITUDE_REF) == b"S"
    assert gps.get(GPS_LONGITUDE_REF) == b"E"
    assert gps.get(GPS_DATE_STAMP) == b"2024:05:06"
    assert abs(from_dms(gps.get(GPS_LATITUDE)) - 37.81) < 1e-5


def test_user_comment_uses_unicode_for_non_ascii() -> None:
    dirs = build_directories(_record(description="Réparation"), "Acme", GeoLocation(0, 0))
    assert dirs.capture.get(USER_COMMENT).startswith(b"UNICODE\x00")
