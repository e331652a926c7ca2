from __future__ import annotations

import random
from typing import Iterable, Sequence

from seo_geotagger.core.models import GeoLocation

ALL_LOCATIONS: tuple[GeoLocation, ...] = (
    # Melbourne CBD & inner suburbs
    GeoLocation(-37.814000, 144.963320, "Melbourne CBD", "Melbourne, VIC"),
    GeoLocation(-37.8220, 144.9930, "Richmond", "Richmond, VIC"),
    GeoLocation(-37.9000, 144.6400, "Werribee", "Werribee, VIC"),
    GeoLocation(-37.7430, 145.0000, "Preston", "Preston, VIC"),
    GeoLocation(-37.9820, 145.2230, "Dandenong", "Dandenong, VIC"),
    GeoLocation(-37.8010, 144.9020, "Footscray", "Footscray, VIC"),
    GeoLocation(-37.8190, 145.1220, "Box Hill", "Box Hill, VIC"),
    GeoLocation(-38.1430, 145.1270, "Frankston", "Frankston, VIC"),
    GeoLocation(-37.8640, 144.9820, "St Kilda", "St Kilda, VIC"),
    GeoLocation(-37.7670, 144.9590, "Brunswick", "Brunswick, VIC"),
    GeoLocation(-37.8251, 144.9634, "Southbank", "Southbank, VIC"),
    GeoLocation(-37.8028, 144.9678, "Carlton", "Carlton, VIC"),
    GeoLocation(-37.7989, 144.9789, "Fitzroy", "Fitzroy, VIC"),
    GeoLocation(-37.8054, 144.9896, "Collingwood", "Collingwood, VIC"),
    GeoLocation(-37.8396, 144.9896, "South Yarra", "South Yarra, VIC"),
    GeoLocation(-37.8505, 145.0010, "Prahran", "Prahran, VIC"),
    GeoLocation(-37.8394, 145.0181, "Toorak", "Toorak, VIC"),
    GeoLocation(-37.9089, 145.0008, "Brighton", "Brighton, VIC"),
    GeoLocation(-37.8637, 144.9003, "Williamstown", "Williamstown, VIC"),
    GeoLocation(-37.8451, 144.8917, "Newport", "Newport, VIC"),
    # Eastern
    GeoLocation(-37.8797, 145.1636, "Glen Waverley", "Glen Waverley, VIC"),
    GeoLocation(-37.8145, 145.2270, "Ringwood", "Ringwood, VIC"),
    GeoLocation(-37.8166, 145.1492, "Blackburn", "Blackburn, VIC"),
    GeoLocation(-37.7810, 145.1246, "Doncaster", "Doncaster, VIC"),
    GeoLocation(-37.8263, 145.0583, "Camberwell", "Camberwell, VIC"),
    GeoLocation(-37.8220, 145.0321, "Hawthorn", "Hawthorn, VIC"),
    # Western
    GeoLocation(-37.7836, 144.8347, "Sunshine", "Sunshine, VIC"),
    GeoLocation(-37.8692, 144.8286, "Altona", "Altona, VIC"),
    GeoLocation(-37.9152, 144.7500, "Point Cook", "Point Cook, VIC"),
    GeoLocation(-37.8791, 144.7019, "Hoppers Crossing", "Hoppers Crossing, VIC"),
    # Northern
    GeoLocation(-37.5978, 144.9463, "Craigieburn", "Craigieburn, VIC"),
    GeoLocation(-37.6502, 145.0235, "Epping", "Epping, VIC"),
    GeoLocation(-37.6835, 145.0136, "Thomastown", "Thomastown, VIC"),
    GeoLocation(-37.7178, 145.0085, "Reservoir", "Reservoir, VIC"),
    GeoLocation(-37.7433, 144.9642, "Coburg", "Coburg, VIC"),
    # Southern
    GeoLocation(-37.9653, 145.0539, "Cheltenham", "Cheltenham, VIC"),
    GeoLocation(-37.9360, 145.0363, "Moorabbin", "Moorabbin, VIC"),
    GeoLocation(-37.9190, 145.0362, "Bentleigh", "Bentleigh, VIC"),
    GeoLocation(-38.0024, 145.0896, "Mordialloc", "Mordialloc, VIC"),
    # Bayside & peninsula
    GeoLocation(-38.2184, 145.0386, "Mornington", "Mornington, VIC"),
    GeoLocation(-38.1889, 145.0920, "Mount Eliza", "Mount Eliza, VIC"),
    GeoLocation(-38.3598, 144.9034, "Rosebud", "Rosebud, VIC"),
    GeoLocation(-38.3421, 144.7448, "Sorrento", "Sorrento, VIC"),
    # Geelong region
    GeoLocation(-38.1499, 144.3617, "Geelong", "Geelong, VIC"),
    GeoLocation(-38.1399, 144.3467, "Geelong West", "Geelong West, VIC"),
    GeoLocation(-38.1767, 144.3417, "Belmont", "Belmont, VIC"),
    GeoLocation(-38.2667, 144.5167, "Ocean Grove", "Ocean Grove, VIC"),
)

DEFAULT_PRESET_LOCATIONS: tuple[GeoLocation, ...] = ALL_LOCATIONS[:10]


def search_locations(query: str, pool: Iterable[GeoLocation] = ALL_LOCATIONS, limit: int = 10) -> list[GeoLocation]:
    q = query.strip().lower()
    if len(q) < 2:
        return []
    hits = [loc for loc in pool if q in loc.label.lower() or q in loc.address.lower()]
    return hits[:limit]


def presets_by_label(labels: Iterable[str], pool: Iterable[GeoLocation] = ALL_LOCATIONS) -> list[GeoLocation]:
    by_label = {loc.label: loc for loc in pool}
    return [by_label[name] for name in labels if name in by_label]


def pick_location(
    current: GeoLocation,
    presets: Sequence[GeoLocation],
    randomize: bool,
    rng: random.Random | None = None,
) -> GeoLocation:
    """Location bound to a newly admitted item.

    Random picks are uniform over the preset pool; an empty pool falls back
    to the current location.
    """
    if not randomize or not presets:
        return current
    return (rng or random).choice(list(presets))
