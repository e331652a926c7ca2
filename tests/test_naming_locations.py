from __future__ import annotations

import random
from pathlib import Path

from seo_geotagger.core.locations import (
    ALL_LOCATIONS,
    DEFAULT_PRESET_LOCATIONS,
    pick_location,
    presets_by_label,
    search_locations,
)
from seo_geotagger.core.models import GeoLocation
from seo_geotagger.core.naming import collision_safe, output_filename, slugify


def test_slugify() -> None:
    assert slugify("  Samsung Fridge -- Acme Repairs! ") == "samsung-fridge-acme-repairs"
    assert slugify("Café Oven") == "caf-oven"
    assert slugify("!!!") == ""


def test_output_filename_uses_placeholder_for_empty_slug() -> None:
    assert output_filename("Bosch Oven") == "bosch-oven.jpeg"
    assert output_filename("???") == "seo-image.jpeg"


def test_collision_safe(tmp_path: Path) -> None:
    target = tmp_path / "oven.jpeg"
    assert collision_safe(target) == target
    target.write_bytes(b"x")
    assert collision_safe(target).name == "oven_dup1.jpeg"
    (tmp_path / "oven_dup1.jpeg").write_bytes(b"x")
    assert collision_safe(target).name == "oven_dup2.jpeg"


def test_search_locations() -> None:
    assert search_locations("r") == []
    hits = search_locations("rich")
    assert [h.label for h in hits] == ["Richmond"]
    assert len(search_locations("vic")) == 10
    assert search_locations("geelong", limit=1)[0].label == "Geelong"


def test_presets_by_label_skips_unknown() -> None:
    labels = ["Richmond", "Atlantis", "Geelong"]
    assert [p.label for p in presets_by_label(labels)] == ["Richmond", "Geelong"]
    assert len(DEFAULT_PRESET_LOCATIONS) == 10
    assert len(ALL_LOCATIONS) > len(DEFAULT_PRESET_LOCATIONS)


def test_pick_location() -> None:
    current = GeoLocation(-37.0, 145.0, "Custom")
    presets = list(DEFAULT_PRESET_LOCATIONS[:3])
    assert pick_location(current, presets, randomize=False) is current
    assert pick_location(current, [], randomize=True) is current
    rng = random.Random(7)
    picks = {pick_location(current, presets, True, rng) for _ in range(50)}
    assert picks <= set(presets)
    assert len(picks) > 1
