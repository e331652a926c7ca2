from __future__ import annotations

from dataclasses import replace
from pathlib import PurePath
from typing import Iterable

from seo_geotagger.core.models import CompanyInfo, MetadataRecord, TagCategory

FALLBACK_SERVICE_TAG = "appliance repair"
REQUIRED_SERVICE_TAGS = ("commercial appliance repair", "domestic appliance repair")


def fallback_record(filename: str, identity: str) -> MetadataRecord:
    """Deterministic record used when generation is switched off."""
    stem = PurePath(filename).stem or filename
    return MetadataRecord(
        name=stem,
        description=f"Image of {filename}",
        alt_text=f"Image: {filename}",
        caption=f"Check out our latest work at {identity}",
        tags=(identity, FALLBACK_SERVICE_TAG),
    )


def merge_tags_casefold(*groups: Iterable[str]) -> list[str]:
    """Union of tag groups, deduplicated case-insensitively.

    The first-seen spelling of a tag is kept and order of first occurrence is
    preserved.
    """
    seen: dict[str, str] = {}
    for group in groups:
        for tag in group:
            tag = str(tag).strip()
            if not tag:
                continue
            key = tag.casefold()
            if key not in seen:
                seen[key] = tag
    return list(seen.values())


def aggregate_tags(record: MetadataRecord, identity: str) -> list[str]:
    return merge_tags_casefold(record.tags, [identity])


def ensure_required_tags(record: MetadataRecord, identity: str) -> MetadataRecord:
    tags = merge_tags_casefold(record.tags, [identity], REQUIRED_SERVICE_TAGS)
    return replace(record, tags=tuple(tags))


def merge_manual_metadata(
    record: MetadataRecord,
    company: CompanyInfo,
    categories: Iterable[TagCategory],
) -> MetadataRecord:
    """Fold operator-maintained tags and NAP details into a generated record."""
    custom: list[str] = []
    for cat in categories:
        custom.extend(cat.tags)
    nap = [v for v in (company.phone, company.address) if v]
    return replace(
        record,
        tags=tuple(record.tags) + tuple(custom) + tuple(nap),
        website=company.website or record.website,
    )


def parse_tag_text(text: str) -> tuple[str, ...]:
    """Split a comma separated tag field as typed by the operator."""
    return tuple(t.strip() for t in text.split(",") if t.strip())
