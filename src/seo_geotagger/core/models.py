from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from seo_geotagger.util.errors import ErrorKind, ValidationFailure


class ItemStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    ENHANCING = "enhancing"
    EMBEDDING = "embedding"
    READY = "ready"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({ItemStatus.GENERATING, ItemStatus.ENHANCING, ItemStatus.EMBEDDING})


def _ordered_unique(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        v = str(v).strip()
        if not v or v in seen:
            continue
        seen.add(v)
        out.append(v)
    return tuple(out)


@dataclass(frozen=True)
class MetadataRecord:
    """Descriptive text attached to one image.

    `tags` behaves as an ordered set: duplicates and blanks are dropped on
    construction, first occurrence wins.
    """
    name: str
    description: str
    alt_text: str
    caption: str
    tags: tuple[str, ...] = ()
    website: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _ordered_unique(self.tags))


@dataclass(frozen=True)
class GeoLocation:
    lat: float
    lng: float
    label: str = ""
    address: str = ""

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValidationFailure(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValidationFailure(f"Longitude out of range: {self.lng}")


@dataclass(frozen=True)
class ProcessingOptions:
    generate_metadata: bool = True
    enhance_image: bool = True
    embed_metadata: bool = True
    randomize_location: bool = False
    use_manual_metadata: bool = False
    target_aspect_ratio: float | None = None


@dataclass(frozen=True)
class CompanyInfo:
    name: str = ""
    website: str = ""
    phone: str = ""
    address: str = ""


@dataclass(frozen=True)
class TagCategory:
    category: str
    tags: tuple[str, ...] = ()


@dataclass
class Item:
    """One image moving through the processing pipeline.

    - source_bytes: the admitted file, never modified
    - transformed_preview: enhanced (and cover-fit) bytes, if enhancement ran
    - final_bytes: delivered JPEG; set only while status is READY
    """
    id: str
    filename: str
    source_bytes: bytes
    options: ProcessingOptions
    location: GeoLocation
    status: ItemStatus = ItemStatus.PENDING
    status_text: str = "Waiting..."
    record: MetadataRecord | None = None
    transformed_preview: bytes | None = None
    final_bytes: bytes | None = None
    error_detail: str | None = None
    error_kind: ErrorKind | None = None
    attempt: int = 0
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class StateChange:
    item_id: str
    previous: ItemStatus | None
    current: ItemStatus
    detail: str = ""
