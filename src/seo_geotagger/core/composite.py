from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from seo_geotagger.core.models import MetadataRecord
from seo_geotagger.generation.base import Compositor, MetadataGenerator
from seo_geotagger.imaging.transform import JPEG_QUALITY, sniff_mime_type, upscale_to_height
from seo_geotagger.util.errors import DecodeFailure, EnhancementFailure, GenerationFailureKind

LogCb = Callable[[str], None]


@dataclass
class CompositeResult:
    image_bytes: bytes
    record: MetadataRecord


def compose_technician(
    scene: bytes,
    technician: bytes,
    compositor: Compositor,
    generator: MetadataGenerator,
    identity: str,
    target_height: int = 1024,
    quality: int = JPEG_QUALITY,
    log: LogCb | None = None,
) -> CompositeResult:
    """Place a technician photo into a job-site scene and describe the result.

    The technician photo is upscaled first so small headshots still give the
    image model enough detail to work with.
    """
    person = upscale_to_height(technician, target_height, quality)
    if log:
        log(f"Technician image prepared ({len(person)} bytes), compositing...")
    combined = compositor.add_person(scene, person)
    try:
        mime_type = sniff_mime_type(combined)
    except DecodeFailure as e:
        raise EnhancementFailure(
            "Compositing returned data that is not an image.",
            GenerationFailureKind.MALFORMED_RESPONSE,
        ) from e
    record = generator.generate(combined, identity, mime_type)
    if log:
        log(f"Composite described as '{record.name}'.")
    return CompositeResult(image_bytes=combined, record=record)
