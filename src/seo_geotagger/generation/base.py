from __future__ import annotations

from abc import ABC, abstractmethod

from seo_geotagger.core.models import MetadataRecord


class MetadataGenerator(ABC):
    """Produces descriptive text for an image.

    Implementations raise GenerationFailure (POLICY, TRANSPORT or
    MALFORMED_RESPONSE) instead of returning a partial record.
    """

    @abstractmethod
    def generate(self, image_bytes: bytes, identity: str, mime_type: str = "image/jpeg") -> MetadataRecord:
        ...


class ImageEnhancer(ABC):
    @abstractmethod
    def enhance(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> bytes:
        """Return an improved rendition of the image; raises EnhancementFailure."""


class Compositor(ABC):
    @abstractmethod
    def add_person(self, scene_bytes: bytes, person_bytes: bytes) -> bytes:
        """Place the person from the second image into the scene; raises EnhancementFailure."""
