"""Gemini implementation of the generation, enhancement and composite services."""

from __future__ import annotations

import os
from typing import Any, Callable

import google.generativeai as genai
from pydantic import ValidationError

from seo_geotagger.core.models import MetadataRecord
from seo_geotagger.core.records import ensure_required_tags
from seo_geotagger.core.settings import API_KEY_ENV, DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL
from seo_geotagger.generation.base import Compositor, ImageEnhancer, MetadataGenerator
from seo_geotagger.generation.prompt import (
    COMPOSITE_PROMPT,
    ENHANCE_PROMPT,
    RESPONSE_SCHEMA,
    MetadataResponse,
    metadata_prompt,
)
from seo_geotagger.imaging.transform import sniff_mime_type
from seo_geotagger.util.errors import (
    ConfigurationError,
    EnhancementFailure,
    GenerationFailure,
    GenerationFailureKind,
)

LogCb = Callable[[str], None]

POLICY = GenerationFailureKind.POLICY
TRANSPORT = GenerationFailureKind.TRANSPORT
MALFORMED = GenerationFailureKind.MALFORMED_RESPONSE


def _reason_name(reason: Any) -> str:
    if reason is None:
        return "Unknown"
    return getattr(reason, "name", None) or str(reason)


class GeminiClient(MetadataGenerator, ImageEnhancer, Compositor):
    def __init__(
        self,
        api_key: str | None = None,
        text_model: str = DEFAULT_TEXT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        log: LogCb | None = None,
    ) -> None:
        """Configure the SDK.

        Args:
            api_key: Gemini API key. If None, uses the GEMINI_API_KEY env var.
            text_model: model used for metadata generation.
            image_model: model used for enhancement and compositing.
        """
        key = api_key or os.getenv(API_KEY_ENV)
        if not key:
            raise ConfigurationError(f"{API_KEY_ENV} is not set and no API key is configured.")
        genai.configure(api_key=key)
        self.text_model = text_model
        self.image_model = image_model
        self.log = log

    # --- MetadataGenerator -------------------------------------------------

    def generate(self, image_bytes: bytes, identity: str, mime_type: str = "image/jpeg") -> MetadataRecord:
        model = genai.GenerativeModel(
            self.text_model,
            generation_config={
                "response_mime_type": "application/json",
                "response_schema": RESPONSE_SCHEMA,
            },
        )
        response = self._call(
            model,
            [metadata_prompt(identity), {"mime_type": mime_type, "data": image_bytes}],
            GenerationFailure,
            "Failed to generate metadata",
        )
        candidate = self._first_candidate(
            response, GenerationFailure,
            "Content was blocked by safety filters. Try a different image or description.",
        )
        text = "".join(getattr(p, "text", "") or "" for p in _parts(candidate))
        if not text.strip():
            raise GenerationFailure(
                f"API returned an unexpected response structure. Reason: {_reason_name(candidate.finish_reason)}",
                MALFORMED,
            )
        try:
            parsed = MetadataResponse.model_validate_json(text)
        except ValidationError as e:
            raise GenerationFailure(f"Malformed metadata response: {e}", MALFORMED) from e
        return ensure_required_tags(parsed.to_record(), identity)

    # --- ImageEnhancer -----------------------------------------------------

    def enhance(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> bytes:
        model = genai.GenerativeModel(self.image_model)
        response = self._call(
            model,
            [{"mime_type": mime_type, "data": image_bytes}, ENHANCE_PROMPT],
            EnhancementFailure,
            "Failed to enhance image",
        )
        candidate = self._first_candidate(response, EnhancementFailure, "Enhancement blocked by safety filters.")
        return _image_part(candidate, "Enhanced image data not found in API response.")

    # --- Compositor --------------------------------------------------------

    def add_person(self, scene_bytes: bytes, person_bytes: bytes) -> bytes:
        model = genai.GenerativeModel(self.image_model)
        response = self._call(
            model,
            [
                COMPOSITE_PROMPT,
                {"mime_type": sniff_mime_type(scene_bytes), "data": scene_bytes},
                {"mime_type": sniff_mime_type(person_bytes), "data": person_bytes},
            ],
            EnhancementFailure,
            "Failed to add tech to image",
        )
        candidate = self._first_candidate(
            response, EnhancementFailure,
            "Synthesis blocked by safety filters. Ensure images are professional and appropriate.",
        )
        return _image_part(candidate, "Generated image data not found in API response.")

    # --- helpers -----------------------------------------------------------

    def _call(self, model: Any, contents: list[Any], failure_cls: type[GenerationFailure], prefix: str) -> Any:
        try:
            return model.generate_content(contents)
        except Exception as e:
            if self.log:
                self.log(f"{prefix}: {e}")
            raise failure_cls(f"{prefix}: {e}", TRANSPORT) from e

    @staticmethod
    def _first_candidate(response: Any, failure_cls: type[GenerationFailure], policy_message: str) -> Any:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise failure_cls(policy_message, POLICY)
        candidates = list(getattr(response, "candidates", None) or [])
        if not candidates:
            raise failure_cls("No candidates returned from API. Check your request or API quota.", MALFORMED)
        candidate = candidates[0]
        if _reason_name(getattr(candidate, "finish_reason", None)) == "SAFETY":
            raise failure_cls(policy_message, POLICY)
        return candidate


def _parts(candidate: Any) -> list[Any]:
    content = getattr(candidate, "content", None)
    return list(getattr(content, "parts", None) or [])


def _image_part(candidate: Any, missing_message: str) -> bytes:
    for part in _parts(candidate):
        blob = getattr(part, "inline_data", None)
        if blob is None:
            continue
        if (getattr(blob, "mime_type", "") or "").startswith("image/") and getattr(blob, "data", None):
            return bytes(blob.data)
    raise EnhancementFailure(
        f"{missing_message} Reason: {_reason_name(getattr(candidate, 'finish_reason', None))}",
        MALFORMED,
    )
