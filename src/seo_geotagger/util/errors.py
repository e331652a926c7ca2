from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    DECODE_FAILURE = "decode_failure"
    ENCODE_FAILURE = "encode_failure"
    GENERATION_FAILURE = "generation_failure"
    EMBEDDING_FAILURE = "embedding_failure"
    VALIDATION_FAILURE = "validation_failure"


class GenerationFailureKind(str, Enum):
    POLICY = "policy"
    TRANSPORT = "transport"
    MALFORMED_RESPONSE = "malformed_response"


class SeoGeotaggerError(Exception):
    """Base exception for the application."""

    kind: ErrorKind | None = None


class DecodeFailure(SeoGeotaggerError):
    """Raised when bytes cannot be decoded as a raster image."""

    kind = ErrorKind.DECODE_FAILURE


class EncodeFailure(SeoGeotaggerError):
    """Raised when a raster surface cannot be encoded to the output format."""

    kind = ErrorKind.ENCODE_FAILURE


class GenerationFailure(SeoGeotaggerError):
    """Raised when the metadata generation service fails."""

    kind = ErrorKind.GENERATION_FAILURE

    def __init__(self, reason: str, failure: GenerationFailureKind = GenerationFailureKind.TRANSPORT) -> None:
        super().__init__(reason)
        self.reason = reason
        self.failure = failure

    @property
    def is_policy_rejection(self) -> bool:
        return self.failure == GenerationFailureKind.POLICY


class EnhancementFailure(GenerationFailure):
    """Raised when the image enhancement (or compositing) service fails."""


class EmbeddingFailure(SeoGeotaggerError):
    """Raised when a metadata block cannot be built or spliced.

    Never surfaced to an item: the codec recovers by delivering the image
    without metadata.
    """

    kind = ErrorKind.EMBEDDING_FAILURE


class ValidationFailure(SeoGeotaggerError):
    """Raised when an input fails a dimension or coordinate check."""

    kind = ErrorKind.VALIDATION_FAILURE


class InvalidTransitionError(SeoGeotaggerError):
    """Raised when an item is moved to a state its current state does not allow."""


class ConfigurationError(SeoGeotaggerError):
    """Raised when a collaborator is missing required configuration (API key)."""
