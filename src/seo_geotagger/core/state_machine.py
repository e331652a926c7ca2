"""Per-item lifecycle: pending -> generating -> enhancing -> embedding -> ready.

Stages whose option is switched off are skipped. Any stage may end the
attempt in `error`. `ready` and `error` only leave through `reset_for_retry`.
"""

from __future__ import annotations

from typing import Callable, Iterable

from seo_geotagger.core.models import (
    CompanyInfo,
    Item,
    ItemStatus,
    StateChange,
    TagCategory,
)
from seo_geotagger.core.records import fallback_record, merge_manual_metadata
from seo_geotagger.exif.codec import JpegExifCodec, MetadataCodec
from seo_geotagger.generation.base import ImageEnhancer, MetadataGenerator
from seo_geotagger.imaging.transform import (
    JPEG_QUALITY,
    cover_resize,
    image_dimensions,
    is_jpeg,
    to_jpeg,
)
from seo_geotagger.util.errors import (
    ConfigurationError,
    DecodeFailure,
    EnhancementFailure,
    GenerationFailureKind,
    InvalidTransitionError,
    SeoGeotaggerError,
)

EmitCb = Callable[[StateChange], None]
LogCb = Callable[[str], None]

S = ItemStatus

ALLOWED_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    S.PENDING: frozenset({S.GENERATING, S.ENHANCING, S.EMBEDDING, S.READY, S.ERROR}),
    S.GENERATING: frozenset({S.ENHANCING, S.EMBEDDING, S.READY, S.ERROR}),
    S.ENHANCING: frozenset({S.EMBEDDING, S.READY, S.ERROR}),
    S.EMBEDDING: frozenset({S.READY, S.ERROR}),
    S.READY: frozenset(),
    S.ERROR: frozenset(),
}

RETRYABLE = frozenset({S.PENDING, S.READY, S.ERROR})

STATUS_TEXT = {
    S.PENDING: "Waiting...",
    S.GENERATING: "AI Analyzing...",
    S.ENHANCING: "AI Enhancing...",
    S.EMBEDDING: "Geo Tagger...",
    S.READY: "SEO Ready",
    S.ERROR: "Error",
}


def transition(item: Item, target: ItemStatus, detail: str = "") -> StateChange:
    if target not in ALLOWED_TRANSITIONS[item.status]:
        raise InvalidTransitionError(f"{item.id}: {item.status.value} -> {target.value} is not allowed")
    change = StateChange(item.id, item.status, target, detail)
    item.status = target
    item.status_text = STATUS_TEXT[target]
    return change


def reset_for_retry(item: Item) -> StateChange:
    """Put an item back to pending, keeping its options and location."""
    if item.status not in RETRYABLE:
        raise InvalidTransitionError(f"{item.id}: cannot retry while {item.status.value}")
    change = StateChange(item.id, item.status, S.PENDING, "retry")
    item.status = S.PENDING
    item.status_text = STATUS_TEXT[S.PENDING]
    item.record = None
    item.transformed_preview = None
    item.final_bytes = None
    item.error_detail = None
    item.error_kind = None
    return change


def mark_ready(item: Item, final_bytes: bytes, detail: str = "") -> StateChange:
    """Deliver `final_bytes` together with the move to ready."""
    change = transition(item, S.READY, detail)
    item.final_bytes = final_bytes
    item.error_detail = None
    item.error_kind = None
    return change


def mark_failed(item: Item, detail: str, error: SeoGeotaggerError | None = None) -> StateChange:
    change = transition(item, S.ERROR, detail)
    item.final_bytes = None
    item.error_detail = detail
    item.error_kind = error.kind if error is not None else None
    return change


class ItemStateMachine:
    """Drives one item at a time through the processing stages.

    Collaborator calls block; the caller decides which thread that happens on.
    """

    def __init__(
        self,
        identity: str,
        generator: MetadataGenerator | None = None,
        enhancer: ImageEnhancer | None = None,
        codec: MetadataCodec | None = None,
        company: CompanyInfo | None = None,
        categories: Iterable[TagCategory] = (),
        quality: int = JPEG_QUALITY,
        log: LogCb | None = None,
    ) -> None:
        self.identity = identity
        self.generator = generator
        self.enhancer = enhancer
        self.codec = codec or JpegExifCodec(quality=quality, log=log)
        self.company = company or CompanyInfo()
        self.categories = tuple(categories)
        self.quality = quality
        self.log = log

    def run(self, item: Item, emit: EmitCb | None = None) -> Item:
        """Advance a pending item until it is ready or in error."""
        if item.status != S.PENDING:
            raise InvalidTransitionError(f"{item.id}: only pending items can be started (is {item.status.value})")
        item.attempt += 1
        # one identity per attempt, even if the user edits it meanwhile
        identity = self.identity
        try:
            self._run_stages(item, identity, emit)
        except SeoGeotaggerError as e:
            self._fail(item, str(e) or type(e).__name__, e, emit)
        except Exception as e:
            self._fail(item, f"Unexpected error: {e}", None, emit)
        return item

    def _step(self, item: Item, target: ItemStatus, emit: EmitCb | None, detail: str = "") -> None:
        change = transition(item, target, detail)
        if emit:
            emit(change)

    def _fail(self, item: Item, detail: str, error: SeoGeotaggerError | None, emit: EmitCb | None) -> None:
        if self.log:
            self.log(f"{item.filename}: {detail}")
        change = mark_failed(item, detail, error)
        if emit:
            emit(change)

    def _run_stages(self, item: Item, identity: str, emit: EmitCb | None) -> None:
        opts = item.options
        working = item.source_bytes

        if opts.generate_metadata:
            self._step(item, S.GENERATING, emit)
            if self.generator is None:
                raise ConfigurationError("No metadata generator configured (missing API key?)")
            record = self.generator.generate(working, identity, item.mime_type)
            if opts.use_manual_metadata:
                record = merge_manual_metadata(record, self.company, self.categories)
            item.record = record
        else:
            item.record = fallback_record(item.filename, identity)

        if opts.enhance_image:
            self._step(item, S.ENHANCING, emit)
            if self.enhancer is None:
                raise ConfigurationError("No image enhancer configured (missing API key?)")
            working = self._enhance(working, item.mime_type, opts.target_aspect_ratio)
            item.transformed_preview = working

        if opts.embed_metadata and item.record is not None:
            self._step(item, S.EMBEDDING, emit)
            final = self.codec.embed(working, item.record, identity, item.location)
        else:
            final = working if is_jpeg(working) else to_jpeg(working, self.quality)

        change = mark_ready(item, final)
        if emit:
            emit(change)

    def _enhance(self, data: bytes, mime_type: str, target_aspect_ratio: float | None) -> bytes:
        enhanced = self.enhancer.enhance(data, mime_type)
        try:
            image_dimensions(enhanced)
        except DecodeFailure as e:
            raise EnhancementFailure(
                "Enhancement returned data that is not an image.",
                GenerationFailureKind.MALFORMED_RESPONSE,
            ) from e
        if target_aspect_ratio and target_aspect_ratio > 0:
            enhanced = cover_resize(enhanced, target_aspect_ratio, self.quality)
        return enhanced
