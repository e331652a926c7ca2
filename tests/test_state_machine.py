from __future__ import annotations

import io

import pytest
from PIL import Image

from seo_geotagger.core.models import GeoLocation, Item, ItemStatus, MetadataRecord, ProcessingOptions, StateChange
from seo_geotagger.core.state_machine import ItemStateMachine, reset_for_retry, transition
from seo_geotagger.exif.codec import read_directories
from seo_geotagger.exif.directories import ARTIST, XP_AUTHOR, decode_xp
from seo_geotagger.exif.segments import count_exif_blocks
from seo_geotagger.generation.base import ImageEnhancer, MetadataGenerator
from seo_geotagger.imaging.transform import image_dimensions, is_jpeg
from seo_geotagger.util.errors import (
    ErrorKind,
    GenerationFailure,
    GenerationFailureKind,
    InvalidTransitionError,
)

S = ItemStatus


def _jpeg(size=(40, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (90, 90, 90)).save(buf, format="JPEG")
    return buf.getvalue()


class FakeGenerator(MetadataGenerator):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    def generate(self, image_bytes, identity, mime_type="image/jpeg"):
        self.calls += 1
        if self.error:
            raise self.error
        return MetadataRecord("lg-washer-acme", "Washer repair.", "A washer", "Spin!", ("washer",))


class FakeEnhancer(ImageEnhancer):
    def __init__(self, output: bytes | None = None) -> None:
        self.output = output

    def enhance(self, image_bytes, mime_type="image/jpeg"):
        return self.output if self.output is not None else _jpeg((80, 40))


def _item(**opts) -> Item:
    return Item(
        id="a1",
        filename="washer.jpg",
        source_bytes=_jpeg(),
        options=ProcessingOptions(**opts),
        location=GeoLocation(-37.81, 144.96, "Melbourne CBD"),
    )


def _run(machine: ItemStateMachine, item: Item) -> list[StateChange]:
    changes: list[StateChange] = []
    machine.run(item, emit=changes.append)
    return changes


def test_full_pipeline_visits_every_stage() -> None:
    machine = ItemStateMachine("Acme", generator=FakeGenerator(), enhancer=FakeEnhancer())
    item = _item(target_aspect_ratio=1.0)
    changes = _run(machine, item)

    assert [c.current for c in changes] == [S.GENERATING, S.ENHANCING, S.EMBEDDING, S.READY]
    assert item.status == S.READY
    assert item.status_text == "SEO Ready"
    assert item.attempt == 1
    assert item.record.name == "lg-washer-acme"
    assert image_dimensions(item.transformed_preview) == (40, 40)
    assert count_exif_blocks(item.final_bytes) == 1


def test_disabled_stages_are_skipped() -> None:
    gen = FakeGenerator()
    machine = ItemStateMachine("Acme", generator=gen, enhancer=FakeEnhancer())
    item = _item(generate_metadata=False, enhance_image=False, embed_metadata=False)
    changes = _run(machine, item)

    assert [c.current for c in changes] == [S.READY]
    assert gen.calls == 0
    assert item.record.name == "washer"
    assert item.final_bytes == item.source_bytes
    assert count_exif_blocks(item.final_bytes) == 0


def test_fallback_record_is_embedded_when_generation_is_off() -> None:
    machine = ItemStateMachine("Acme", enhancer=FakeEnhancer())
    item = _item(generate_metadata=False, enhance_image=False)
    changes = _run(machine, item)
    assert [c.current for c in changes] == [S.EMBEDDING, S.READY]
    assert is_jpeg(item.final_bytes)
    assert count_exif_blocks(item.final_bytes) == 1


def test_policy_rejection_ends_in_error() -> None:
    gen = FakeGenerator(GenerationFailure("blocked", GenerationFailureKind.POLICY))
    machine = ItemStateMachine("Acme", generator=gen, enhancer=FakeEnhancer())
    item = _item()
    changes = _run(machine, item)

    assert [c.current for c in changes] == [S.GENERATING, S.ERROR]
    assert item.status_text == "Error"
    assert item.error_kind == ErrorKind.GENERATION_FAILURE
    assert item.error_detail == "blocked"
    assert item.final_bytes is None


def test_missing_generator_is_reported_as_error() -> None:
    machine = ItemStateMachine("Acme")
    item = _item(enhance_image=False)
    _run(machine, item)
    assert item.status == S.ERROR
    assert "generator" in item.error_detail


def test_non_image_enhancement_output_is_an_error() -> None:
    machine = ItemStateMachine("Acme", generator=FakeGenerator(), enhancer=FakeEnhancer(b"not an image"))
    item = _item()
    changes = _run(machine, item)
    assert changes[-1].current == S.ERROR
    assert changes[-2].current == S.ENHANCING
    assert item.record is not None


def test_unexpected_exception_is_caught() -> None:
    machine = ItemStateMachine("Acme", generator=FakeGenerator(RuntimeError("kaput")))
    item = _item()
    _run(machine, item)
    assert item.status == S.ERROR
    assert item.error_detail == "Unexpected error: kaput"
    assert item.error_kind is None


def test_only_pending_items_run() -> None:
    machine = ItemStateMachine("Acme", enhancer=FakeEnhancer())
    item = _item(generate_metadata=False)
    machine.run(item)
    with pytest.raises(InvalidTransitionError):
        machine.run(item)


def test_transition_table_rejects_backwards_moves() -> None:
    item = _item()
    transition(item, S.GENERATING)
    transition(item, S.EMBEDDING)
    with pytest.raises(InvalidTransitionError):
        transition(item, S.ENHANCING)
    transition(item, S.READY)
    with pytest.raises(InvalidTransitionError):
        transition(item, S.ERROR)


def test_retry_resets_outputs_and_keeps_snapshot() -> None:
    machine = ItemStateMachine("Acme", generator=FakeGenerator(RuntimeError("x")))
    item = _item()
    location, options = item.location, item.options
    machine.run(item)

    change = reset_for_retry(item)
    assert (change.previous, change.current) == (S.ERROR, S.PENDING)
    assert item.status_text == "Waiting..."
    assert item.error_detail is None and item.record is None and item.final_bytes is None
    assert item.location is location and item.options is options

    machine.generator = FakeGenerator()
    machine.enhancer = FakeEnhancer()
    machine.run(item)
    assert item.status == S.READY
    assert item.attempt == 2


def test_retry_rejected_while_active() -> None:
    item = _item()
    transition(item, S.GENERATING)
    with pytest.raises(InvalidTransitionError):
        reset_for_retry(item)


class IdentityChangingGenerator(FakeGenerator):
    """Simulates the user renaming the business while a record is generated."""

    def __init__(self, machine: ItemStateMachine) -> None:
        super().__init__()
        self.machine = machine
        self.seen: list[str] = []

    def generate(self, image_bytes, identity, mime_type="image/jpeg"):
        self.seen.append(identity)
        self.machine.identity = "Other Co"
        return super().generate(image_bytes, identity, mime_type)


def test_identity_is_fixed_for_the_whole_attempt() -> None:
    machine = ItemStateMachine("Acme", enhancer=FakeEnhancer())
    gen = IdentityChangingGenerator(machine)
    machine.generator = gen
    item = _item(enhance_image=False)
    machine.run(item)

    assert item.status == S.READY
    assert gen.seen == ["Acme"]
    dirs = read_directories(item.final_bytes)
    assert dirs.primary.get(ARTIST) == b"Acme"
    assert decode_xp(dirs.primary.get(XP_AUTHOR)) == "Acme"

    # the next attempt picks up the new name
    reset_for_retry(item)
    machine.run(item)
    assert read_directories(item.final_bytes).primary.get(ARTIST) == b"Other Co"


def test_final_bytes_only_appear_with_ready() -> None:
    machine = ItemStateMachine("Acme", generator=FakeGenerator(), enhancer=FakeEnhancer())
    item = _item()
    observed: list[tuple[ItemStatus, bool]] = []
    machine.run(item, emit=lambda change: observed.append((item.status, item.final_bytes is not None)))
    assert observed == [
        (S.GENERATING, False),
        (S.ENHANCING, False),
        (S.EMBEDDING, False),
        (S.READY, True),
    ]
