from __future__ import annotations

import io
import random
import threading
from pathlib import Path

import pytest
from PIL import Image

from seo_geotagger.core.locations import DEFAULT_PRESET_LOCATIONS
from seo_geotagger.core.models import GeoLocation, ItemStatus, MetadataRecord, ProcessingOptions, StateChange
from seo_geotagger.core.run_logger import RunLogger
from seo_geotagger.core.scheduler import BatchScheduler
from seo_geotagger.core.state_machine import ItemStateMachine
from seo_geotagger.generation.base import MetadataGenerator
from seo_geotagger.util.errors import ErrorKind, GenerationFailure, InvalidTransitionError

S = ItemStatus
HERE = GeoLocation(-37.81, 144.96, "Melbourne CBD")


def _jpeg(size=(24, 24)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (1, 2, 3)).save(buf, format="JPEG")
    return buf.getvalue()


class RecordingGenerator(MetadataGenerator):
    """Tracks how many generate() calls overlap."""

    def __init__(self, fail_names: set[str] | None = None) -> None:
        self.fail_names = fail_names or set()
        self.active = 0
        self.max_active = 0
        self.order: list[str] = []
        self._lock = threading.Lock()

    def generate(self, image_bytes, identity, mime_type="image/jpeg"):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            name = f"img{len(self.order)}"
            self.order.append(name)
            if name in self.fail_names:
                raise GenerationFailure("service unavailable")
            return MetadataRecord(name, "desc", "alt", "cap", ("tag",))
        finally:
            with self._lock:
                self.active -= 1


OPTS = ProcessingOptions(enhance_image=False)


def _scheduler(gen: MetadataGenerator | None = None, **kw) -> BatchScheduler:
    machine = ItemStateMachine("Acme", generator=gen or RecordingGenerator())
    return BatchScheduler(machine, **kw)


def test_items_processed_in_arrival_order_one_at_a_time() -> None:
    gen = RecordingGenerator()
    sched = _scheduler(gen)
    items = sched.admit([(f"{i}.jpg", _jpeg()) for i in range(4)], OPTS, HERE)

    started: list[str] = []

    def watch(change: StateChange) -> None:
        if change.current == S.GENERATING:
            active = [i for i in sched.items if i.status.is_active]
            assert len(active) <= 1
            started.append(change.item_id)

    sched.subscribe(watch)
    sched.run_until_idle()

    assert started == [i.id for i in items]
    assert gen.max_active == 1
    assert all(i.status == S.READY for i in items)
    assert not sched.busy


def test_pump_claims_nothing_while_an_item_is_in_flight() -> None:
    sched = _scheduler()
    sched.admit([("a.jpg", _jpeg()), ("b.jpg", _jpeg())], OPTS, HERE)
    first = sched.pump()
    assert first is not None and first.filename == "a.jpg"
    assert sched.pump() is None
    assert sched.busy
    sched.advance(first)
    second = sched.pump()
    assert second is not None and second.filename == "b.jpg"


def test_advance_requires_claim() -> None:
    sched = _scheduler()
    (item,) = sched.admit([("a.jpg", _jpeg())], OPTS, HERE)
    with pytest.raises(InvalidTransitionError):
        sched.advance(item)


def test_worker_thread_advance_and_wake() -> None:
    wakes: list[int] = []
    sched = _scheduler(wake=lambda: wakes.append(1))
    sched.admit([("a.jpg", _jpeg())], OPTS, HERE)
    item = sched.pump()
    t = threading.Thread(target=sched.advance, args=(item,))
    t.start()
    t.join(timeout=10)
    assert item.status == S.READY
    assert len(wakes) >= 3  # admitted, generating, embedding, ready


def test_failure_does_not_stop_the_batch() -> None:
    gen = RecordingGenerator(fail_names={"img1"})
    sched = _scheduler(gen)
    a, b, c = sched.admit([(f"{n}.jpg", _jpeg()) for n in "abc"], OPTS, HERE)
    sched.run_until_idle()
    assert [a.status, b.status, c.status] == [S.READY, S.ERROR, S.READY]
    assert b.error_kind == ErrorKind.GENERATION_FAILURE


def test_retry_preserves_location_and_options() -> None:
    gen = RecordingGenerator(fail_names={"img0"})
    presets = list(DEFAULT_PRESET_LOCATIONS)
    sched = _scheduler(gen, rng=random.Random(3))
    randomized = ProcessingOptions(enhance_image=False, randomize_location=True)
    (item,) = sched.admit([("a.jpg", _jpeg())], randomized, HERE, presets)
    assert item.location in presets
    location = item.location

    sched.run_until_idle()
    assert item.status == S.ERROR
    assert sched.retry(item.id)
    assert item.status == S.PENDING
    sched.run_until_idle()
    assert item.status == S.READY
    assert item.location is location
    assert item.options is randomized
    assert item.attempt == 2


def test_retry_and_edit_rejected_while_claimed() -> None:
    sched = _scheduler()
    (item,) = sched.admit([("a.jpg", _jpeg())], OPTS, HERE)
    claimed = sched.pump()
    assert claimed is item
    assert not sched.retry(item.id)
    assert not sched.remove(item.id)
    with pytest.raises(InvalidTransitionError):
        sched.update_record(item.id, MetadataRecord("x", "d", "a", "c"))
    sched.advance(item)
    sched.update_record(item.id, MetadataRecord("edited", "d", "a", "c"))
    assert item.record.name == "edited"
    assert sched.remove(item.id)
    assert sched.items == []


def test_undecodable_and_undersized_images_are_admitted_as_errors() -> None:
    sched = _scheduler(min_dimensions=(20, 20))
    bad, small, ok = sched.admit(
        [("bad.jpg", b"nope"), ("small.jpg", _jpeg((10, 10))), ("ok.jpg", _jpeg())], OPTS, HERE
    )
    assert bad.status == S.ERROR and bad.error_kind == ErrorKind.DECODE_FAILURE
    assert small.status == S.ERROR and small.error_kind == ErrorKind.VALIDATION_FAILURE
    assert ok.status == S.PENDING
    sched.run_until_idle()
    assert ok.status == S.READY
    assert bad.attempt == 0


def test_admit_sniffs_mime_type() -> None:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8)).save(buf, format="PNG")
    sched = _scheduler()
    (item,) = sched.admit([("a.png", buf.getvalue())], OPTS, HERE)
    assert item.mime_type == "image/png"


def test_add_finished_registers_ready_item() -> None:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8)).save(buf, format="PNG")
    sched = _scheduler()
    seen: list[StateChange] = []
    sched.subscribe(seen.append)
    record = MetadataRecord("tech-oven", "d", "a", "c", ("oven",))
    item = sched.add_finished("composite_scene.png", buf.getvalue(), record, OPTS, HERE)
    sched.pump()
    assert item.status == S.READY
    assert item.status_text == "Synthesized"
    assert item.final_bytes[:2] == b"\xff\xd8"
    assert [c.current for c in seen] == [S.PENDING, S.READY]


def test_state_changes_are_logged(tmp_path: Path) -> None:
    logger = RunLogger(tmp_path / "log.txt")
    sched = _scheduler(logger=logger)
    sched.admit([("a.jpg", _jpeg())], OPTS, HERE)
    sched.run_until_idle()
    text = logger.path.read_text(encoding="utf-8")
    assert "a.jpg: - -> pending (admitted)" in text
    assert "a.jpg: embedding -> ready" in text


def test_unsubscribe() -> None:
    sched = _scheduler()
    seen: list[StateChange] = []
    unsubscribe = sched.subscribe(seen.append)
    unsubscribe()
    sched.admit([("a.jpg", _jpeg())], OPTS, HERE)
    sched.run_until_idle()
    assert seen == []


def test_retry_repeats_admission_checks() -> None:
    sched = _scheduler(min_dimensions=(20, 20))
    (small,) = sched.admit([("small.jpg", _jpeg((10, 10)))], OPTS, HERE)
    assert small.error_kind == ErrorKind.VALIDATION_FAILURE

    assert sched.retry(small.id)
    assert small.status == S.ERROR
    assert small.error_kind == ErrorKind.VALIDATION_FAILURE

    sched.min_dimensions = None
    assert sched.retry(small.id)
    assert small.status == S.PENDING
    sched.run_until_idle()
    assert small.status == S.READY
