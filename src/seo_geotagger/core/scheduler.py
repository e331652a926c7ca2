"""Single-flight batch scheduler.

Items are admitted in arrival order and at most one of them is advanced at a
time. State changes are posted to a queue; `pump()` drains it, notifies
listeners and, when nothing is active, claims the earliest pending item. The
claimed item is then handed to `advance()`, which may run on a worker thread.

Synchronous use:

    scheduler.admit(sources, options, location, presets)
    scheduler.run_until_idle()
"""

from __future__ import annotations

import queue
import random
import threading
import uuid
from typing import Callable, Iterable, Sequence

from seo_geotagger.core.locations import pick_location
from seo_geotagger.core.models import (
    GeoLocation,
    Item,
    ItemStatus,
    MetadataRecord,
    ProcessingOptions,
    StateChange,
)
from seo_geotagger.core.run_logger import RunLogger
from seo_geotagger.core.state_machine import ItemStateMachine, mark_failed, mark_ready, reset_for_retry
from seo_geotagger.imaging.transform import is_jpeg, sniff_mime_type, to_jpeg, validate_dimensions
from seo_geotagger.util.errors import DecodeFailure, InvalidTransitionError, ValidationFailure

Listener = Callable[[StateChange], None]


class BatchScheduler:
    def __init__(
        self,
        machine: ItemStateMachine,
        logger: RunLogger | None = None,
        min_dimensions: tuple[int, int] | None = None,
        rng: random.Random | None = None,
        wake: Callable[[], None] | None = None,
    ) -> None:
        self.machine = machine
        self.wake = wake
        self.logger = logger
        self.min_dimensions = min_dimensions
        self.rng = rng or random.Random()
        self._items: list[Item] = []
        self._by_id: dict[str, Item] = {}
        self._events: "queue.Queue[StateChange]" = queue.Queue()
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self._in_flight: str | None = None

    # --- queries -----------------------------------------------------------

    @property
    def items(self) -> list[Item]:
        return list(self._items)

    def item(self, item_id: str) -> Item:
        return self._by_id[item_id]

    def items_with_status(self, *statuses: ItemStatus) -> list[Item]:
        return [i for i in self._items if i.status in statuses]

    @property
    def busy(self) -> bool:
        return self._in_flight is not None or any(i.status.is_active for i in self._items)

    # --- mutations ---------------------------------------------------------

    def admit(
        self,
        sources: Iterable[tuple[str, bytes]],
        options: ProcessingOptions,
        current_location: GeoLocation,
        presets: Sequence[GeoLocation] = (),
    ) -> list[Item]:
        """Create one pending item per (filename, bytes) pair.

        Options and location are snapshotted per item. Images that cannot be
        decoded, or fail the optional minimum-dimension check, are admitted
        straight into error.
        """
        admitted: list[Item] = []
        for filename, data in sources:
            location = pick_location(current_location, presets, options.randomize_location, self.rng)
            item = Item(
                id=uuid.uuid4().hex,
                filename=filename,
                source_bytes=bytes(data),
                options=options,
                location=location,
            )
            with self._lock:
                self._items.append(item)
                self._by_id[item.id] = item
            self.post(StateChange(item.id, None, ItemStatus.PENDING, "admitted"))
            self._check_source(item)
            admitted.append(item)
        return admitted

    def _check_source(self, item: Item) -> None:
        """Decode and size checks; failures move the pending item to error."""
        try:
            item.mime_type = sniff_mime_type(item.source_bytes)
            if self.min_dimensions is not None:
                validate_dimensions(item.source_bytes, *self.min_dimensions)
        except (DecodeFailure, ValidationFailure) as e:
            self.post(mark_failed(item, str(e), e))

    def add_finished(
        self,
        filename: str,
        image_bytes: bytes,
        record: MetadataRecord,
        options: ProcessingOptions,
        location: GeoLocation,
        status_text: str = "Synthesized",
    ) -> Item:
        """Register an image produced outside the pipeline (technician composite) as ready."""
        final = image_bytes if is_jpeg(image_bytes) else to_jpeg(image_bytes, self.machine.quality)
        item = Item(
            id=uuid.uuid4().hex,
            filename=filename,
            source_bytes=bytes(image_bytes),
            options=options,
            location=location,
            record=record,
            transformed_preview=bytes(image_bytes),
        )
        with self._lock:
            self._items.append(item)
            self._by_id[item.id] = item
        self.post(StateChange(item.id, None, ItemStatus.PENDING, "admitted"))
        item.attempt = 1
        self.post(mark_ready(item, final, status_text))
        item.status_text = status_text
        return item

    def retry(self, item_id: str) -> bool:
        """Reset an item to pending. Returns False while it is being processed."""
        item = self._by_id.get(item_id)
        if item is None or item.id == self._in_flight or item.status.is_active:
            return False
        try:
            change = reset_for_retry(item)
        except InvalidTransitionError:
            return False
        self.post(change)
        # the minimum size may have changed since admission
        self._check_source(item)
        return True

    def update_record(self, item_id: str, record: MetadataRecord) -> None:
        """Replace an item's record (user edit). Rejected while it is processed."""
        item = self._by_id[item_id]
        if item.id == self._in_flight or item.status.is_active:
            raise InvalidTransitionError(f"{item_id}: record is locked while {item.status.value}")
        item.record = record

    def remove(self, item_id: str) -> bool:
        with self._lock:
            item = self._by_id.get(item_id)
            if item is None or item.id == self._in_flight or item.status.is_active:
                return False
            self._items.remove(item)
            del self._by_id[item_id]
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- event loop --------------------------------------------------------

    def post(self, change: StateChange) -> None:
        """Thread safe: may be called from the worker advancing an item."""
        self._events.put(change)
        if self.wake:
            self.wake()

    def pump(self) -> Item | None:
        """Deliver queued changes, then claim the next item if the slot is free."""
        self._drain()
        with self._lock:
            if self._in_flight is not None:
                return None
            if any(i.status.is_active for i in self._items):
                return None
            nxt = next((i for i in self._items if i.status == ItemStatus.PENDING), None)
            if nxt is None:
                return None
            self._in_flight = nxt.id
            return nxt

    def advance(self, item: Item) -> Item:
        """Run a claimed item to ready/error. Blocks for the whole attempt."""
        if item.id != self._in_flight:
            raise InvalidTransitionError(f"{item.id}: item was not claimed by pump()")
        try:
            return self.machine.run(item, emit=self.post)
        finally:
            with self._lock:
                self._in_flight = None

    def run_until_idle(self) -> None:
        while True:
            item = self.pump()
            if item is None:
                self._drain()
                return
            self.advance(item)

    def _drain(self) -> None:
        while True:
            try:
                change = self._events.get_nowait()
            except queue.Empty:
                return
            self._log_change(change)
            for listener in list(self._listeners):
                listener(change)

    def _log_change(self, change: StateChange) -> None:
        if not self.logger:
            return
        item = self._by_id.get(change.item_id)
        name = item.filename if item else change.item_id
        prev = change.previous.value if change.previous else "-"
        msg = f"{name}: {prev} -> {change.current.value}"
        if change.detail:
            msg += f" ({change.detail})"
        self.logger.log(msg)
