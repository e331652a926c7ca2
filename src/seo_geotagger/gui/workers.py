from __future__ import annotations

from PySide6.QtCore import QThread, Signal

from seo_geotagger.core.composite import compose_technician
from seo_geotagger.core.models import Item
from seo_geotagger.core.scheduler import BatchScheduler
from seo_geotagger.generation.base import Compositor, MetadataGenerator


class ItemWorker(QThread):
    """Advances one claimed item; the scheduler keeps every other item waiting."""
    item_done = Signal(str)  # item id
    failed = Signal(str, str)  # item id, message

    def __init__(self, scheduler: BatchScheduler, item: Item) -> None:
        super().__init__()
        self.scheduler = scheduler
        self.item = item

    def run(self) -> None:
        try:
            self.scheduler.advance(self.item)
            self.item_done.emit(self.item.id)
        except Exception as e:
            self.failed.emit(self.item.id, str(e))


class CompositeWorker(QThread):
    result_ready = Signal(object)  # CompositeResult
    failed = Signal(str)

    def __init__(
        self,
        scene: bytes,
        technician: bytes,
        compositor: Compositor,
        generator: MetadataGenerator,
        identity: str,
        target_height: int,
        quality: int,
    ) -> None:
        super().__init__()
        self.scene = scene
        self.technician = technician
        self.compositor = compositor
        self.generator = generator
        self.identity = identity
        self.target_height = target_height
        self.quality = quality

    def run(self) -> None:
        try:
            result = compose_technician(
                self.scene,
                self.technician,
                self.compositor,
                self.generator,
                self.identity,
                target_height=self.target_height,
                quality=self.quality,
            )
            self.result_ready.emit(result)
        except Exception as e:
            self.failed.emit(str(e))
