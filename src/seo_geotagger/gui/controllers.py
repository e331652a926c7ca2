from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QObject, Qt, Signal, Slot

from seo_geotagger.core.composite import CompositeResult
from seo_geotagger.core.export import ExportResult, export_items
from seo_geotagger.core.locations import DEFAULT_PRESET_LOCATIONS, pick_location, presets_by_label
from seo_geotagger.core.models import (
    GeoLocation,
    Item,
    ItemStatus,
    MetadataRecord,
    ProcessingOptions,
    StateChange,
)
from seo_geotagger.core.run_logger import RunLogger
from seo_geotagger.core.scheduler import BatchScheduler
from seo_geotagger.core.settings import AppSettings, config_dir
from seo_geotagger.core.state_machine import ItemStateMachine
from seo_geotagger.exif.codec import JpegExifCodec
from seo_geotagger.generation.base import Compositor, ImageEnhancer, MetadataGenerator
from seo_geotagger.generation.gemini import GeminiClient
from seo_geotagger.gui.workers import CompositeWorker, ItemWorker
from seo_geotagger.util.errors import ConfigurationError
from seo_geotagger.util.platform import reveal_path


def build_gemini_client(settings: AppSettings, logger: RunLogger):
    """GeminiClient for the configured key, or None when no key is available."""
    try:
        return GeminiClient(
            api_key=settings.resolved_api_key() or None,
            text_model=settings.text_model,
            image_model=settings.image_model,
            log=logger.log,
        )
    except ConfigurationError as e:
        logger.log(str(e))
        return None


class BatchController(QObject):
    items_changed = Signal()
    item_updated = Signal(str)
    busy_changed = Signal(bool)
    composite_finished = Signal(object)  # Item
    composite_failed = Signal(str)
    _wake = Signal()

    def __init__(
        self,
        settings: AppSettings,
        generator: MetadataGenerator | None = None,
        enhancer: ImageEnhancer | None = None,
        compositor: Compositor | None = None,
        log_path: Path | None = None,
        use_gemini: bool = True,
    ) -> None:
        super().__init__()
        self.settings = settings
        self.logger = RunLogger(log_path or config_dir() / "session_log.txt")

        if use_gemini and (generator is None or enhancer is None or compositor is None):
            client = build_gemini_client(settings, self.logger)
            generator = generator or client
            enhancer = enhancer or client
            compositor = compositor or client
        self.generator = generator
        self.compositor = compositor

        self.codec = JpegExifCodec(quality=settings.jpeg_quality, log=self.logger.log)
        self.machine = ItemStateMachine(
            identity=settings.identity,
            generator=generator,
            enhancer=enhancer,
            codec=self.codec,
            company=settings.company(),
            categories=settings.categories(),
            quality=settings.jpeg_quality,
            log=self.logger.log,
        )
        self.scheduler = BatchScheduler(
            self.machine,
            logger=self.logger,
            min_dimensions=settings.min_dimensions(),
            wake=self._wake.emit,
        )
        self.scheduler.subscribe(self._on_state_change)
        self._wake.connect(self._pump, Qt.QueuedConnection)

        self.presets: list[GeoLocation] = presets_by_label(settings.preset_locations) or list(DEFAULT_PRESET_LOCATIONS)
        self.current_location: GeoLocation = self.presets[0]
        self.options: ProcessingOptions = settings.processing_options()
        self._workers: dict[str, ItemWorker] = {}
        self._composite_worker: CompositeWorker | None = None
        self.last_export: ExportResult | None = None

    # --- state -------------------------------------------------------------

    @property
    def items(self) -> list[Item]:
        return self.scheduler.items

    @property
    def identity(self) -> str:
        return self.machine.identity

    def set_identity(self, name: str) -> None:
        self.machine.identity = name.strip()
        self.settings.identity = self.machine.identity
        self.machine.company = self.settings.company()

    def apply_settings(self, rebuild_client: bool = True) -> None:
        """Push edited settings into the running session. Admitted items keep their snapshots."""
        s = self.settings
        self.machine.identity = s.identity
        self.machine.company = s.company()
        self.machine.categories = tuple(s.categories())
        self.machine.quality = s.jpeg_quality
        self.codec.quality = s.jpeg_quality
        self.scheduler.min_dimensions = s.min_dimensions()
        self.options = s.processing_options()
        self.presets = presets_by_label(s.preset_locations) or list(DEFAULT_PRESET_LOCATIONS)
        if rebuild_client:
            client = build_gemini_client(s, self.logger)
            self.generator = self.machine.generator = client
            self.machine.enhancer = client
            self.compositor = client

    def set_options(self, options: ProcessingOptions) -> None:
        self.options = options

    def set_location(self, location: GeoLocation) -> None:
        self.current_location = location

    # --- item actions ------------------------------------------------------

    def add_paths(self, paths: list[Path]) -> list[Item]:
        sources: list[tuple[str, bytes]] = []
        for p in paths:
            try:
                sources.append((p.name, p.read_bytes()))
            except OSError as e:
                self.logger.log(f"Could not read {p}: {e}")
        items = self.scheduler.admit(sources, self.options, self.current_location, self.presets)
        self.items_changed.emit()
        self._pump()
        return items

    def retry(self, item_id: str) -> bool:
        ok = self.scheduler.retry(item_id)
        if ok:
            self._pump()
        return ok

    def retry_failed(self) -> int:
        count = sum(1 for item in self.scheduler.items_with_status(ItemStatus.ERROR) if self.scheduler.retry(item.id))
        self._pump()
        return count

    def remove(self, item_id: str) -> bool:
        ok = self.scheduler.remove(item_id)
        if ok:
            self.items_changed.emit()
        return ok

    def update_record(self, item_id: str, record: MetadataRecord) -> None:
        self.scheduler.update_record(item_id, record)
        self.item_updated.emit(item_id)

    def export(self, output_root: Path) -> ExportResult:
        out_dir = AppSettings.new_export_folder(output_root)
        self.settings.last_export_dir = str(output_root)
        result = export_items(
            self.scheduler.items,
            out_dir,
            self.identity,
            codec=self.codec,
            settings_snapshot={
                "jpeg_quality": self.settings.jpeg_quality,
                "text_model": self.settings.text_model,
                "image_model": self.settings.image_model,
            },
        )
        self.logger.log(f"Exported {len(result.written)} image(s) to {out_dir}")
        self.last_export = result
        return result

    def open_last_export(self) -> None:
        if self.last_export:
            reveal_path(self.last_export.out_dir)

    # --- technician composite ----------------------------------------------

    def start_composite(self, scene_path: Path, technician_path: Path) -> bool:
        if self._composite_worker is not None:
            return False
        if self.compositor is None or self.generator is None:
            self.composite_failed.emit("Image generation is not configured (missing API key?).")
            return False
        worker = CompositeWorker(
            scene_path.read_bytes(),
            technician_path.read_bytes(),
            self.compositor,
            self.generator,
            self.identity,
            target_height=self.settings.tech_target_height,
            quality=self.settings.jpeg_quality,
        )
        self._composite_worker = worker
        worker.result_ready.connect(self._on_composite_ready)
        worker.failed.connect(self._on_composite_failed)
        self.busy_changed.emit(True)
        worker.start()
        return True

    @Slot(object)
    def _on_composite_ready(self, result: CompositeResult) -> None:
        self._release_composite_worker()
        location = pick_location(
            self.current_location, self.presets, self.options.randomize_location, self.scheduler.rng
        )
        item = self.scheduler.add_finished(
            "composite_scene.png",
            result.image_bytes,
            result.record,
            self.options,
            location,
        )
        self.items_changed.emit()
        self.composite_finished.emit(item)
        self._pump()

    @Slot(str)
    def _on_composite_failed(self, err: str) -> None:
        self._release_composite_worker()
        self.logger.log(f"Technician composite failed: {err}")
        self.composite_failed.emit(err)
        self._pump()

    def _release_composite_worker(self) -> None:
        worker, self._composite_worker = self._composite_worker, None
        if worker:
            worker.wait()

    # --- scheduling --------------------------------------------------------

    def _on_state_change(self, change: StateChange) -> None:
        if change.previous is None:
            return
        self.item_updated.emit(change.item_id)

    @Slot()
    def _pump(self) -> None:
        item = self.scheduler.pump()
        if item is not None:
            self._start_worker(item)
        self.busy_changed.emit(self.scheduler.busy or self._composite_worker is not None)

    def _start_worker(self, item: Item) -> None:
        worker = ItemWorker(self.scheduler, item)
        self._workers[item.id] = worker
        worker.item_done.connect(self._on_worker_done)
        worker.failed.connect(self._on_worker_failed)
        worker.start()

    @Slot(str)
    def _on_worker_done(self, item_id: str) -> None:
        worker = self._workers.pop(item_id, None)
        if worker:
            worker.wait()
        self._pump()

    @Slot(str, str)
    def _on_worker_failed(self, item_id: str, err: str) -> None:
        self.logger.log(f"Worker for {item_id} stopped: {err}")
        self._on_worker_done(item_id)
