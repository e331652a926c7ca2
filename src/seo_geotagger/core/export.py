"""Write ready items to a folder, re-embedding metadata on the way out.

Records can be edited after an item became ready, so the delivered file is
always rebuilt from the item's current record rather than copied from
`final_bytes`. Embedding is idempotent, so rebuilding is safe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable
import uuid

from seo_geotagger.core.manifest import ManifestRow, ManifestWriter
from seo_geotagger.core.models import Item, ItemStatus
from seo_geotagger.core.naming import collision_safe, output_filename
from seo_geotagger.core.run_logger import RunLogger
from seo_geotagger.core.run_summary import ExportCounts, ItemSummary, RunSummary, write_run_summary
from seo_geotagger.exif.codec import JpegExifCodec, MetadataCodec
from seo_geotagger.exif.segments import count_exif_blocks
from seo_geotagger.imaging.transform import is_jpeg, to_jpeg
from seo_geotagger.util.errors import EmbeddingFailure, SeoGeotaggerError


@dataclass
class ExportResult:
    out_dir: Path
    written: list[Path] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    manifest_path: Path | None = None
    summary_path: Path | None = None
    log_path: Path | None = None


def render_download(
    item: Item,
    identity: str,
    codec: MetadataCodec | None = None,
    now: datetime | None = None,
) -> tuple[str, bytes]:
    """(filename, bytes) for one item, built from its current record."""
    if item.record is None:
        raise ValueError(f"{item.filename} has no metadata record to export")
    codec = codec or JpegExifCodec()
    base = item.final_bytes or item.transformed_preview or item.source_bytes
    if item.options.embed_metadata:
        data = codec.embed(base, item.record, identity, item.location, now)
    else:
        data = base if is_jpeg(base) else to_jpeg(base, codec.quality)
    return output_filename(item.record.name), data


def has_metadata_block(data: bytes) -> bool:
    try:
        return count_exif_blocks(data) == 1
    except EmbeddingFailure:
        return False


def export_items(
    items: Iterable[Item],
    out_dir: Path,
    identity: str,
    codec: MetadataCodec | None = None,
    settings_snapshot: dict[str, Any] | None = None,
) -> ExportResult:
    out_dir.mkdir(parents=True, exist_ok=True)
    logger = RunLogger(out_dir / "run_log.txt")
    manifest = ManifestWriter(out_dir / "manifest.csv")
    codec = codec or JpegExifCodec(log=logger.log)
    result = ExportResult(out_dir=out_dir, log_path=logger.path)
    summaries: list[ItemSummary] = []
    embedded = 0

    items = list(items)
    logger.log(f"Export started: {len(items)} item(s) -> {out_dir}")
    for item in items:
        loc = item.location
        if item.status != ItemStatus.READY or item.record is None:
            reason = item.error_detail or f"status {item.status.value}"
            manifest.add(ManifestRow(item.filename, "", "SKIPPED", reason, str(loc.lat), str(loc.lng), loc.label, "NO"))
            summaries.append(_summary(item, None))
            result.skipped.append(item.filename)
            logger.log(f"Skipped {item.filename}: {reason}")
            continue
        try:
            name, data = render_download(item, identity, codec)
        except SeoGeotaggerError as e:
            manifest.add(ManifestRow(item.filename, "", "SKIPPED", str(e), str(loc.lat), str(loc.lng), loc.label, "NO"))
            summaries.append(_summary(item, None))
            result.skipped.append(item.filename)
            logger.log(f"Export failed for {item.filename}: {e}")
            continue
        target = collision_safe(out_dir / name)
        target.write_bytes(data)
        is_embedded = has_metadata_block(data)
        embedded += int(is_embedded)
        manifest.add(ManifestRow(
            item.filename, target.name, "EXPORTED", "",
            str(loc.lat), str(loc.lng), loc.label, "YES" if is_embedded else "NO",
        ))
        summaries.append(_summary(item, target.name))
        result.written.append(target)
        logger.log(f"Exported {item.filename} -> {target.name}")

    manifest.write()
    result.manifest_path = manifest.path

    summary = RunSummary(
        run_id=uuid.uuid4().hex,
        identity=identity,
        export_dir=out_dir,
        settings=settings_snapshot or {},
        counts=ExportCounts(
            total=len(items),
            exported=len(result.written),
            skipped=len(result.skipped),
            embedded=embedded,
        ),
        items=summaries,
    )
    result.summary_path = out_dir / "run_summary.json"
    write_run_summary(result.summary_path, summary)
    logger.log(f"Export finished: {len(result.written)} written, {len(result.skipped)} skipped.")
    return result


def _summary(item: Item, output_name: str | None) -> ItemSummary:
    return ItemSummary(
        filename=item.filename,
        output_name=output_name,
        status=item.status.value,
        attempts=item.attempt,
        error_kind=item.error_kind.value if item.error_kind else None,
        error_detail=item.error_detail,
        tags=list(item.record.tags) if item.record else [],
    )
