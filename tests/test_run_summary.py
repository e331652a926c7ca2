from __future__ import annotations

import csv
import json
from pathlib import Path

from seo_geotagger.core.manifest import ManifestRow, ManifestWriter
from seo_geotagger.core.models import ItemStatus
from seo_geotagger.core.run_logger import RunLogger
from seo_geotagger.core.run_summary import ExportCounts, ItemSummary, RunSummary, write_run_summary


def test_write_run_summary(tmp_path: Path) -> None:
    summary = RunSummary(
        run_id="abc",
        identity="Acme Repairs",
        export_dir=tmp_path / "out",
        settings={"jpeg_quality": 95, "status": ItemStatus.READY},
        counts=ExportCounts(total=2, exported=1, skipped=1, embedded=1),
        items=[
            ItemSummary("a.jpg", "a.jpeg", "ready", 1, tags=["oven"]),
            ItemSummary("b.jpg", None, "error", 2, error_kind="decode_failure", error_detail="bad"),
        ],
    )

    path = tmp_path / "run_summary.json"
    write_run_summary(path, summary)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["run_id"] == "abc"
    assert data["export_dir"] == str(tmp_path / "out")
    assert data["settings"]["status"] == "ready"
    assert data["counts"]["exported"] == 1
    assert data["items"][1]["output_name"] is None


def test_manifest_writer(tmp_path: Path) -> None:
    writer = ManifestWriter(tmp_path / "nested" / "manifest.csv")
    writer.add(ManifestRow("a.jpg", "a.jpeg", "EXPORTED", "", "-37.8", "144.9", "Richmond", "YES"))
    writer.write()
    with writer.path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows == [{
        "source_name": "a.jpg",
        "output_name": "a.jpeg",
        "status": "EXPORTED",
        "reason": "",
        "lat": "-37.8",
        "lng": "144.9",
        "location_label": "Richmond",
        "metadata_embedded": "YES",
    }]


def test_run_logger_tail(tmp_path: Path) -> None:
    logger = RunLogger(tmp_path / "logs" / "run_log.txt")
    assert logger.tail() == []
    for i in range(5):
        logger.log(f"line {i}")
    tail = logger.tail(2)
    assert len(tail) == 2
    assert tail[-1].endswith("] line 4")
    assert tail[0].startswith("[")
