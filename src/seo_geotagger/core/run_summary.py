from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
import json
from typing import Any


@dataclass
class ExportCounts:
    total: int
    exported: int
    skipped: int
    embedded: int


@dataclass
class ItemSummary:
    filename: str
    output_name: str | None
    status: str
    attempts: int
    error_kind: str | None = None
    error_detail: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class RunSummary:
    run_id: str
    identity: str
    export_dir: Path
    settings: dict[str, Any]
    counts: ExportCounts
    items: list[ItemSummary]


def write_run_summary(path: Path, summary: RunSummary) -> None:
    payload = _jsonify(asdict(summary))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _jsonify(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _jsonify(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonify(v) for v in obj]
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    return obj
