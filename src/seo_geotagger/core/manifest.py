from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from pathlib import Path
import csv


@dataclass
class ManifestRow:
    source_name: str
    output_name: str
    status: str  # EXPORTED|SKIPPED
    reason: str
    lat: str
    lng: str
    location_label: str
    metadata_embedded: str  # YES|NO


class ManifestWriter:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._rows: list[ManifestRow] = []

    @property
    def rows(self) -> list[ManifestRow]:
        return list(self._rows)

    def add(self, row: ManifestRow) -> None:
        self._rows.append(row)

    def write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=[fl.name for fl in fields(ManifestRow)])
            w.writeheader()
            for r in self._rows:
                w.writerow(asdict(r))
