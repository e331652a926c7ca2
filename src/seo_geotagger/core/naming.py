from __future__ import annotations

from pathlib import Path
import re

OUTPUT_EXTENSION = ".jpeg"
PLACEHOLDER_STEM = "seo-image"


def slugify(text: str) -> str:
    value = str(text).lower().strip()
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"[^\w\-]+", "", value, flags=re.ASCII)
    value = re.sub(r"-{2,}", "-", value)
    return value.strip("-")


def output_filename(name: str, placeholder: str = PLACEHOLDER_STEM) -> str:
    return f"{slugify(name) or placeholder}{OUTPUT_EXTENSION}"


def collision_safe(path: Path) -> Path:
    if not path.exists():
        return path
    stem = path.stem
    suf = path.suffix
    parent = path.parent
    i = 1
    while True:
        cand = parent / f"{stem}_dup{i}{suf}"
        if not cand.exists():
            return cand
        i += 1
