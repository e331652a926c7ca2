from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from pathlib import Path
import json
import os

from appdirs import user_config_dir

from seo_geotagger.core.locations import DEFAULT_PRESET_LOCATIONS
from seo_geotagger.core.models import CompanyInfo, ProcessingOptions, TagCategory

APP_NAME = "SeoGeotagger"
API_KEY_ENV = "GEMINI_API_KEY"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


def config_dir() -> Path:
    cfg_dir = Path(user_config_dir(appname=APP_NAME, appauthor=False))
    cfg_dir.mkdir(parents=True, exist_ok=True)
    return cfg_dir


def _config_path() -> Path:
    return config_dir() / "settings.json"


@dataclass
class AppSettings:
    """User-persistent settings.

    Stored in: ~/Library/Application Support/SeoGeotagger/settings.json (macOS)
    """
    identity: str = ""
    api_key: str = ""
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL

    generate_metadata_default: bool = True
    enhance_image_default: bool = True
    embed_metadata_default: bool = True
    randomize_location_default: bool = False
    use_manual_metadata_default: bool = False
    target_aspect_ratio: float = 0.0  # <= 0 keeps the enhanced image's own shape

    tech_target_height: int = 1024
    jpeg_quality: int = 95
    enforce_min_dimensions: bool = False
    min_width: int = 1024
    min_height: int = 1024

    company_name: str = ""
    company_website: str = ""
    company_phone: str = ""
    company_address: str = ""
    tag_categories: dict[str, list[str]] = field(default_factory=dict)
    preset_locations: list[str] = field(
        default_factory=lambda: [loc.label for loc in DEFAULT_PRESET_LOCATIONS]
    )

    last_export_dir: str = ""
    ui_theme: str = "light"

    @classmethod
    def load(cls) -> "AppSettings":
        p = _config_path()
        if not p.exists():
            return cls()
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
            known = {f.name for f in fields(cls)}
            return cls(**{k: v for k, v in data.items() if k in known})
        except Exception:
            # A broken settings file must never stop the app from starting.
            return cls()

    def save(self) -> None:
        p = _config_path()
        p.write_text(json.dumps(asdict(self), indent=2), encoding="utf-8")

    def resolved_api_key(self) -> str:
        return os.environ.get(API_KEY_ENV) or self.api_key

    def processing_options(self) -> ProcessingOptions:
        return ProcessingOptions(
            generate_metadata=self.generate_metadata_default,
            enhance_image=self.enhance_image_default,
            embed_metadata=self.embed_metadata_default,
            randomize_location=self.randomize_location_default,
            use_manual_metadata=self.use_manual_metadata_default,
            target_aspect_ratio=self.target_aspect_ratio if self.target_aspect_ratio > 0 else None,
        )

    def company(self) -> CompanyInfo:
        return CompanyInfo(
            name=self.company_name or self.identity,
            website=self.company_website,
            phone=self.company_phone,
            address=self.company_address,
        )

    def categories(self) -> list[TagCategory]:
        return [TagCategory(name, tuple(tags)) for name, tags in self.tag_categories.items()]

    def min_dimensions(self) -> tuple[int, int] | None:
        return (self.min_width, self.min_height) if self.enforce_min_dimensions else None

    @staticmethod
    def new_export_folder(output_root: Path) -> Path:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return output_root / f"{APP_NAME}_{stamp}"
