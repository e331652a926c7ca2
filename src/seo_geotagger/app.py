"""Desktop entrypoint: `seo-geotagger` or `python -m seo_geotagger.app`."""

from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from seo_geotagger.core.settings import AppSettings
from seo_geotagger.gui.main_window import MainWindow
from seo_geotagger.gui.theme import apply_theme
from seo_geotagger.util.platform import configure_app_identity


def main(argv: list[str] | None = None) -> int:
    configure_app_identity()
    app = QApplication(sys.argv if argv is None else argv)

    settings = AppSettings.load()
    apply_theme(app, settings.ui_theme)

    win = MainWindow(settings=settings)
    win.controller.logger.log(f"Session started (identity: {settings.identity or 'unset'})")
    win.show()
    try:
        return app.exec()
    finally:
        # identity, last export folder etc. are edited in place during the session
        settings.save()


if __name__ == "__main__":
    raise SystemExit(main())
