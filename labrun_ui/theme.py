from __future__ import annotations

from enum import Enum

from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication, QStyleFactory

_ACCENT = QColor(59, 130, 246)

# Only the banners need explicit styling; everything else follows the palette.
_STYLESHEET = """
QLabel#timeline_error {
    background: #7f1d1d;
    color: #fee2e2;
    padding: 8px;
    border-radius: 4px;
}
QLabel#config_issues {
    background: #78350f;
    color: #fef3c7;
    padding: 8px;
    border-radius: 4px;
}
QLabel#run_title {
    font-size: 18px;
    font-weight: 600;
}
"""


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


def _dark_palette() -> QPalette:
    pal = QPalette()
    window = QColor(30, 30, 30)
    base = QColor(24, 24, 24)
    text = QColor(228, 228, 228)
    disabled_text = QColor(150, 150, 150)

    pal.setColor(QPalette.ColorRole.Window, window)
    pal.setColor(QPalette.ColorRole.WindowText, text)
    pal.setColor(QPalette.ColorRole.Base, base)
    pal.setColor(QPalette.ColorRole.AlternateBase, QColor(36, 36, 36))
    pal.setColor(QPalette.ColorRole.ToolTipBase, window)
    pal.setColor(QPalette.ColorRole.ToolTipText, text)
    pal.setColor(QPalette.ColorRole.Text, text)
    pal.setColor(QPalette.ColorRole.Button, QColor(40, 40, 40))
    pal.setColor(QPalette.ColorRole.ButtonText, text)
    pal.setColor(QPalette.ColorRole.Highlight, _ACCENT)
    pal.setColor(QPalette.ColorRole.HighlightedText, QColor(245, 245, 245))
    for role in (
        QPalette.ColorRole.WindowText,
        QPalette.ColorRole.Text,
        QPalette.ColorRole.ButtonText,
    ):
        pal.setColor(QPalette.ColorGroup.Disabled, role, disabled_text)
    return pal


def _light_palette(app: QApplication) -> QPalette:
    pal = app.style().standardPalette()
    text = QColor(32, 32, 32)
    pal.setColor(QPalette.ColorRole.Window, QColor(248, 248, 248))
    pal.setColor(QPalette.ColorRole.WindowText, text)
    pal.setColor(QPalette.ColorRole.Base, QColor(255, 255, 255))
    pal.setColor(QPalette.ColorRole.AlternateBase, QColor(242, 242, 242))
    pal.setColor(QPalette.ColorRole.Button, QColor(245, 245, 245))
    pal.setColor(QPalette.ColorRole.ButtonText, text)
    pal.setColor(QPalette.ColorRole.Text, text)
    pal.setColor(QPalette.ColorRole.Highlight, _ACCENT)
    pal.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))
    return pal


def theme_from_name(name: str | None) -> Theme:
    try:
        return Theme((name or "").strip().lower())
    except ValueError:
        return Theme.DARK


def apply_theme(app: QApplication, theme: Theme) -> None:
    fusion = QStyleFactory.create("Fusion")
    if fusion is not None:
        app.setStyle(fusion)
    palette = _dark_palette() if theme == Theme.DARK else _light_palette(app)
    app.setPalette(palette)
    app.setStyleSheet(_STYLESHEET)
