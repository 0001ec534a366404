"""Colours and the application stylesheet."""

THEMES = {
    "Light": {
        "bg": "#f5f5f7",
        "text": "#1d1d1f",
        "muted_text": "#6e6e73",
        "button_bg": "#ffffff",
        "button_text": "#1d1d1f",
        "button_active": "#e5e5ea",
        "border": 1,
        "row_bg": "#ffffff",
        "row_running_bg": "#e3f2e1",
        "running_text": "#1a7f37",
        "error": "#d1242f",
        "separator": "#d2d2d7",
    },
    "Dark": {
        "bg": "#1e1f22",
        "text": "#e6e6e6",
        "muted_text": "#9a9aa0",
        "button_bg": "#2b2d31",
        "button_text": "#e6e6e6",
        "button_active": "#3a3c42",
        "border": 1,
        "row_bg": "#26282c",
        "row_running_bg": "#1f3a27",
        "running_text": "#57d37a",
        "error": "#ff6b6b",
        "separator": "#3a3c42",
    },
}


def resolve_theme(theme_name):
    return THEMES.get(theme_name, THEMES["Light"])


def build_stylesheet(theme_name):
    """Build a Qt stylesheet string from a theme name."""
    t = resolve_theme(theme_name)
    return (
        f"QMainWindow, QDialog, QWidget {{ background-color: {t['bg']}; }}"
        f"QLabel {{ color: {t['text']}; background: transparent; }}"
        f"QPushButton {{"
        f"  color: {t['button_text']};"
        f"  background-color: {t['button_bg']};"
        f"  border: {t['border']}px solid rgba(128,128,128,0.4);"
        f"  padding: 4px 8px;"
        f"}}"
        f"QPushButton:hover, QPushButton:pressed {{"
        f"  background-color: {t['button_active']};"
        f"}}"
        f"QLineEdit, QComboBox {{"
        f"  color: {t['button_text']};"
        f"  background-color: {t['button_bg']};"
        f"  border: {t['border']}px solid rgba(128,128,128,0.4);"
        f"  padding: 3px 5px;"
        f"}}"
        f"QLineEdit[invalid=\"true\"] {{ border: 1px solid {t['error']}; }}"
        f"QComboBox QAbstractItemView {{"
        f"  color: {t['button_text']};"
        f"  background-color: {t['button_bg']};"
        f"  selection-background-color: {t['button_active']};"
        f"}}"
        f"QScrollArea {{ border: none; }}"
        f"QToolTip {{"
        f"  background-color: {t['bg']};"
        f"  color: {t['text']};"
        f"  border: 1px solid {t['separator']};"
        f"  padding: 4px 8px;"
        f"}}"
    )
