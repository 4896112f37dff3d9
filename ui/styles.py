"""
Qt stylesheet and palette for the tray menu and unlock dialog.
"""

ACCENT = "#89b4fa"
BACKGROUND = "#1e1e2e"

DARK_STYLESHEET = """
QWidget {
    background-color: #1e1e2e;
    color: #cdd6f4;
    font-family: "Segoe UI", "SF Pro Display", "Ubuntu", sans-serif;
    font-size: 14px;
}

/* ── Tray menu ───────────────────────────────────────────────────── */
QMenu {
    background-color: #181825;
    border: 1px solid #45475a;
    border-radius: 8px;
    padding: 4px;
    font-family: "JetBrains Mono", "Consolas", monospace;
}
QMenu::item {
    padding: 6px 18px;
    border-radius: 6px;
}
QMenu::item:selected {
    background-color: #313244;
    color: #89b4fa;
}
QMenu::separator {
    height: 1px;
    background: #45475a;
    margin: 4px 8px;
}

/* ── Unlock dialog ───────────────────────────────────────────────── */
QLineEdit {
    background-color: #313244;
    border: 1px solid #45475a;
    border-radius: 8px;
    padding: 8px 12px;
}
QLineEdit:focus {
    border-color: #89b4fa;
}
QPushButton#btn_primary {
    background-color: #89b4fa;
    color: #1e1e2e;
    border: none;
    border-radius: 8px;
    padding: 8px 16px;
    font-weight: 700;
}
QLabel#lbl_title {
    font-size: 20px;
    font-weight: 700;
}
QLabel#lbl_error {
    color: #f38ba8;
}

QToolTip {
    background-color: #313244;
    color: #cdd6f4;
    border: 1px solid #45475a;
    padding: 4px 8px;
}
"""
