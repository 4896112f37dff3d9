"""
System tray mode.

The tray menu lists up to ``TRAY_MAX_ITEMS`` accounts as
``"N.  123 456  name"`` and is refreshed once a second. Clicking an entry
copies a freshly generated code to the clipboard, which is cleared again
after a delay. HOTP entries are only generated on click so the periodic
refresh never advances their counters.
"""

import logging
import sys
from functools import partial
from typing import List, Optional

from PyQt6.QtCore import QTimer
from PyQt6.QtGui import QAction, QColor, QIcon, QPixmap
from PyQt6.QtWidgets import QApplication, QMenu, QMessageBox, QSystemTrayIcon

from core.config import TRAY_MAX_ITEMS, TRAY_REFRESH_MS, Settings
from core.errors import InvalidPasswordError, OtpError
from core.generator import generate_safe
from core.models import OtpParameter
from core.totp import remaining_seconds
from core.vault import Vault
from storage.database import ParameterDatabase
from ui.styles import ACCENT, DARK_STYLESHEET
from ui.unlock_dialog import UnlockDialog

logger = logging.getLogger(__name__)

_MAX_UNLOCK_ATTEMPTS = 5

HOTP_HIDDEN_CODE = "click to generate"


def format_otp(code: str, group: int = 3) -> str:
    """
    Format an OTP code with spaces for readability.

    Example::

        >>> format_otp("12345678")
        "123 456 78"
    """
    if not code.isdigit():
        return code
    return " ".join(code[i : i + group] for i in range(0, len(code), group))


def _tray_icon() -> QIcon:
    pixmap = QPixmap(32, 32)
    pixmap.fill(QColor(ACCENT))
    return QIcon(pixmap)


class TrayApp:
    """Owns the tray icon, its menu and the refresh timer."""

    def __init__(self, vault: Vault, clipboard_clear_ms: int) -> None:
        self._vault = vault
        self._clipboard_clear_ms = clipboard_clear_ms
        self._params: List[OtpParameter] = []
        self._clipboard_timer: Optional[QTimer] = None

        self._menu = QMenu()
        self._items: List[QAction] = []
        for index in range(TRAY_MAX_ITEMS):
            action = self._menu.addAction("")
            action.setVisible(False)
            action.triggered.connect(partial(self._on_item_clicked, index))
            self._items.append(action)
        self._menu.addSeparator()
        refresh = self._menu.addAction("Refresh")
        refresh.setToolTip("Reload OTPs from the store")
        refresh.triggered.connect(self.reload)
        quit_action = self._menu.addAction("Quit")
        quit_action.triggered.connect(QApplication.quit)
        self._menu.setToolTipsVisible(True)

        self._tray = QSystemTrayIcon(_tray_icon())
        self._tray.setToolTip("otpbridge")
        self._tray.setContextMenu(self._menu)

        self._timer = QTimer()
        self._timer.timeout.connect(self._refresh_titles)

    # ── Public API ────────────────────────────────────────────────────

    def start(self) -> None:
        self.reload()
        self._tray.show()
        self._timer.start(TRAY_REFRESH_MS)

    def stop(self) -> None:
        self._timer.stop()
        if self._clipboard_timer:
            self._clipboard_timer.stop()
        self._tray.hide()

    def reload(self) -> None:
        """Re-read the parameter list from the store."""
        try:
            self._params = self._vault.parameters()[:TRAY_MAX_ITEMS]
        except OtpError:
            logger.exception("Failed to load parameters")
            self._params = []
        self._refresh_titles()

    # ── Slots ─────────────────────────────────────────────────────────

    def _refresh_titles(self) -> None:
        rem = remaining_seconds()
        for index, param in enumerate(self._params):
            if param.is_hotp:
                code = HOTP_HIDDEN_CODE
            else:
                code = generate_safe(param, log_level=logging.DEBUG).code
            action = self._items[index]
            action.setText(f"{index + 1}.  {format_otp(code)}  {param.name}")
            if param.is_hotp:
                action.setToolTip(f"Click to generate and copy the OTP for {param.name}")
            else:
                action.setToolTip(f"Click to copy OTP for {param.name} ({rem}s left)")
            action.setVisible(True)
        for action in self._items[len(self._params):]:
            action.setVisible(False)

    def _on_item_clicked(self, index: int) -> None:
        if index >= len(self._params):
            return
        name = self._params[index].name
        try:
            result = self._vault.code_for(name)
        except OtpError:
            logger.exception("Failed to generate OTP for %s", name)
            return
        if result.ok:
            self._copy_to_clipboard(result.code)

    def _copy_to_clipboard(self, code: str) -> None:
        clipboard = QApplication.clipboard()
        clipboard.setText(code)

        if self._clipboard_timer:
            self._clipboard_timer.stop()
        self._clipboard_timer = QTimer()
        self._clipboard_timer.setSingleShot(True)
        self._clipboard_timer.timeout.connect(lambda: clipboard.setText(""))
        self._clipboard_timer.start(self._clipboard_clear_ms)


# ── Bootstrap ─────────────────────────────────────────────────────────────────

def _unlock(db: ParameterDatabase, settings: Settings) -> bool:
    """
    Unlock ``db`` from the environment password or the unlock dialog.

    Returns True on success, False if the user cancelled or gave up.
    """
    if settings.password:
        db.unlock_with_password(settings.password)
        return True

    is_new = not db.has_master_password()
    error = ""
    for attempt in range(_MAX_UNLOCK_ATTEMPTS):
        dlg = UnlockDialog(is_new=is_new, error=error)
        if dlg.exec() != dlg.DialogCode.Accepted or dlg.password is None:
            return False
        try:
            db.unlock_with_password(dlg.password)
            return True
        except InvalidPasswordError:
            remaining = _MAX_UNLOCK_ATTEMPTS - 1 - attempt
            error = f"Incorrect master password. {remaining} attempt(s) remaining."
    QMessageBox.critical(None, "Too Many Attempts", "Too many failed attempts.")
    return False


def run_tray(settings: Settings) -> int:
    app = QApplication(sys.argv[:1])
    app.setApplicationName("otpbridge")
    app.setQuitOnLastWindowClosed(False)
    app.setStyleSheet(DARK_STYLESHEET)

    if not QSystemTrayIcon.isSystemTrayAvailable():
        logger.error("No system tray available")
        return 1

    db = ParameterDatabase(settings.db_path)
    try:
        if not _unlock(db, settings):
            logger.info("Unlock cancelled or failed – exiting.")
            return 0

        tray = TrayApp(Vault(db), settings.clipboard_clear_ms)
        tray.start()
        code = app.exec()
        tray.stop()
        return code
    finally:
        db.close()
