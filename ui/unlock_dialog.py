"""
Master password dialog used by tray mode.
"""

from typing import Optional

from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QLineEdit,
    QVBoxLayout,
    QWidget,
)

MIN_PASSWORD_LENGTH = 8


class UnlockDialog(QDialog):
    """Ask for the master password, or for a new one on a fresh store."""

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        is_new: bool = False,
        error: str = "",
    ) -> None:
        super().__init__(parent)
        self._is_new = is_new
        self.password: Optional[str] = None
        self._setup_ui(error)

    def _setup_ui(self, error: str) -> None:
        title = "Create Master Password" if self._is_new else "Unlock otpbridge"
        self.setWindowTitle(title)
        self.setMinimumWidth(360)
        self.setModal(True)

        layout = QVBoxLayout(self)
        layout.setSpacing(12)
        layout.setContentsMargins(24, 24, 24, 24)

        title_lbl = QLabel(title)
        title_lbl.setObjectName("lbl_title")
        layout.addWidget(title_lbl)

        self._edit_pw = QLineEdit()
        self._edit_pw.setEchoMode(QLineEdit.EchoMode.Password)
        self._edit_pw.setPlaceholderText("Master password")
        self._edit_pw.returnPressed.connect(self._on_accept)
        layout.addWidget(self._edit_pw)

        self._edit_confirm: Optional[QLineEdit] = None
        if self._is_new:
            self._edit_confirm = QLineEdit()
            self._edit_confirm.setEchoMode(QLineEdit.EchoMode.Password)
            self._edit_confirm.setPlaceholderText("Confirm master password")
            self._edit_confirm.returnPressed.connect(self._on_accept)
            layout.addWidget(self._edit_confirm)

        self._lbl_error = QLabel(error)
        self._lbl_error.setObjectName("lbl_error")
        self._lbl_error.setWordWrap(True)
        self._lbl_error.setVisible(bool(error))
        layout.addWidget(self._lbl_error)

        btn_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok
            | QDialogButtonBox.StandardButton.Cancel
        )
        ok = btn_box.button(QDialogButtonBox.StandardButton.Ok)
        ok.setObjectName("btn_primary")
        ok.setText("Create" if self._is_new else "Unlock")
        btn_box.accepted.connect(self._on_accept)
        btn_box.rejected.connect(self.reject)
        layout.addWidget(btn_box)

    def _show_error(self, message: str) -> None:
        self._lbl_error.setText(message)
        self._lbl_error.setVisible(True)

    def _on_accept(self) -> None:
        pw = self._edit_pw.text()
        if self._is_new:
            if len(pw) < MIN_PASSWORD_LENGTH:
                self._show_error(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
                )
                return
            if self._edit_confirm is not None and pw != self._edit_confirm.text():
                self._show_error("Passwords do not match.")
                self._edit_confirm.clear()
                return
        elif not pw:
            return
        self.password = pw
        self.accept()
