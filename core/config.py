"""
Runtime settings, read from the environment.

    OTPBRIDGE_DB                  SQLite file (default: platform data dir)
    OTPBRIDGE_PASSWORD            master password; prompted for when unset
    OTPBRIDGE_LOG_LEVEL           root log level (default WARNING)
    OTPBRIDGE_CLIPBOARD_CLEAR_MS  tray clipboard clear delay (default 15000)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from core.errors import ConfigError
from storage.database import default_db_path

TRAY_MAX_ITEMS = 20
TRAY_REFRESH_MS = 1000


@dataclass(frozen=True)
class Settings:
    db_path: Path
    password: Optional[str] = None
    log_level: str = "WARNING"
    clipboard_clear_ms: int = 15_000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        db = env.get("OTPBRIDGE_DB")
        try:
            clear_ms = int(env.get("OTPBRIDGE_CLIPBOARD_CLEAR_MS", "15000"))
        except ValueError as exc:
            raise ConfigError(
                "config: OTPBRIDGE_CLIPBOARD_CLEAR_MS must be an integer"
            ) from exc
        return cls(
            db_path=Path(db).expanduser() if db else default_db_path(),
            password=env.get("OTPBRIDGE_PASSWORD") or None,
            log_level=env.get("OTPBRIDGE_LOG_LEVEL", "WARNING").upper(),
            clipboard_clear_ms=clear_ms,
        )
