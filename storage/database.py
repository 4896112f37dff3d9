"""
SQLite-backed parameter store with AES-256-GCM field encryption.

The store only ever moves opaque bytes: whatever the migration decoder
produced for an account is written back out unchanged.

Schema
------
parameters
  id           INTEGER  PRIMARY KEY AUTOINCREMENT   -- keeps insertion order
  name_digest  TEXT     NOT NULL UNIQUE             -- HMAC of the name
  name         BLOB     NOT NULL                    -- encrypted account name
  data         BLOB     NOT NULL                    -- encrypted encoded bytes

meta
  key      TEXT PRIMARY KEY
  value    BLOB     -- 'salt' as hex (NOT encrypted), 'check' encrypted
"""

import logging
import os
import sqlite3
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from cryptography.exceptions import InvalidTag

from core.errors import InvalidPasswordError, NotFoundError
from storage.encryption import BlobEncryptor, derive_key, generate_salt

logger = logging.getLogger(__name__)

_CHECK_TOKEN = b"otpbridge-check-v1"


class ParameterStore(Protocol):
    """What the vault needs from a storage backend."""

    def add(self, name: str, encoded: bytes) -> None: ...

    def list(self) -> List[Tuple[str, bytes]]: ...

    def get(self, name: str) -> bytes: ...

    def delete(self, name: str) -> None: ...

    def clean(self) -> int: ...


def default_db_path() -> Path:
    # %APPDATA%\otpbridge\otpbridge.db        (Windows)
    # ~/.local/share/otpbridge/otpbridge.db   (Linux/macOS)
    base = Path(os.environ.get("APPDATA", Path.home() / ".local" / "share"))
    return base / "otpbridge" / "otpbridge.db"


class ParameterDatabase:
    """SQLite parameter store with transparent encryption."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        encryptor: Optional[BlobEncryptor] = None,
    ) -> None:
        """
        Args:
            db_path:   Path to the SQLite file. Defaults to
                       :func:`default_db_path`.
            encryptor: Encryptor for an already unlocked store; normally set
                       later through :meth:`unlock`.
        """
        self._path = Path(db_path) if db_path else default_db_path()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._encryptor = encryptor
        self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._bootstrap()

    @property
    def path(self) -> Path:
        return self._path

    # ── Schema ───────────────────────────────────────────────────────────

    def _bootstrap(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS parameters (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    name_digest TEXT    NOT NULL UNIQUE,
                    name        BLOB    NOT NULL,
                    data        BLOB    NOT NULL
                );
                CREATE TABLE IF NOT EXISTS meta (
                    key   TEXT PRIMARY KEY,
                    value BLOB NOT NULL
                );
                """
            )

    # ── Salt / unlock ─────────────────────────────────────────────────────

    def get_salt(self) -> Optional[bytes]:
        """Return stored salt or None if the database is fresh."""
        row = self._conn.execute(
            "SELECT value FROM meta WHERE key='salt'"
        ).fetchone()
        return bytes.fromhex(row["value"]) if row else None

    def set_salt(self, salt: bytes) -> None:
        """Persist the salt (stored as hex, NOT encrypted)."""
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES ('salt', ?)",
                (salt.hex(),),
            )

    def has_master_password(self) -> bool:
        """Return True if a salt (and thus a master password) has been set."""
        return self.get_salt() is not None

    def unlock(self, encryptor: BlobEncryptor) -> None:
        """
        Attach ``encryptor`` after checking it against the stored token.

        A fresh database accepts any key and records the token for it.

        Raises:
            InvalidPasswordError: If the key does not decrypt the token.
        """
        row = self._conn.execute(
            "SELECT value FROM meta WHERE key='check'"
        ).fetchone()
        if row is None:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO meta (key, value) VALUES ('check', ?)",
                    (encryptor.encrypt(_CHECK_TOKEN),),
                )
            logger.info("Parameter store initialised at %s", self._path)
        else:
            try:
                token = encryptor.decrypt(row["value"])
            except InvalidTag:
                token = None
            if token != _CHECK_TOKEN:
                raise InvalidPasswordError("store: incorrect master password")
            logger.debug("Parameter store unlocked")
        self._encryptor = encryptor

    def unlock_with_password(self, password: str) -> None:
        """Derive the key for ``password`` (creating a salt on first run) and unlock."""
        salt = self.get_salt()
        if salt is None:
            # First run – generate and store a new salt
            salt = generate_salt()
            self.set_salt(salt)
        self.unlock(BlobEncryptor(derive_key(password, salt)))

    def lock(self) -> None:
        if self._encryptor is not None:
            self._encryptor.wipe_key()
        self._encryptor = None

    def _require(self) -> BlobEncryptor:
        if self._encryptor is None:
            raise RuntimeError("Database is locked – no encryptor set.")
        return self._encryptor

    # ── Store contract ────────────────────────────────────────────────────

    def add(self, name: str, encoded: bytes) -> None:
        """Store ``encoded`` under ``name``; an existing entry is replaced in place."""
        enc = self._require()
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO parameters (name_digest, name, data)
                VALUES (?, ?, ?)
                ON CONFLICT(name_digest) DO UPDATE SET
                    name=excluded.name, data=excluded.data
                """,
                (enc.name_digest(name), enc.encrypt_text(name), enc.encrypt(encoded)),
            )
        logger.debug("Stored parameter %s", name)

    def list(self) -> List[Tuple[str, bytes]]:
        """Return ``(name, encoded)`` for every entry in insertion order."""
        enc = self._require()
        rows = self._conn.execute(
            "SELECT name, data FROM parameters ORDER BY id"
        ).fetchall()
        return [(enc.decrypt_text(r["name"]), enc.decrypt(r["data"])) for r in rows]

    def get(self, name: str) -> bytes:
        """
        Return the bytes stored under ``name``.

        Raises:
            NotFoundError: If nothing is stored under that name.
        """
        enc = self._require()
        row = self._conn.execute(
            "SELECT data FROM parameters WHERE name_digest=?",
            (enc.name_digest(name),),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"store: no parameter named {name!r}")
        return enc.decrypt(row["data"])

    def delete(self, name: str) -> None:
        """
        Delete the entry stored under ``name``.

        Raises:
            NotFoundError: If nothing is stored under that name.
        """
        enc = self._require()
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM parameters WHERE name_digest=?",
                (enc.name_digest(name),),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"store: no parameter named {name!r}")
        logger.debug("Deleted parameter %s", name)

    def clean(self) -> int:
        """Delete every stored parameter and return how many were removed."""
        self._require()
        with self._conn:
            cursor = self._conn.execute("DELETE FROM parameters")
        logger.info("Removed %d stored parameter(s)", cursor.rowcount)
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
