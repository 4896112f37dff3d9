"""
Storage-level encryption for the parameter database.

Key derivation  : PBKDF2-HMAC-SHA256
Encryption      : AES-256-GCM (authenticated encryption)
Name lookup     : HMAC-SHA256 digest under the derived key

The caller is responsible for key management; keys are never written to disk
through this module.
"""

import hashlib
import hmac
import secrets

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

# ── Constants ────────────────────────────────────────────────────────────────

SALT_SIZE = 32          # 256-bit salt
NONCE_SIZE = 12         # 96-bit nonce (GCM recommendation)
KEY_SIZE = 32           # 256-bit AES key
PBKDF2_ITERATIONS = 480_000  # OWASP 2023 recommendation for PBKDF2-SHA256


def derive_key(password: str, salt: bytes) -> bytes:
    """
    Derive a 256-bit key from ``password`` using PBKDF2-HMAC-SHA256.

    Args:
        password: Master password (unicode string).
        salt:     Random 32-byte salt stored next to the database.

    Returns:
        32-byte derived key.
    """
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        PBKDF2_ITERATIONS,
        dklen=KEY_SIZE,
    )


def generate_salt() -> bytes:
    """Return a cryptographically random 32-byte salt."""
    return secrets.token_bytes(SALT_SIZE)


class BlobEncryptor:
    """Encrypt stored parameter blobs and digest account names."""

    def __init__(self, key: bytes) -> None:
        """
        Args:
            key: 32-byte key from :func:`derive_key`.
        """
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key
        self._aead = AESGCM(key)

    def encrypt(self, plaintext: bytes) -> bytes:
        """
        Encrypt ``plaintext``.

        Layout of the returned blob::

            [ nonce (12 bytes) | ciphertext+tag ]
        """
        nonce = secrets.token_bytes(NONCE_SIZE)
        return nonce + self._aead.encrypt(nonce, plaintext, None)

    def decrypt(self, blob: bytes) -> bytes:
        """
        Decrypt a blob produced by :meth:`encrypt`.

        Raises:
            cryptography.exceptions.InvalidTag: Wrong key or tampered data.
        """
        return self._aead.decrypt(blob[:NONCE_SIZE], blob[NONCE_SIZE:], None)

    def encrypt_text(self, text: str) -> bytes:
        return self.encrypt(text.encode("utf-8"))

    def decrypt_text(self, blob: bytes) -> str:
        return self.decrypt(blob).decode("utf-8")

    def name_digest(self, name: str) -> str:
        """Deterministic keyed digest of ``name``, used as the lookup key."""
        return hmac.new(self._key, name.encode("utf-8"), hashlib.sha256).hexdigest()

    def wipe_key(self) -> None:
        """Overwrite the in-memory key with zeros (best-effort)."""
        self._key = b"\x00" * len(self._key)
        self._aead = AESGCM(self._key)
