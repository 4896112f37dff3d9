"""Tests for storage.encryption."""

import pytest
from cryptography.exceptions import InvalidTag

from storage.encryption import (
    KEY_SIZE,
    NONCE_SIZE,
    SALT_SIZE,
    BlobEncryptor,
    derive_key,
    generate_salt,
)


# ── Key derivation ────────────────────────────────────────────────────────────

def test_derive_key_length() -> None:
    assert len(derive_key("password", generate_salt())) == KEY_SIZE


def test_derive_key_deterministic() -> None:
    salt = generate_salt()
    assert derive_key("hello", salt) == derive_key("hello", salt)


def test_derive_key_different_passwords() -> None:
    salt = generate_salt()
    assert derive_key("password1", salt) != derive_key("password2", salt)


def test_generate_salt_size_and_randomness() -> None:
    a, b = generate_salt(), generate_salt()
    assert len(a) == SALT_SIZE
    assert a != b


# ── BlobEncryptor ─────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def key() -> bytes:
    return derive_key("test", b"\x00" * SALT_SIZE)


def test_encrypt_decrypt_roundtrip(key: bytes) -> None:
    enc = BlobEncryptor(key)
    blob = enc.encrypt(b"\x0a\x01k")
    assert len(blob) > NONCE_SIZE
    assert enc.decrypt(blob) == b"\x0a\x01k"


def test_encrypt_produces_different_blobs(key: bytes) -> None:
    """Each call produces a different nonce → different blob."""
    enc = BlobEncryptor(key)
    assert enc.encrypt(b"same") != enc.encrypt(b"same")


def test_text_roundtrip(key: bytes) -> None:
    enc = BlobEncryptor(key)
    assert enc.decrypt_text(enc.encrypt_text("ålice@example.com")) == "ålice@example.com"


def test_decrypt_wrong_key_raises(key: bytes) -> None:
    blob = BlobEncryptor(key).encrypt(b"secret")
    other = BlobEncryptor(derive_key("wrong", b"\x00" * SALT_SIZE))
    with pytest.raises(InvalidTag):
        other.decrypt(blob)


def test_decrypt_tampered_data_raises(key: bytes) -> None:
    enc = BlobEncryptor(key)
    blob = bytearray(enc.encrypt(b"secret"))
    blob[-1] ^= 0xFF  # flip a bit in the tag
    with pytest.raises(InvalidTag):
        enc.decrypt(bytes(blob))


def test_name_digest_is_keyed_and_stable(key: bytes) -> None:
    enc = BlobEncryptor(key)
    other = BlobEncryptor(derive_key("other", b"\x00" * SALT_SIZE))
    assert enc.name_digest("alice") == enc.name_digest("alice")
    assert enc.name_digest("alice") != enc.name_digest("bob")
    assert enc.name_digest("alice") != other.name_digest("alice")


def test_rejects_short_key() -> None:
    with pytest.raises(ValueError):
        BlobEncryptor(b"short")


def test_wipe_key(key: bytes) -> None:
    enc = BlobEncryptor(key)
    blob = enc.encrypt(b"secret")
    enc.wipe_key()
    with pytest.raises(InvalidTag):
        enc.decrypt(blob)
