"""Shared helpers for building migration links in tests."""

import base64
import urllib.parse
from pathlib import Path
from typing import Callable, List

import pytest

from migration.codec import RawOtpRecord, RawPayload, encode_payload
from storage.database import ParameterDatabase

RFC_SECRET = b"12345678901234567890"


def link_for(data: bytes, quote: bool = True) -> str:
    b64 = base64.b64encode(data).decode("ascii")
    if quote:
        b64 = urllib.parse.quote(b64, safe="")
    return f"otpauth-migration://offline?data={b64}"


@pytest.fixture()
def raw_link() -> Callable[[bytes], str]:
    """Return a builder wrapping already encoded payload bytes in a link."""
    return link_for


@pytest.fixture()
def make_link() -> Callable[..., str]:
    """Return a builder: ``make_link(record, ..., batch_size=1, ...)``."""

    def _make(*records: RawOtpRecord, **meta: int) -> str:
        payload = RawPayload(records=list(records), **meta)
        return link_for(encode_payload(payload))

    return _make


@pytest.fixture()
def sample_records() -> List[RawOtpRecord]:
    return [
        RawOtpRecord(secret=RFC_SECRET, name="alice@example.com", issuer="GitHub",
                     algorithm=1, digits=1, otp_type=2),
        RawOtpRecord(secret=b"\x01\x02\x03\x04\x05", name="bob", issuer="",
                     algorithm=2, digits=2, otp_type=1, counter=7),
    ]


@pytest.fixture()
def tmp_db(tmp_path: Path) -> ParameterDatabase:
    """Return an unlocked database in a temporary directory."""
    db = ParameterDatabase(db_path=tmp_path / "test.db")
    db.unlock_with_password("test_password_123")
    yield db
    db.close()
