"""
Glue between the parameter store, the migration decoder and the generator.

HOTP generation is serialised per account name and the advanced counter is
written back before the code is handed out, so the same code is never shown
twice.
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

from core.generator import FAILED_CODE, GeneratedCode, generate_safe
from core.models import OtpParameter
from migration.parser import (
    Payload,
    encode_parameter,
    from_encoded_bytes,
    parse_migration_link,
)
from storage.database import ParameterStore

logger = logging.getLogger(__name__)


class Vault:
    """High-level operations over a :class:`~storage.database.ParameterStore`."""

    def __init__(self, store: ParameterStore) -> None:
        self._store = store
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, name: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(name, threading.Lock())

    # ── Add / clean ───────────────────────────────────────────────────────

    def add_link(self, link: str) -> Payload:
        """
        Decode a migration link and store every parameter in it.

        A duplicate name overwrites the stored entry.

        Raises:
            OtpError: If the link does not decode; nothing is stored then.
        """
        payload = parse_migration_link(link)
        for entry in payload.entries:
            self._store.add(entry.parameter.name, entry.encoded)
        if payload.batch_size > 1:
            logger.info(
                "Imported %s; scan the remaining export codes as well",
                payload.describe_batch(),
            )
        logger.info("Added %d parameter(s)", len(payload.entries))
        return payload

    def clean(self) -> int:
        return self._store.clean()

    # ── Generation ────────────────────────────────────────────────────────

    def parameters(self) -> List[OtpParameter]:
        """Decode every stored parameter, in store order."""
        return [from_encoded_bytes(data) for _, data in self._store.list()]

    def _generate(self, param: OtpParameter, now: Optional[float]) -> GeneratedCode:
        if not param.is_hotp:
            return generate_safe(param, now)

        with self._lock_for(param.name):
            # Re-read under the lock so a concurrent caller's counter is seen.
            current = from_encoded_bytes(self._store.get(param.name))
            result = generate_safe(current, now)
            if not result.ok:
                return result
            try:
                self._store.add(current.name, encode_parameter(result.state))
            except Exception as exc:
                logger.exception("Failed to persist HOTP counter for %s", current.name)
                return GeneratedCode(code=FAILED_CODE, state=current, error=exc)
            return result

    def code_for(self, name: str, now: Optional[float] = None) -> GeneratedCode:
        """
        Generate the code for a single account.

        Raises:
            NotFoundError: If no parameter is stored under ``name``.
        """
        param = from_encoded_bytes(self._store.get(name))
        return self._generate(param, now)

    def codes(self, now: Optional[float] = None) -> List[Tuple[OtpParameter, GeneratedCode]]:
        """
        Generate codes for every stored parameter.

        A failure for one entry is reported as a ``"failed"`` code and does
        not affect the others. HOTP entries advance their stored counters.
        """
        results = []
        for param in self.parameters():
            try:
                result = self._generate(param, now)
            except Exception as exc:
                logger.exception("Failed to generate OTP for %s", param.name)
                result = GeneratedCode(code=FAILED_CODE, state=param, error=exc)
            results.append((param, result))
        return results
