"""
storage/crypto.py

Payload codecs for PleaBargainFHE case records.

The ``data`` field of a stored case holds the draft's free-form fields in an
opaque form.  Two codecs are provided:

``Base64Codec``
    ``"FHE-" + base64(JSON)``.  Reversible by anyone; this is what the
    browser client wrote, so it stays the default for ledger compatibility.

``FernetCodec``
    Fernet token.  The key is read from the environment variable
    APP_DATA_KEY (a URL-safe base64-encoded 32-byte key as produced by
    ``Fernet.generate_key()``).  If APP_DATA_KEY is not set a fresh key is
    generated in memory and a warning is emitted.

Both satisfy ``PayloadCodec``, so the record store never depends on which
one is active.

Public API
----------
get_codec(name) -> PayloadCodec
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from functools import lru_cache
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class PayloadCodec(Protocol):
    def encode(self, data: dict) -> str:
        ...

    def decode(self, token: str) -> dict:
        ...


def _dumps(data: dict) -> bytes:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str).encode("utf-8")


# ---------------------------------------------------------------------------
# Base64 (simulated encryption)
# ---------------------------------------------------------------------------


class Base64Codec:
    """Reversible encoding with the ``FHE-`` prefix. Not confidential."""

    prefix = "FHE-"

    def encode(self, data: dict) -> str:
        return self.prefix + base64.b64encode(_dumps(data)).decode("ascii")

    def decode(self, token: str) -> dict:
        """
        Raises:
            ValueError: If *token* lacks the prefix or is not base64 JSON.
        """
        if not token.startswith(self.prefix):
            raise ValueError(f"payload does not start with '{self.prefix}'")
        try:
            raw = base64.b64decode(token[len(self.prefix):], validate=True)
        except binascii.Error as exc:
            raise ValueError(f"invalid base64 payload: {exc}") from exc
        return json.loads(raw.decode("utf-8"))


# ---------------------------------------------------------------------------
# Fernet
# ---------------------------------------------------------------------------

_ENV_KEY_NAME = "APP_DATA_KEY"


@lru_cache(maxsize=1)
def _get_fernet() -> Fernet:
    """
    Return a cached Fernet instance.

    Reads APP_DATA_KEY from the environment.  If absent, generates a
    one-time in-memory key and logs a warning.
    """
    raw_key = os.environ.get(_ENV_KEY_NAME)

    if raw_key:
        key = raw_key.encode() if isinstance(raw_key, str) else raw_key
        logger.debug("Fernet key loaded from environment variable '%s'.", _ENV_KEY_NAME)
    else:
        key = Fernet.generate_key()
        logger.warning(
            "APP_DATA_KEY environment variable is not set. "
            "A temporary in-memory Fernet key has been generated. "
            "Case payloads will NOT be readable after process restart."
        )

    return Fernet(key)


class FernetCodec:
    """Fernet-encrypted JSON payloads."""

    def __init__(self, fernet: Fernet | None = None) -> None:
        self._fernet = fernet

    @property
    def fernet(self) -> Fernet:
        return self._fernet or _get_fernet()

    def encode(self, data: dict) -> str:
        return self.fernet.encrypt(_dumps(data)).decode("utf-8")

    def decode(self, token: str) -> dict:
        """
        Raises:
            ValueError: If *token* is invalid or was encrypted with another key.
        """
        try:
            plaintext = self.fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            logger.error("Fernet decryption failed, wrong key or corrupted token.")
            raise ValueError("invalid Fernet token") from exc
        return json.loads(plaintext.decode("utf-8"))


def get_codec(name: str = "base64") -> PayloadCodec:
    if name == "base64":
        return Base64Codec()
    if name == "fernet":
        return FernetCodec()
    raise ValueError(f"Unknown payload codec '{name}'. Must be 'base64' or 'fernet'.")
