"""
storage/config.py

Runtime settings for PleaBargainFHE, resolved once from the environment.

Environment variables
---------------------
PLEA_LEDGER_BACKEND   ``file`` (default) or ``memory``
PLEA_LEDGER_PATH      JSON ledger location, default ``data/ledger.json``
PLEA_PAYLOAD_CODEC    ``base64`` (default) or ``fernet``
PLEA_ANALYSIS_DELAY   seconds the simulated analysis takes, default ``3``
PLEA_DEMO_ACCOUNT     account exposed by the demo wallet
APP_DATA_KEY          Fernet key, only read by the ``fernet`` codec
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseModel):
    ledger_backend: Literal["memory", "file"] = "file"
    ledger_path: Path = _PROJECT_ROOT / "data" / "ledger.json"
    payload_codec: Literal["base64", "fernet"] = "base64"
    analysis_delay: float = Field(default=3.0, ge=0)
    demo_account: str = "0x9f2c4a1be0d3c7e8a56b1f0e2d4c6a8b0e1f3a5c"


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build a ``Settings`` from *environ* (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    raw: dict[str, str] = {}
    for field, var in (
        ("ledger_backend", "PLEA_LEDGER_BACKEND"),
        ("ledger_path", "PLEA_LEDGER_PATH"),
        ("payload_codec", "PLEA_PAYLOAD_CODEC"),
        ("analysis_delay", "PLEA_ANALYSIS_DELAY"),
        ("demo_account", "PLEA_DEMO_ACCOUNT"),
    ):
        value = env.get(var)
        if value:
            raw[field] = value.strip()
    return Settings(**raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = load_settings()
    logger.debug(
        "Settings: backend=%s codec=%s path=%s",
        settings.ledger_backend, settings.payload_codec, settings.ledger_path,
    )
    return settings
