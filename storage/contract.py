"""
storage/contract.py

Key/value contract interface used by the case store, plus the in-process
ledgers that back it.

The contract only knows three calls::

    is_available() -> bool
    get_data(key)  -> bytes        # b"" for an absent key
    set_data(key, value) -> str    # transaction hash

Handles
-------
``ReadOnlyContract``  reads only; any write raises ``SigningUnavailable``.
``SignedContract``    every write is signed through the ``WalletSession``
                      before it reaches the ledger.

``ContractGateway`` hands out a fresh handle per call; handles are never
pooled.

Ledgers
-------
``InMemoryLedger``  dict-backed, lives for the process.
``JsonFileLedger``  persists to ``data/ledger.json`` (values hex-encoded),
                    atomic writes to reduce corruption risk.

Every ledger call awaits once, so concurrent operations interleave at each
read and write the same way they would against a remote node.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from storage.config import Settings, get_settings
from storage.errors import SigningUnavailable
from storage.wallet import WalletSession

logger = logging.getLogger(__name__)


class ContractInterface(Protocol):
    async def is_available(self) -> bool:
        ...

    async def get_data(self, key: str) -> bytes:
        ...

    async def set_data(self, key: str, value: bytes) -> str:
        ...


def _tx_hash(key: str, value: bytes) -> str:
    return "0x" + hashlib.sha256(key.encode("utf-8") + b"\x00" + value).hexdigest()


# ---------------------------------------------------------------------------
# Ledgers
# ---------------------------------------------------------------------------


class InMemoryLedger:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.entries: dict[str, bytes] = {}
        self.writes: list[str] = []

    async def is_available(self) -> bool:
        await asyncio.sleep(0)
        return self.available

    async def get_data(self, key: str) -> bytes:
        await asyncio.sleep(0)
        return self.entries.get(key, b"")

    async def set_data(self, key: str, value: bytes) -> str:
        await asyncio.sleep(0)
        self.entries[key] = bytes(value)
        self.writes.append(key)
        return _tx_hash(key, value)


def _atomic_write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    tmp.replace(path)


class JsonFileLedger:
    """
    Ledger persisted as ``{"entries": {key: hex_value}}``.

    The file is re-read on every call so several Streamlit sessions share
    one view of the key space.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.available = True
        self._ensure_initialized()

    def _ensure_initialized(self) -> None:
        if self.path.exists():
            return
        _atomic_write_json(self.path, {"entries": {}})
        logger.info("Created ledger file at %s", self.path)

    def load(self) -> dict[str, bytes]:
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        return {k: bytes.fromhex(v) for k, v in raw.get("entries", {}).items()}

    def save(self, entries: dict[str, bytes]) -> None:
        _atomic_write_json(self.path, {"entries": {k: v.hex() for k, v in entries.items()}})

    async def is_available(self) -> bool:
        await asyncio.sleep(0)
        return self.available and self.path.exists()

    async def get_data(self, key: str) -> bytes:
        await asyncio.sleep(0)
        return self.load().get(key, b"")

    async def set_data(self, key: str, value: bytes) -> str:
        await asyncio.sleep(0)
        entries = self.load()
        entries[key] = bytes(value)
        self.save(entries)
        return _tx_hash(key, value)


# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------


class ReadOnlyContract:
    def __init__(self, ledger: ContractInterface) -> None:
        self._ledger = ledger

    async def is_available(self) -> bool:
        return await self._ledger.is_available()

    async def get_data(self, key: str) -> bytes:
        return await self._ledger.get_data(key)

    async def set_data(self, key: str, value: bytes) -> str:
        raise SigningUnavailable("Contract handle is read-only")


class SignedContract(ReadOnlyContract):
    def __init__(self, ledger: ContractInterface, session: WalletSession) -> None:
        super().__init__(ledger)
        self._session = session

    async def set_data(self, key: str, value: bytes) -> str:
        tx_hash = await self._session.sign(key, value)
        await self._ledger.set_data(key, value)
        logger.info("setData %s (%d bytes) tx=%s", key, len(value), tx_hash[:12])
        return tx_hash


class ContractGateway:
    """Source of fresh contract handles for one wallet session."""

    def __init__(self, ledger: ContractInterface, session: WalletSession) -> None:
        self.ledger = ledger
        self.session = session

    async def read_only(self) -> ContractInterface:
        return ReadOnlyContract(self.ledger)

    async def with_signer(self) -> ContractInterface | None:
        if not self.session.can_sign:
            return None
        return SignedContract(self.ledger, self.session)


_LEDGER_SINGLETON: Optional[ContractInterface] = None


def build_ledger(settings: Settings) -> ContractInterface:
    if settings.ledger_backend == "memory":
        return InMemoryLedger()
    return JsonFileLedger(settings.ledger_path)


def get_ledger() -> ContractInterface:
    global _LEDGER_SINGLETON
    if _LEDGER_SINGLETON is None:
        _LEDGER_SINGLETON = build_ledger(get_settings())
    return _LEDGER_SINGLETON
