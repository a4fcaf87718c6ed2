"""
storage/case_store.py

Case records on top of the raw key/value contract.

Key layout
----------
``case_keys``    JSON array of every case id, in submission order.
``case_<id>``    JSON object for one case::

    {"data": ..., "timestamp": ..., "jurisdiction": ..., "crimeType": ...,
     "outcome": ..., "fheAnalysis": ...}

Both are UTF-8 JSON written without whitespace, byte-compatible with the
browser client.

Consistency
-----------
A save is two writes (record, then index) with no atomicity between them
and no locking against other writers.  Two overlapping saves can each read
the same index and the later index write drops the earlier id; the record
itself stays on the ledger but is no longer listed.  ``eval/evaluate.py``
reports such orphans.

Reads are tolerant: ``load_all`` logs and skips anything it cannot read or
decode and never raises.  Writes raise a ``StoreError`` subclass.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError

from storage.contract import ContractGateway, ContractInterface
from storage.crypto import Base64Codec, PayloadCodec
from storage.errors import (
    DecodeError,
    RecordNotFound,
    SigningUnavailable,
    StoreError,
    classify_write_error,
)
from storage.models import PENDING_ANALYSIS, CaseDraft, CaseRecord, is_pending_analysis

logger = logging.getLogger(__name__)

INDEX_KEY = "case_keys"

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN = 7
_INDEX_ADAPTER = TypeAdapter(list[str])


def case_key(case_id: str) -> str:
    return f"case_{case_id}"


def generate_case_id(now: float | None = None) -> str:
    """
    ``<epoch ms>-<7 base-36 chars>``.  Collisions are improbable, not
    impossible.
    """
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LEN))
    return f"{millis}-{suffix}"


# ---------------------------------------------------------------------------
# Wire encoding
# ---------------------------------------------------------------------------


def encode_json(value: Any) -> bytes:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _decode_json(key: str, raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (ValueError, RecursionError) as exc:
        raise DecodeError(key, str(exc) or type(exc).__name__) from exc


def decode_index(raw: bytes) -> list[str]:
    """
    Raises:
        DecodeError: If *raw* is not a UTF-8 JSON array of strings.
    """
    if not raw:
        return []
    value = _decode_json(INDEX_KEY, raw)
    try:
        return _INDEX_ADAPTER.validate_python(value)
    except ValidationError as exc:
        raise DecodeError(INDEX_KEY, "index is not a list of strings") from exc


def decode_record(case_id: str, raw: bytes) -> CaseRecord:
    """
    Raises:
        DecodeError: If *raw* is not a UTF-8 JSON object with a valid record shape.
    """
    key = case_key(case_id)
    value = _decode_json(key, raw)
    if not isinstance(value, dict):
        raise DecodeError(key, "record is not a JSON object")
    try:
        return CaseRecord.from_wire(case_id, value)
    except ValidationError as exc:
        raise DecodeError(key, f"{exc.error_count()} invalid field(s)") from exc


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class CaseStore:
    """
    Load/save API for case records.

    Args:
        gateway: Supplies a fresh read-only or signing contract handle per call.
        codec:   Encodes the draft fields into the record's ``data`` payload.
        clock:   Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        gateway: ContractGateway,
        codec: PayloadCodec | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.gateway = gateway
        self.codec = codec or Base64Codec()
        self.clock = clock

    # -- reads --------------------------------------------------------------

    async def load_all(self) -> list[CaseRecord]:
        """Every decodable case, newest first.  Never raises for ledger errors."""
        contract = await self.gateway.read_only()
        try:
            if not await contract.is_available():
                logger.error("Contract is not available")
                return []
            raw_index = await contract.get_data(INDEX_KEY)
        except Exception:
            logger.exception("Error loading case keys")
            return []

        ids = self._decode_index_or_empty(raw_index)

        cases: list[CaseRecord] = []
        for case_id in ids:
            try:
                raw = await contract.get_data(case_key(case_id))
            except Exception:
                logger.exception("Error loading case %s", case_id)
                continue
            if not raw:
                logger.debug("Case %s listed in index but has no data", case_id)
                continue
            try:
                cases.append(decode_record(case_id, raw))
            except DecodeError as exc:
                logger.error("Error parsing case data for %s: %s", case_id, exc)

        cases.sort(key=lambda c: c.timestamp, reverse=True)
        logger.info("Loaded %d/%d cases", len(cases), len(ids))
        return cases

    # -- writes -------------------------------------------------------------

    async def save(self, draft: CaseDraft) -> CaseRecord:
        """
        Store *draft* as a new case and append its id to the index.

        Raises:
            SigningUnavailable: No wallet account is connected; nothing written.
            UserRejected:       The wallet declined one of the writes.
            RemoteFailure:      Any other ledger failure.
        """
        contract = await self._signer()

        now = self.clock()
        record = CaseRecord(
            id=generate_case_id(now),
            encrypted_data=self.codec.encode(draft.payload_fields()),
            timestamp=int(now),
            jurisdiction=draft.jurisdiction,
            crime_type=draft.crime_type,
            outcome=draft.outcome,
            fhe_analysis=PENDING_ANALYSIS,
        )

        await self._write(contract, case_key(record.id), encode_json(record.to_wire()))

        ids = self._decode_index_or_empty(await self._read(contract, INDEX_KEY))
        ids.append(record.id)
        await self._write(contract, INDEX_KEY, encode_json(ids))

        logger.info("Saved case %s (%s / %s)", record.id, record.jurisdiction, record.crime_type)
        return record

    async def attach_analysis(self, case_id: str, analysis: str) -> None:
        """
        Overwrite the analysis text of an existing case.  The index is untouched
        and every other stored field is written back as read.

        Raises:
            ValueError:         *analysis* would read back as pending; nothing written.
            SigningUnavailable: No wallet account is connected.
            RecordNotFound:     Nothing is stored under *case_id*; nothing written.
            DecodeError:        The stored record is malformed; nothing written.
            UserRejected / RemoteFailure: The write failed.
        """
        if is_pending_analysis(analysis):
            raise ValueError("Analysis text must be non-empty and not pending")

        contract = await self._signer()
        key = case_key(case_id)

        raw = await self._read(contract, key)
        if not raw:
            raise RecordNotFound(case_id)

        stored = _decode_json(key, raw)
        if not isinstance(stored, dict):
            raise DecodeError(key, "record is not a JSON object")

        stored["fheAnalysis"] = analysis
        await self._write(contract, key, encode_json(stored))
        logger.info("Attached analysis to case %s", case_id)

    # -- helpers ------------------------------------------------------------

    async def _signer(self) -> ContractInterface:
        contract = await self.gateway.with_signer()
        if contract is None:
            raise SigningUnavailable()
        return contract

    @staticmethod
    def _decode_index_or_empty(raw: bytes) -> list[str]:
        try:
            return decode_index(raw)
        except DecodeError as exc:
            logger.error("Error parsing case keys: %s", exc)
            return []

    @staticmethod
    async def _read(contract: ContractInterface, key: str) -> bytes:
        try:
            return await contract.get_data(key)
        except StoreError:
            raise
        except Exception as exc:
            raise classify_write_error(exc) from exc

    @staticmethod
    async def _write(contract: ContractInterface, key: str, value: bytes) -> str:
        try:
            return await contract.set_data(key, value)
        except StoreError:
            raise
        except Exception as exc:
            raise classify_write_error(exc) from exc
