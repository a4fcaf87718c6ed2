"""
storage/errors.py

Exception hierarchy for the PleaBargainFHE storage layer.

Read paths (``CaseStore.load_all``) recover from ``DecodeError`` and
``RemoteFailure`` locally.  Write paths raise one of these to the caller,
which reports it as a transient status message.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every error raised by the storage layer."""


class DecodeError(StoreError):
    """Bytes stored at a key could not be decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Malformed data at '{key}': {reason}")
        self.key = key
        self.reason = reason


class SigningUnavailable(StoreError):
    """No wallet account is connected, so no write can be signed."""

    def __init__(self, message: str = "Failed to get contract with signer") -> None:
        super().__init__(message)


class UserRejected(StoreError):
    """The wallet owner declined to sign the transaction."""

    def __init__(self, message: str = "user rejected transaction") -> None:
        super().__init__(message)


class RemoteFailure(StoreError):
    """Any other contract read/write failure."""

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason or "Unknown error")
        self.reason = reason


class RecordNotFound(StoreError):
    """No case record exists under the requested id."""

    def __init__(self, case_id: str) -> None:
        super().__init__("Case not found")
        self.case_id = case_id


_REJECTION_CODES = ("ACTION_REJECTED", 4001)


def classify_write_error(exc: BaseException) -> StoreError:
    """
    Map an arbitrary exception raised while writing to a ``StoreError``.

    Wallets report a declined signature either with a well-known code
    (``ACTION_REJECTED`` / EIP-1193 ``4001``) or only through the message
    text, so both are checked.
    """
    if isinstance(exc, StoreError):
        return exc
    code = getattr(exc, "code", None)
    message = str(exc)
    if code in _REJECTION_CODES or "user rejected" in message.lower():
        return UserRejected(message or "user rejected transaction")
    return RemoteFailure(message)
