"""
storage/wallet.py

Wallet provider abstraction and the per-user wallet session.

A provider supplies accounts, notifies account changes through an
``accountsChanged`` event and signs transactions.  ``WalletSession`` is what
the rest of the app talks to: it connects once, subscribes once and keeps
track of the current account.

``DemoWallet`` is an in-process provider used by the Streamlit app and the
tests; it never talks to a network.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from collections import defaultdict
from functools import partial
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

ACCOUNTS_CHANGED = "accountsChanged"

AccountsListener = Callable[[list[str]], None]


class WalletError(Exception):
    """Raised by a provider when a request fails."""

    def __init__(self, message: str, code: str | int | None = None) -> None:
        super().__init__(message)
        self.code = code


class WalletProvider(Protocol):
    async def request_accounts(self) -> list[str]:
        ...

    def on(self, event: str, callback: AccountsListener) -> None:
        ...

    async def sign_transaction(self, account: str, tx: dict[str, Any]) -> str:
        ...


# ---------------------------------------------------------------------------
# Demo provider
# ---------------------------------------------------------------------------


class DemoWallet:
    """
    In-process wallet.

    ``reject_signing`` makes every signature request fail the way a wallet
    reports a user clicking "Reject".
    """

    def __init__(self, accounts: list[str] | None = None, reject_signing: bool = False) -> None:
        self.accounts: list[str] = list(accounts or [])
        self.reject_signing = reject_signing
        self.signed: list[dict[str, Any]] = []
        self._listeners: dict[str, list[AccountsListener]] = defaultdict(list)

    async def request_accounts(self) -> list[str]:
        await asyncio.sleep(0)
        return list(self.accounts)

    def on(self, event: str, callback: AccountsListener) -> None:
        self._listeners[event].append(callback)

    def switch_accounts(self, accounts: list[str]) -> None:
        """Replace the account list and notify subscribers."""
        self.accounts = list(accounts)
        for callback in list(self._listeners[ACCOUNTS_CHANGED]):
            callback(list(self.accounts))

    async def sign_transaction(self, account: str, tx: dict[str, Any]) -> str:
        await asyncio.sleep(0)
        if self.reject_signing:
            raise WalletError("user rejected transaction", code="ACTION_REJECTED")
        if account not in self.accounts:
            raise WalletError(f"unknown account {account}")
        self.signed.append(tx)
        digest = hashlib.sha256(
            json.dumps({"from": account, **tx}, sort_keys=True).encode("utf-8")
        ).hexdigest()
        return "0x" + digest


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class WalletSession:
    """Current wallet connection for one user of the app."""

    def __init__(self) -> None:
        self.provider: WalletProvider | None = None
        self.account: str = ""
        self._subscribed: list[WalletProvider] = []

    @property
    def can_sign(self) -> bool:
        return self.provider is not None and bool(self.account)

    async def connect(self, provider: WalletProvider) -> str:
        """
        Request accounts from *provider* and subscribe to account changes.

        Returns the selected account ("" when the provider exposes none).

        Raises:
            WalletError: If the provider refuses the account request.
        """
        accounts = await provider.request_accounts()
        self.provider = provider
        self.account = accounts[0] if accounts else ""

        if not any(p is provider for p in self._subscribed):
            provider.on(ACCOUNTS_CHANGED, partial(self._on_accounts_changed, provider))
            self._subscribed.append(provider)

        logger.info("Wallet connected: account=%s", self.account or "<none>")
        return self.account

    def disconnect(self) -> None:
        self.account = ""
        self.provider = None
        logger.info("Wallet disconnected")

    def _on_accounts_changed(self, source: WalletProvider, accounts: list[str]) -> None:
        # only the connected provider may move the account
        if self.provider is not source:
            return
        self.account = accounts[0] if accounts else ""
        logger.info("Wallet account changed: %s", self.account or "<none>")

    async def sign(self, key: str, value: bytes) -> str:
        """
        Ask the provider to sign a ``setData(key, value)`` call.

        Raises:
            WalletError: When no account is connected or the provider declines.
        """
        if self.provider is None or not self.account:
            raise WalletError("No wallet account connected")
        tx = {"method": "setData", "key": key, "value": "0x" + value.hex()}
        return await self.provider.sign_transaction(self.account, tx)
