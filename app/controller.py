"""
app/controller.py

Orchestrates the user-triggered operations (refresh, submit, analysis,
wallet connect) and turns their outcome into a new ``AppState``.

Every method takes the current state and returns the next one; the only
side effects are the ledger and wallet calls themselves.  Write failures
never escape: they become an error banner that dismisses itself.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.state import AppState, action, reduce
from pipelines.analysis import DEFAULT_DELAY_SECONDS, run_fhe_analysis
from storage.case_store import CaseStore
from storage.errors import StoreError, UserRejected
from storage.wallet import WalletError, WalletProvider, WalletSession

logger = logging.getLogger(__name__)

MSG_CONNECT_FIRST = "Please connect wallet first"
MSG_CONNECT_FAILED = "Failed to connect wallet"
MSG_DRAFT_INCOMPLETE = "Jurisdiction, crime type and outcome are required"
MSG_SUBMIT_PENDING = "Encrypting plea bargaining data with FHE..."
MSG_SUBMIT_OK = "Encrypted plea data submitted securely!"
MSG_REJECTED = "Transaction rejected by user"
MSG_ANALYSIS_PENDING = "Running FHE fairness analysis..."
MSG_ANALYSIS_OK = "FHE analysis completed successfully!"


def _reason(exc: BaseException) -> str:
    return str(exc) or "Unknown error"


class CaseController:
    def __init__(
        self,
        store: CaseStore,
        session: WalletSession,
        analysis_delay: float = DEFAULT_DELAY_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.session = session
        self.analysis_delay = analysis_delay
        self.clock = clock

    def _status(self, state: AppState, status: str, message: str) -> AppState:
        return reduce(state, action("status", status=status, message=message, now=self.clock()))

    # -------------------------
    # Wallet
    # -------------------------
    def sync_account(self, state: AppState) -> AppState:
        """Pick up account changes the wallet pushed since the last render."""
        if state.account != self.session.account:
            return reduce(state, action("account_changed", account=self.session.account))
        return state

    async def connect_wallet(self, state: AppState, provider: WalletProvider) -> AppState:
        try:
            account = await self.session.connect(provider)
        except WalletError:
            logger.exception("Wallet connection failed")
            return self._status(state, "error", MSG_CONNECT_FAILED)
        return reduce(state, action("account_changed", account=account))

    def disconnect_wallet(self, state: AppState) -> AppState:
        self.session.disconnect()
        return reduce(state, action("account_changed", account=""))

    # -------------------------
    # Reads
    # -------------------------
    async def refresh(self, state: AppState) -> AppState:
        state = reduce(state, action("refresh_started"))
        cases = await self.store.load_all()
        return reduce(state, action("refresh_finished", cases=cases))

    # -------------------------
    # Writes
    # -------------------------
    async def submit_case(self, state: AppState) -> AppState:
        if self.session.provider is None:
            return self._status(state, "error", MSG_CONNECT_FIRST)
        if not state.draft.is_complete:
            return self._status(state, "error", MSG_DRAFT_INCOMPLETE)

        state = reduce(state, action("create_started"))
        state = self._status(state, "pending", MSG_SUBMIT_PENDING)
        try:
            await self.store.save(state.draft)
        except UserRejected:
            logger.warning("Case submission rejected in wallet")
            state = self._status(state, "error", MSG_REJECTED)
        except StoreError as exc:
            logger.error("Case submission failed: %s", exc)
            state = self._status(state, "error", f"Submission failed: {_reason(exc)}")
        else:
            state = self._status(state, "success", MSG_SUBMIT_OK)
            state = await self.refresh(state)
            state = reduce(state, action("create_succeeded"))
        return reduce(state, action("create_finished"))

    async def run_analysis(self, state: AppState, case_id: str) -> AppState:
        if self.session.provider is None:
            return self._status(state, "error", MSG_CONNECT_FIRST)

        state = self._status(state, "pending", MSG_ANALYSIS_PENDING)
        try:
            await run_fhe_analysis(self.store, case_id, delay=self.analysis_delay)
        except StoreError as exc:
            logger.error("Analysis for case %s failed: %s", case_id, exc)
            return self._status(state, "error", f"Analysis failed: {_reason(exc)}")

        state = self._status(state, "success", MSG_ANALYSIS_OK)
        return await self.refresh(state)

    def tick(self, state: AppState) -> AppState:
        return reduce(state, action("tick", now=self.clock()))
