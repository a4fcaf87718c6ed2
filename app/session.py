"""
app/session.py

Per-browser-session wiring: one ``WalletSession``, one ``CaseController``
and the current ``AppState``, all kept in ``st.session_state``.
"""

from __future__ import annotations

import streamlit as st

from app.controller import CaseController
from app.state import AppState
from storage.case_store import CaseStore
from storage.config import get_settings
from storage.contract import ContractGateway, get_ledger
from storage.crypto import get_codec
from storage.wallet import DemoWallet, WalletSession


def _build_controller() -> CaseController:
    settings = get_settings()
    session = WalletSession()
    gateway = ContractGateway(get_ledger(), session)
    store = CaseStore(gateway, codec=get_codec(settings.payload_codec))
    return CaseController(store, session, analysis_delay=settings.analysis_delay)


def init_session() -> None:
    if "controller" not in st.session_state:
        st.session_state["controller"] = _build_controller()
    if "app_state" not in st.session_state:
        st.session_state["app_state"] = AppState()
    if "demo_wallet" not in st.session_state:
        st.session_state["demo_wallet"] = DemoWallet(accounts=[get_settings().demo_account])


def get_controller() -> CaseController:
    return st.session_state["controller"]


def get_state() -> AppState:
    return st.session_state["app_state"]


def set_state(state: AppState) -> None:
    st.session_state["app_state"] = state


def get_demo_wallet() -> DemoWallet:
    return st.session_state["demo_wallet"]
