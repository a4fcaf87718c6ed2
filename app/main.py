"""
app/main.py

PleaBargainFHE — Streamlit entry point.
- Wallet connect / disconnect (demo wallet provider)
- Transaction status banner
- Create-case form + case dashboard
- Global theme injection
"""

from __future__ import annotations

import logging
import secrets
import sys
from pathlib import Path

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

from app.async_runner import run_async  # noqa: E402
from app.pages import dashboard, submit  # noqa: E402
from app.session import get_controller, get_demo_wallet, get_state, init_session, set_state  # noqa: E402
from app.state import action, reduce  # noqa: E402
from app.ui import inject_theme, tx_banner  # noqa: E402

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="PleaBargainFHE",
    page_icon="⚖️",
    layout="wide",
    initial_sidebar_state="expanded",
)

init_session()
inject_theme()

controller = get_controller()
state = controller.tick(controller.sync_account(get_state()))

if state.loading:
    with st.spinner("Initializing FHE connection..."):
        state = run_async(controller.refresh(state))
set_state(state)

# ---------------------------------------------------------------------------
# Sidebar: wallet
# ---------------------------------------------------------------------------
st.sidebar.title("⚖️ PleaBargainFHE")
st.sidebar.markdown("Confidential Analysis of Judicial Plea Bargaining Data")
st.sidebar.markdown('<span class="pb-fhe">FHE SECURED</span>', unsafe_allow_html=True)
st.sidebar.divider()

if state.account:
    st.sidebar.success(f"Connected\n\n`{state.account[:6]}...{state.account[-4:]}`")
    if st.sidebar.button("Disconnect"):
        set_state(controller.disconnect_wallet(state))
        st.rerun()
    if st.sidebar.button("Switch demo account"):
        # Goes through the wallet's accountsChanged notification, not the state.
        wallet = get_demo_wallet()
        wallet.switch_accounts(["0x" + secrets.token_hex(20)] + wallet.accounts)
        st.rerun()
else:
    st.sidebar.info("Wallet not connected")
    if st.sidebar.button("Connect Wallet", type="primary"):
        set_state(run_async(controller.connect_wallet(state, get_demo_wallet())))
        st.rerun()

st.sidebar.divider()
if st.sidebar.button("Add Case Data", type="primary", use_container_width=True):
    set_state(reduce(get_state(), action("open_create_form")))
    st.rerun()

st.sidebar.caption(
    "Demo warning: case details are encoded, not encrypted, unless the "
    "Fernet payload codec is configured."
)

# ---------------------------------------------------------------------------
# Main column
# ---------------------------------------------------------------------------
state = get_state()
if state.tx.visible:
    tx_banner(state.tx.status, state.tx.message)

submit.render()
dashboard.render()
