"""
app/pages/submit.py

"Add Plea Bargain Case" form.
Jurisdiction, crime type and outcome are required; details are optional
and only ever stored inside the encoded payload.
"""

from __future__ import annotations

import streamlit as st

from app.async_runner import run_async
from app.session import get_controller, get_state, set_state
from app.state import action, reduce
from app.ui import card_close, card_open
from storage.models import CRIME_TYPES, JURISDICTIONS


def _index_of(options: list[str], value: str) -> int:
    return options.index(value) if value in options else 0


def render() -> None:
    state = get_state()
    if not state.show_create_form:
        return

    controller = get_controller()
    draft = state.draft

    card_open("Add Plea Bargain Case", "Details are encoded before they are written to the ledger.")
    with st.form("create_case"):
        jurisdictions = [""] + JURISDICTIONS
        crime_types = [""] + CRIME_TYPES
        jurisdiction = st.selectbox(
            "Jurisdiction *",
            options=jurisdictions,
            index=_index_of(jurisdictions, draft.jurisdiction),
            format_func=lambda v: v or "Select jurisdiction",
        )
        crime_type = st.selectbox(
            "Crime Type *",
            options=crime_types,
            index=_index_of(crime_types, draft.crime_type),
            format_func=lambda v: v or "Select crime type",
        )
        outcome = st.text_input("Outcome *", value=draft.outcome, placeholder="Plea bargain outcome")
        details = st.text_area(
            "Case Details",
            value=draft.details,
            placeholder="Sensitive details are encoded before submission",
            height=110,
        )

        col_cancel, col_submit = st.columns(2)
        with col_cancel:
            cancel = st.form_submit_button("Cancel", use_container_width=True)
        with col_submit:
            submit = st.form_submit_button(
                "Encrypting with FHE..." if state.creating else "Submit Case",
                type="primary",
                disabled=state.creating,
                use_container_width=True,
            )
    card_close()

    if cancel:
        set_state(reduce(state, action("close_create_form")))
        st.rerun()

    if submit:
        state = reduce(
            state,
            action(
                "draft_changed",
                jurisdiction=jurisdiction,
                crime_type=crime_type,
                outcome=outcome,
                details=details,
            ),
        )
        with st.spinner("Encrypting plea bargaining data with FHE..."):
            state = run_async(controller.submit_case(state))
        set_state(state)
        st.rerun()
