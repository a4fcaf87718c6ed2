"""
app/pages/dashboard.py

Case dashboard
- Statistics: total cases, jurisdictions, crime types, completed analyses
- Search + jurisdiction filter + refresh
- Case cards with analysis toggle and "Run FHE Analysis" for pending cases
"""

from __future__ import annotations

import streamlit as st

from app.async_runner import run_async
from app.renderers import render_case_card
from app.session import get_controller, get_state, set_state
from app.state import action, reduce
from app.ui import card_close, card_open, inject_theme, metric_card
from pipelines.stats import ALL_JURISDICTIONS, compute_stats, filter_cases
from storage.models import JURISDICTIONS


def _render_stats(cases) -> None:
    stats = compute_stats(cases)
    c1, c2, c3, c4 = st.columns(4, gap="medium")
    with c1:
        metric_card("Total Cases", str(stats.total))
    with c2:
        metric_card("Jurisdictions", str(stats.jurisdictions))
    with c3:
        metric_card("Crime Types", str(stats.crime_types))
    with c4:
        metric_card("FHE Analyses", str(stats.analyses_completed))


def render() -> None:
    inject_theme()
    st.title("Plea Bargain Cases")
    st.caption("Confidential Analysis of Judicial Plea Bargaining Data")

    controller = get_controller()
    state = get_state()

    _render_stats(state.cases)
    st.divider()

    # -------------------------------------------------------------------------
    # Search / filter
    # -------------------------------------------------------------------------
    options = [ALL_JURISDICTIONS] + JURISDICTIONS
    col_search, col_select, col_refresh = st.columns([2, 1.2, 0.8], gap="small")
    with col_search:
        search = st.text_input("Search cases...", value=state.search_term)
    with col_select:
        picked = st.selectbox(
            "Jurisdiction",
            options=options,
            index=options.index(state.selected_jurisdiction),
            format_func=lambda j: "All Jurisdictions" if j == ALL_JURISDICTIONS else j,
        )
    with col_refresh:
        st.markdown("<div style='height:28px'></div>", unsafe_allow_html=True)
        refresh = st.button(
            "Refreshing..." if state.is_refreshing else "Refresh Data",
            disabled=state.is_refreshing,
            use_container_width=True,
        )

    if search != state.search_term:
        state = reduce(state, action("search_changed", search_term=search))
    if picked != state.selected_jurisdiction:
        state = reduce(state, action("jurisdiction_selected", jurisdiction=picked))
    set_state(state)

    if refresh:
        set_state(run_async(controller.refresh(state)))
        st.rerun()

    # -------------------------------------------------------------------------
    # Cases
    # -------------------------------------------------------------------------
    visible = filter_cases(state.cases, state.search_term, state.selected_jurisdiction)
    if not visible:
        card_open("No plea bargain cases found")
        if st.button("Add First Case", type="primary"):
            set_state(reduce(state, action("open_create_form")))
            st.rerun()
        card_close()
        return

    grid = st.columns(2, gap="large")
    for i, case in enumerate(visible):
        with grid[i % 2]:
            toggle, run = render_case_card(case, expanded=state.expanded_case_id == case.id)
        if toggle:
            set_state(reduce(state, action("analysis_toggled", case_id=case.id)))
            st.rerun()
        if run:
            with st.spinner("Running FHE fairness analysis..."):
                set_state(run_async(controller.run_analysis(state, case.id)))
            st.rerun()
