# app/renderers.py
from __future__ import annotations

from datetime import datetime

import streamlit as st

from app.ui import _esc, analysis_badge, neutral_badge
from storage.models import AnalysisState, CaseRecord


def _fmt_date(ts: int) -> str:
    try:
        return datetime.fromtimestamp(ts).strftime("%d %b %Y")
    except (OverflowError, OSError, ValueError):
        return "—"


def render_case_card(case: CaseRecord, expanded: bool) -> tuple[bool, bool]:
    """
    Render one case card.

    Returns ``(toggle_clicked, run_analysis_clicked)``.  The run button is
    only offered while the analysis is still pending.
    """
    st.markdown(
        f"""
<div class="pb-card">
  <div style="display:flex; justify-content:space-between; gap:10px; align-items:flex-start;">
    <div class="pb-title">Case #{_esc(case.short_id)}</div>
    <div>{neutral_badge(case.jurisdiction)} {analysis_badge(case.fhe_analysis)}</div>
  </div>
  <div class="pb-row"><span>Crime Type:</span><span>{_esc(case.crime_type)}</span></div>
  <div class="pb-row"><span>Outcome:</span><span>{_esc(case.outcome)}</span></div>
  <div class="pb-row"><span>Date:</span><span>{_fmt_date(case.timestamp)}</span></div>
  {f'<div class="pb-analysis">{_esc(case.fhe_analysis)}</div>' if expanded else ""}
</div>
        """,
        unsafe_allow_html=True,
    )

    col1, col2 = st.columns(2, gap="small")
    with col1:
        toggle = st.button(
            "Hide Analysis" if expanded else "View Analysis",
            key=f"toggle_{case.id}",
            use_container_width=True,
        )
    run = False
    if case.analysis_state == AnalysisState.pending:
        with col2:
            run = st.button(
                "Run FHE Analysis",
                key=f"analyse_{case.id}",
                type="primary",
                use_container_width=True,
            )
    return toggle, run
