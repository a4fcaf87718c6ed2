# =========================
# app/ui.py
# =========================
from __future__ import annotations

import html
import streamlit as st

from storage.models import is_pending_analysis


def inject_theme() -> None:
    st.markdown(
        """
<style>
/* ============================================================
   PleaBargainFHE theme
   - Dark slate sidebar
   - Light canvas + white cards
   - Violet accent
   - Analysis pills (pending / completed) and tx banner colours
   ============================================================ */

[data-testid="stSidebarNav"] { display: none !important; }

:root{
  --primary: 232 45% 18%;
  --primary-2: 232 45% 13%;
  --accent: 262 62% 52%;
  --sidebar-text: 230 30% 92%;

  --canvas: #F5F6FA;
  --card: #FFFFFF;
  --border: rgba(15,23,42,0.10);
  --muted: rgba(15,23,42,0.55);
  --text: rgba(15,23,42,0.92);

  --ok: 142 70% 33%;
  --ok-bg: 142 70% 95%;
  --wait: 38 92% 45%;
  --wait-bg: 38 92% 95%;
  --bad: 0 72% 45%;
  --bad-bg: 0 72% 95%;
}

.stApp { background: var(--canvas); }

.stApp, .stMarkdown, .stMarkdown p, .stCaption, .stText, .stAlert, label,
h1, h2, h3, h4, h5, h6, div[data-testid="stMarkdownContainer"] {
  color: var(--text) !important;
}

div.block-container {
  padding-top: 2.2rem;
  padding-bottom: 2.2rem;
}

div[data-testid="stTextInput"] input,
div[data-testid="stTextArea"] textarea {
  background: #FFFFFF !important;
  color: var(--text) !important;
  border: 1px solid var(--border) !important;
  border-radius: 12px !important;
}

/* =========================
   Sidebar
   ========================= */
section[data-testid="stSidebar"]{
  background: hsl(var(--primary-2)) !important;
  border-right: 1px solid rgba(255,255,255,0.07);
}
section[data-testid="stSidebar"] *{
  color: hsl(var(--sidebar-text)) !important;
}
section[data-testid="stSidebar"] hr{
  border-color: rgba(255,255,255,0.10) !important;
}

/* =========================
   Buttons
   ========================= */
.stButton>button{
  border-radius: 12px;
  border: 1px solid rgba(15,23,42,0.14);
}
.stButton>button[kind="primary"]{
  background: hsl(var(--accent)) !important;
  border: 1px solid hsl(var(--accent)) !important;
  color: white !important;
}
.stButton>button[kind="secondary"]{
  background: #FFFFFF !important;
  color: var(--text) !important;
}

/* =========================
   Cards
   ========================= */
.pb-card{
  background: var(--card);
  border: 1px solid var(--border);
  border-radius: 16px;
  padding: 16px 16px;
  margin-bottom: 12px;
}
.pb-title{ font-weight: 800; font-size: 16px; margin-bottom: 2px; color: var(--text); }
.pb-sub{ color: var(--muted); font-size: 13px; margin-bottom: 0px; }

.pb-metric-label{ color: var(--muted); font-size: 13px; margin-bottom: 6px; }
.pb-metric-value{ font-size: 30px; font-weight: 900; color: var(--text); line-height: 1.0; }

.pb-row{ display:flex; justify-content:space-between; gap:12px; padding:4px 0; font-size: 14px; }
.pb-row span:first-child{ color: var(--muted); }

.pb-analysis{
  margin-top: 10px;
  padding: 10px 12px;
  border-radius: 12px;
  background: #F3F0FB;
  font-family: ui-monospace, SFMono-Regular, Menlo, monospace;
  font-size: 13px;
  white-space: pre-wrap;
}

/* =========================
   Pills / badges
   ========================= */
.pb-badge{
  display:inline-block;
  padding: 6px 10px;
  border-radius: 999px;
  font-size: 12px;
  font-weight: 800;
  border: 1px solid rgba(15,23,42,0.08);
}
.pb-ok{ background: hsl(var(--ok-bg)); color: hsl(var(--ok)); }
.pb-wait{ background: hsl(var(--wait-bg)); color: hsl(var(--wait)); }
.pb-bad{ background: hsl(var(--bad-bg)); color: hsl(var(--bad)); }
.pb-neutral{ background:#EEF2F7; color:rgba(15,23,42,0.75); }

.pb-fhe{
  display:inline-block;
  padding: 4px 10px;
  border-radius: 8px;
  font-size: 11px;
  font-weight: 900;
  letter-spacing: 0.08em;
  color: hsl(var(--accent));
  border: 1px solid hsla(var(--accent), 0.45);
}
</style>
        """,
        unsafe_allow_html=True,
    )


def _esc(x: str) -> str:
    """Escape any user/ledger-provided strings before injecting into HTML."""
    return html.escape(str(x or ""), quote=True)


def card_open(title: str, subtitle: str = "") -> None:
    sub = f'<div class="pb-sub">{_esc(subtitle)}</div>' if subtitle else ""
    st.markdown(
        f'<div class="pb-card"><div class="pb-title">{_esc(title)}</div>{sub}',
        unsafe_allow_html=True,
    )


def card_close() -> None:
    st.markdown("</div>", unsafe_allow_html=True)


def analysis_badge(analysis_text: str) -> str:
    if is_pending_analysis(analysis_text):
        return '<span class="pb-badge pb-wait">Pending analysis</span>'
    return '<span class="pb-badge pb-ok">Analysed</span>'


def neutral_badge(text: str) -> str:
    return f'<span class="pb-badge pb-neutral">{_esc(text)}</span>'


def metric_card(label: str, value: str) -> None:
    """Plain-text metric tile (both values are escaped)."""
    st.markdown(
        f"""
<div class="pb-card">
  <div class="pb-metric-label">{_esc(label)}</div>
  <div class="pb-metric-value">{_esc(value)}</div>
</div>
        """,
        unsafe_allow_html=True,
    )


def tx_banner(status: str, message: str) -> None:
    """Transaction status banner (pending / success / error)."""
    if status == "success":
        st.success(f"✓ {message}")
    elif status == "error":
        st.error(f"✗ {message}")
    else:
        st.info(message)
