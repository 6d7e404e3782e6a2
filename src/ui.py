from __future__ import annotations

from contextlib import contextmanager
from html import escape
from typing import Iterator, List, Optional

import streamlit as st

_BADGE_CLASS = {
    "info": "db-badge-info",
    "success": "db-badge-success",
    "warning": "db-badge-warning",
    "danger": "db-badge-danger",
}


def _inject_css() -> None:
    st.markdown(
        """
<style>
:root {
  --db-app-bg: #F5F7FA;
  --db-card-bg: #FFFFFF;
  --db-sidebar-bg: #0F172A;
  --db-text-primary: #0F172A;
  --db-text-secondary: #64748B;
  --db-border: #E5E7EB;
  --db-accent: #2563EB;
}

.stApp {
  background: var(--db-app-bg);
  color: var(--db-text-primary);
}

.main .block-container {
  max-width: 100%;
  padding-top: 1rem;
  padding-bottom: 1.25rem;
}

[data-testid="stSidebar"] {
  background: var(--db-sidebar-bg);
}

[data-testid="stSidebar"] * {
  color: #E5E7EB;
}

.db-page-title {
  margin: 0;
  font-size: 1.9rem;
  font-weight: 700;
  color: var(--db-text-primary);
}

.db-page-subtitle {
  margin: 0.3rem 0 0.75rem 0;
  font-size: 0.9rem;
  color: var(--db-text-secondary);
}

.db-divider {
  border-top: 1px solid var(--db-border);
  margin: 0.4rem 0 1rem 0;
}

.db-card-title {
  margin: 0;
  font-size: 1.02rem;
  font-weight: 600;
}

.db-card-help {
  margin: 0.2rem 0 0.7rem 0;
  font-size: 0.85rem;
  color: var(--db-text-secondary);
}

.db-kpi-card {
  border: 1px solid #E2E8F0;
  border-left: 4px solid var(--db-kpi-accent, var(--db-accent));
  border-radius: 8px;
  background: var(--db-card-bg);
  box-shadow: 0 3px 8px rgba(15, 23, 42, 0.05);
  padding: 0.75rem 0.85rem;
  min-height: 86px;
  margin-bottom: 0.6rem;
}

.db-kpi-label {
  font-size: 0.75rem;
  color: #475569;
  letter-spacing: 0.06em;
  text-transform: uppercase;
  font-weight: 600;
}

.db-kpi-value {
  font-size: 1.7rem;
  font-weight: 700;
  color: #1E293B;
}

.db-kpi-caption {
  font-size: 0.78rem;
  color: #64748B;
}

.db-kpi-trend-up { color: #16A34A; }
.db-kpi-trend-down { color: #DC2626; }

[data-testid="stVerticalBlockBorderWrapper"] {
  border-radius: 8px !important;
  background: var(--db-card-bg) !important;
}

.db-crumbs {
  font-size: 0.88rem;
  color: var(--db-text-secondary);
  margin-bottom: 0.4rem;
}

.db-crumbs .db-crumb-current {
  color: var(--db-accent);
  font-weight: 600;
}

.db-badge {
  display: inline-block;
  border-radius: 999px;
  padding: 0.1rem 0.5rem;
  margin-right: 0.3rem;
  font-size: 0.76rem;
  font-weight: 600;
}

.db-badge-info { background: #DBEAFE; color: #1D4ED8; }
.db-badge-success { background: #DCFCE7; color: #166534; }
.db-badge-warning { background: #FEF3C7; color: #92400E; }
.db-badge-danger { background: #FEE2E2; color: #991B1B; }
</style>
        """,
        unsafe_allow_html=True,
    )


def render_page_header(title: str, subtitle: Optional[str] = None) -> None:
    st.markdown(f'<h1 class="db-page-title">{escape(title)}</h1>', unsafe_allow_html=True)
    if subtitle:
        st.markdown(f'<div class="db-page-subtitle">{escape(subtitle)}</div>', unsafe_allow_html=True)
    section_divider()


def _render_sidebar_nav() -> None:
    with st.sidebar:
        st.markdown("### Operations Dashboard")
        st.page_link("Home.py", label="Home")
        st.page_link("pages/01_Permits.py", label="Permits")
        st.page_link("pages/02_Inspections.py", label="Inspections")
        st.divider()


def init_page() -> None:
    _inject_css()
    _render_sidebar_nav()


@contextmanager
def card(title: str, help_text: Optional[str] = None) -> Iterator[None]:
    with st.container(border=True):
        st.markdown(f'<div class="db-card-title">{escape(title)}</div>', unsafe_allow_html=True)
        if help_text:
            st.markdown(f'<div class="db-card-help">{escape(help_text)}</div>', unsafe_allow_html=True)
        yield


def status_badge(label: str, kind: str = "info", help_text: Optional[str] = None) -> str:
    """HTML for one badge; callers join several into a single markdown call."""
    cls = _BADGE_CLASS.get(kind, _BADGE_CLASS["info"])
    tip_attr = f' title="{escape(str(help_text), quote=True)}"' if help_text else ""
    return f'<span class="db-badge {cls}"{tip_attr}>{escape(str(label))}</span>'


def render_badges(badges: List[str]) -> None:
    if badges:
        st.markdown("".join(badges), unsafe_allow_html=True)


def kpi_card(
    label: str,
    value: object,
    caption: Optional[str] = None,
    trend: Optional[int] = None,
    color: Optional[str] = None,
) -> None:
    style = f' style="--db-kpi-accent: {escape(color, quote=True)}"' if color else ""
    parts = [
        f'<div class="db-kpi-card"{style}>',
        f'<div class="db-kpi-label">{escape(str(label))}</div>',
        f'<div class="db-kpi-value">{escape(str(value))}</div>',
    ]
    if trend is not None:
        cls = "db-kpi-trend-up" if trend >= 0 else "db-kpi-trend-down"
        arrow = "&#9650;" if trend >= 0 else "&#9660;"
        parts.append(f'<div class="db-kpi-caption {cls}">{arrow} {abs(int(trend))}% vs previous</div>')
    if caption:
        parts.append(f'<div class="db-kpi-caption">{escape(str(caption))}</div>')
    parts.append("</div>")
    st.markdown("".join(parts), unsafe_allow_html=True)


def section_divider() -> None:
    st.markdown('<div class="db-divider"></div>', unsafe_allow_html=True)
