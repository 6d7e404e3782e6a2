from __future__ import annotations

from html import escape
from typing import Any, Dict, List, Optional, Sequence

import streamlit as st

from src.charts import SELECTION_NAME
from src.comparison import ComparisonState
from src.constants import DIMENSION_LABELS, PERIOD_LABELS, PERIODS, TABLE_ROW_LIMIT
from src.controller import DashboardController
from src.drilldown import FilterStep
from src.filters import filter_options
from src.schema import Record, RecordSchema, get_schema
from src.settings import Settings, configure_logging, load_settings
from src.storage import Store, load_store
from src import ui

_CONTROLLER_KEY = "_dashboard_controller_{}"
_COMPARISON_KEY = "_dashboard_comparison_{}"
_PERIOD_KEY = "_dashboard_period_{}"
_REINSPECTION_CHOICES = {"Any": None, "Required": True, "Not required": False}


@st.cache_resource(show_spinner=False)
def _settings_cached() -> Settings:
    settings = load_settings()
    configure_logging(settings)
    return settings


@st.cache_resource(show_spinner="Loading records...")
def load_store_cached(schema_name: str, data_dir: str) -> Store:
    return load_store(get_schema(schema_name), data_dir)


def get_settings() -> Settings:
    return _settings_cached()


def get_controller(schema: RecordSchema) -> DashboardController:
    """The page's controller; created once per session and per domain."""
    key = _CONTROLLER_KEY.format(schema.name)
    controller = st.session_state.get(key)
    if controller is None:
        settings = get_settings()
        store = load_store_cached(schema.name, str(settings.data_dir))
        controller = DashboardController(store, schema, settings)
        st.session_state[key] = controller
    return controller


def get_comparison(schema: RecordSchema) -> ComparisonState:
    return st.session_state.get(_COMPARISON_KEY.format(schema.name)) or ComparisonState()


def set_comparison(schema: RecordSchema, state: ComparisonState) -> None:
    st.session_state[_COMPARISON_KEY.format(schema.name)] = state


def dimension_label(dimension: str) -> str:
    return DIMENSION_LABELS.get(dimension, dimension.replace("_", " ").title())


# ---------------------------------------------------------------------------
# Sidebar filters
# ---------------------------------------------------------------------------

def render_period_selector(schema: RecordSchema, default: str) -> str:
    key = _PERIOD_KEY.format(schema.name)
    if key not in st.session_state:
        st.session_state[key] = default if default in PERIODS else "month"
    return st.sidebar.selectbox(
        "Period",
        PERIODS,
        format_func=lambda p: PERIOD_LABELS.get(p, p),
        key=key,
    )


def render_filter_sidebar(controller: DashboardController) -> None:
    schema = controller.schema
    current = controller.filters
    options = filter_options(controller.store, schema)
    with st.sidebar:
        st.subheader("Filters")
        query = st.text_input("Search", value=current.get("search", ""), placeholder="Number, owner, inspector...")
        if query != current.get("search", ""):
            controller.update_filter("search", query)
        for key in [*schema.dimensions, *schema.extra_filter_fields]:
            choices = ["All", *options.get(key, [])]
            raw = current.get(key)
            index = choices.index(raw) if raw in choices else 0
            picked = st.selectbox(dimension_label(key), choices, index=index)
            value = schema.unset if picked == "All" else picked
            if value != raw:
                controller.update_filter(key, value)
        for key in schema.bool_filter_fields:
            labels = list(_REINSPECTION_CHOICES)
            raw = current.get(key)
            index = list(_REINSPECTION_CHOICES.values()).index(raw) if raw in (None, True, False) else 0
            picked = st.radio(dimension_label(key), labels, index=index, horizontal=True)
            if _REINSPECTION_CHOICES[picked] != raw:
                controller.update_filter(key, _REINSPECTION_CHOICES[picked])
        if controller.active_filters and st.button("Clear filters", use_container_width=True):
            controller.reset_filters()
            st.rerun()


def render_active_filters(controller: DashboardController) -> None:
    badges = [
        ui.status_badge(f"{dimension_label(k)}: {v}")
        for k, v in controller.active_filters.items()
    ]
    ui.render_badges(badges)


# ---------------------------------------------------------------------------
# Breadcrumb
# ---------------------------------------------------------------------------

def render_breadcrumb(controller: DashboardController) -> None:
    state = controller.drill_down
    labels = []
    for i, entry in enumerate(state.breadcrumb):
        label = entry.label
        if isinstance(entry, FilterStep):
            label = f"{dimension_label(entry.dimension)}: {entry.value or '(blank)'}"
        css = "db-crumb-current" if i == state.level else ""
        labels.append(f'<span class="{css}">{escape(label)}</span>')
    st.markdown(f'<div class="db-crumbs">{" &rsaquo; ".join(labels)}</div>', unsafe_allow_html=True)
    if state.level == 0:
        return
    c1, c2, _ = st.columns([1, 1, 6])
    with c1:
        if st.button("Back", key=f"{controller.schema.name}_back", use_container_width=True):
            controller.go_back_drill_down()
            _bump_epoch(controller)
            st.rerun()
    with c2:
        if st.button("Reset", key=f"{controller.schema.name}_reset", use_container_width=True):
            controller.reset_drill_down()
            _bump_epoch(controller)
            st.rerun()


def selected_value(event: Any) -> Optional[str]:
    """Bar name picked in a chart rendered with ``on_select="rerun"``, if any."""
    if not event:
        return None
    selection = getattr(event, "selection", None) or {}
    picks = selection.get(SELECTION_NAME) or []
    if not picks:
        return None
    value = picks[0].get("name")
    return None if value is None else str(value)


def records_table(records: Sequence[Record], columns: Sequence[str], limit: int = TABLE_ROW_LIMIT) -> List[Dict[str, Any]]:
    return [{c: r.get(c) for c in columns} for r in list(records)[:limit]]


# ---------------------------------------------------------------------------
# Drill-down actions from widgets
# ---------------------------------------------------------------------------

_EPOCH_KEY = "_dashboard_epoch_{}"


def chart_key(controller: DashboardController, name: str) -> str:
    """Widget key that changes after every drill-down move, so stale chart selections never replay."""
    epoch = st.session_state.get(_EPOCH_KEY.format(controller.schema.name), 0)
    return f"{controller.schema.name}_{name}_{epoch}"


def _bump_epoch(controller: DashboardController) -> None:
    key = _EPOCH_KEY.format(controller.schema.name)
    st.session_state[key] = st.session_state.get(key, 0) + 1


def drill(controller: DashboardController, dimension: str, value: str) -> None:
    controller.navigate_drill_down(dimension, value)
    _bump_epoch(controller)
    st.rerun()


def apply_group_levels(controller: DashboardController, levels: Sequence[str]) -> None:
    controller.set_group_by_levels(levels)
    _bump_epoch(controller)
    st.rerun()
