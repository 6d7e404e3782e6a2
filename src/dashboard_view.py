"""Page body shared by the Permits and Inspections pages."""
from __future__ import annotations

from typing import Any, Dict, Sequence

import pandas as pd
import streamlit as st

from src import charts, ui
from src.comparison import (
    add_cohort,
    build_cohorts,
    build_pivot,
    comparison_chart_data,
    comparison_options,
    group_by_options,
    pivot_frame,
    refresh_cohorts,
    remove_cohort,
    replace_cohort,
    set_compare_by,
    set_group_by,
)
from src.constants import (
    COMPARE_NONE,
    INSPECTION_TABLE_COLUMNS,
    MAX_COHORTS,
    MAX_GROUP_LEVELS,
    MIN_COHORTS,
    PERMIT_TABLE_COLUMNS,
    PERIOD_LABELS,
)
from src.controller import DashboardController
from src.drilldown import group_marker
from src.grouping import build_group_matrix, sort_nodes, tree_frame
from src.metrics import (
    backlog_aging,
    calculate_metrics,
    dimension_breakdown,
    filter_by_period,
    period_trends,
    previous_period_metrics,
    score_bands,
    sla_risk_bands,
)
from src.schema import PERMITS, Record, RecordSchema
from src.ui_helpers import (
    apply_group_levels,
    chart_key,
    dimension_label,
    drill,
    get_comparison,
    get_controller,
    get_settings,
    records_table,
    render_active_filters,
    render_breadcrumb,
    render_filter_sidebar,
    render_period_selector,
    selected_value,
    set_comparison,
)

_SORTS = {"count": "Most records", "name": "Name", "sla": "SLA compliance"}


def _kpis(schema: RecordSchema, m: Dict[str, Any], trends: Dict[str, int], sla_target: int) -> None:
    sla_color = "#16A34A" if m["sla_compliance"] >= sla_target else "#DC2626"
    cols = st.columns(6)
    if schema is PERMITS:
        cards = [
            ("Total Permits", m["total"], None, trends["volume"], None),
            ("Opened", m["opened"], None, None, "#F59E0B"),
            ("Closed", m["closed"], None, None, "#22C55E"),
            ("SLA Compliance", f"{m['sla_compliance']}%", f"Target {sla_target}%", trends["sla"], sla_color),
            ("Completion Rate", f"{m['completion_rate']}%", None, trends["rate"], None),
            ("Avg Processing", f"{m['avg_processing_days']} d", f"{m['breached']} breached", None, None),
        ]
    else:
        cards = [
            ("Total Inspections", m["total"], None, trends["volume"], None),
            ("Completed", m["completed"], None, None, "#22C55E"),
            ("Pending", m["pending"], f"{m['scheduled']} scheduled", None, "#F59E0B"),
            ("Pass Rate", f"{m['pass_rate']}%", f"{m['failed']} failed", trends["rate"], None),
            ("Avg Score", m["avg_score"], None, None, None),
            ("SLA Compliance", f"{m['sla_compliance']}%", f"Target {sla_target}%", trends["sla"], sla_color),
        ]
    for col, (label, value, caption, trend, color) in zip(cols, cards):
        with col:
            ui.kpi_card(label, value, caption=caption, trend=trend, color=color)


def _dimension_chart(controller: DashboardController, records: Sequence[Record], dimension: str) -> None:
    nodes = controller.group_tree([dimension]) if records else []
    if not nodes:
        st.caption("No data")
        return
    event = st.altair_chart(
        charts.group_bar_chart(nodes),
        use_container_width=True,
        on_select="rerun",
        key=chart_key(controller, f"bars_{dimension}"),
    )
    picked = selected_value(event)
    if picked is not None:
        drill(controller, dimension, picked)


def _render_overview(controller: DashboardController, records: Sequence[Record]) -> None:
    schema = controller.schema
    with ui.card("Group by", "Pick up to three dimensions to build a nested breakdown."):
        levels = st.multiselect(
            "Levels",
            schema.dimensions,
            format_func=dimension_label,
            max_selections=MAX_GROUP_LEVELS,
            key=chart_key(controller, "levels"),
            label_visibility="collapsed",
        )
        if st.button("Apply grouping", disabled=not levels, key=chart_key(controller, "apply_levels")):
            apply_group_levels(controller, levels)

    dims = list(schema.dimensions)
    for start in range(0, len(dims), 2):
        cols = st.columns(2)
        for col, dim in zip(cols, dims[start:start + 2]):
            with col:
                with ui.card(f"By {dimension_label(dim)}", "Click a bar to drill down."):
                    _dimension_chart(controller, records, dim)
                    if st.button("Full breakdown", key=chart_key(controller, f"group_{dim}")):
                        drill(controller, dim, group_marker(dim))


def _render_group_view(controller: DashboardController, records: Sequence[Record]) -> None:
    schema = controller.schema
    state = controller.drill_down
    levels = controller.group_levels()
    top = levels[0]

    c1, c2 = st.columns([3, 1])
    with c2:
        sort_by = st.selectbox("Sort", list(_SORTS), format_func=_SORTS.get, key=f"{schema.name}_sort")
    with c1:
        remaining = state.available_dimensions(schema)
        if len(levels) < MAX_GROUP_LEVELS and remaining:
            nxt = st.selectbox(
                "Add level",
                ["", *remaining],
                format_func=lambda d: dimension_label(d) if d else "Add a breakdown level...",
                key=chart_key(controller, "next_level"),
            )
            if nxt:
                apply_group_levels(controller, [*levels, nxt])

    nodes = sort_nodes(controller.group_tree(), sort_by)
    with ui.card(" > ".join(dimension_label(d) for d in levels), "Click a bar to drill into that value."):
        if not nodes:
            st.info("No records match the current filters.")
            return
        event = st.altair_chart(
            charts.group_bar_chart(nodes),
            use_container_width=True,
            on_select="rerun",
            key=chart_key(controller, "group_bars"),
        )
        picked = selected_value(event)
        if picked is not None:
            drill(controller, top, picked)

    with ui.card("Group tree"):
        st.dataframe(tree_frame(nodes), use_container_width=True, hide_index=True)

    col_dim = levels[1] if len(levels) > 1 else "status"
    if col_dim != top:
        matrix = build_group_matrix(records, top, col_dim, schema)
        with ui.card(f"{dimension_label(top)} x {dimension_label(col_dim)}", "Cell colour is the record count."):
            st.altair_chart(charts.matrix_heatmap(matrix), use_container_width=True)


def _render_detail(controller: DashboardController, records: Sequence[Record]) -> None:
    schema = controller.schema
    state = controller.drill_down
    c1, c2 = st.columns([1, 2])
    with c1:
        with ui.card("Status mix"):
            counts = {}
            for r in records:
                key = schema.value(r, "status")
                counts[key] = counts.get(key, 0) + 1
            if counts:
                st.altair_chart(charts.status_donut(counts, schema.status_colors), use_container_width=True)
            else:
                st.caption("No data")
    with c2:
        remaining = [d for d in schema.dimensions if d != state.type]
        dim = st.selectbox("Break down by", remaining, format_func=dimension_label, key=f"{schema.name}_detail_dim")
        with ui.card(f"By {dimension_label(dim)}", "Click a bar to drill further."):
            _dimension_chart(controller, records, dim)

    columns = PERMIT_TABLE_COLUMNS if schema is PERMITS else INSPECTION_TABLE_COLUMNS
    with ui.card(f"{schema.label} ({len(records)})"):
        st.dataframe(pd.DataFrame(records_table(records, columns), columns=columns), use_container_width=True, hide_index=True)


def _render_insights(schema: RecordSchema, records: Sequence[Record]) -> None:
    if schema is PERMITS:
        c1, c2 = st.columns(2)
        with c1, ui.card("SLA risk", "Open and closed permits by remaining SLA time."):
            st.altair_chart(
                charts.bands_chart(
                    sla_risk_bands(records),
                    {"critical": "Breached", "at_risk": "Under 24h", "on_track": "On track"},
                    ["#EF4444", "#F59E0B", "#22C55E"],
                ),
                use_container_width=True,
            )
        with c2, ui.card("Backlog aging", "Open permits by days since creation."):
            st.altair_chart(
                charts.bands_chart(
                    backlog_aging(records),
                    {"less_than_3_days": "< 3 days", "three_to_7_days": "3-7 days", "more_than_7_days": "> 7 days"},
                    ["#22C55E", "#F59E0B", "#EF4444"],
                ),
                use_container_width=True,
            )
        people = "owner"
    else:
        with ui.card("Compliance scores", "Scored inspections only."):
            st.altair_chart(
                charts.bands_chart(
                    score_bands(records),
                    {"excellent": "Excellent (90+)", "good": "Good (70-89)", "poor": "Poor (<70)"},
                    ["#22C55E", "#F59E0B", "#EF4444"],
                ),
                use_container_width=True,
            )
        people = "inspector"

    for dim in ("zone", people):
        stats = dimension_breakdown(records, dim, schema)
        df = pd.DataFrame.from_dict(stats, orient="index").rename_axis(dimension_label(dim)).reset_index()
        with ui.card(f"Performance by {dimension_label(dim)}"):
            st.dataframe(df, use_container_width=True, hide_index=True)


def _metric_rows(cohorts: Sequence[Any], schema: RecordSchema) -> pd.DataFrame:
    keys = ["total", "sla_compliance", "breached"]
    keys += ["completion_rate", "avg_processing_days"] if schema is PERMITS else ["pass_rate", "avg_score"]
    data = {c.label: [c.metrics[k] for k in keys] for c in cohorts}
    return pd.DataFrame(data, index=[k.replace("_", " ").title() for k in keys])


def _render_comparison(schema: RecordSchema, period_records: Sequence[Record], all_records: Sequence[Record]) -> None:
    state = get_comparison(schema)
    options = comparison_options(period_records, all_records, schema)

    c1, c2 = st.columns(2)
    choices = [COMPARE_NONE, *schema.compare_dimensions]
    compare_by = c1.selectbox(
        "Compare by",
        choices,
        index=choices.index(state.compare_by),
        format_func=lambda d: "No comparison" if d == COMPARE_NONE else dimension_label(d),
        key=f"{schema.name}_compare_by",
    )
    if compare_by != state.compare_by:
        state = set_compare_by(state, compare_by, options, schema)
    state = refresh_cohorts(state, options, schema)
    if state.compare_by == COMPARE_NONE:
        set_comparison(schema, state)
        st.caption("Pick a dimension to compare two or three of its values side by side.")
        return

    group_choices = [COMPARE_NONE, *group_by_options(state, schema)]
    group_by = c2.selectbox(
        "Break down by",
        group_choices,
        index=group_choices.index(state.group_by) if state.group_by in group_choices else 0,
        format_func=lambda d: "No breakdown" if d == COMPARE_NONE else dimension_label(d),
        key=f"{schema.name}_compare_group_{state.compare_by}",
    )
    if group_by != state.group_by:
        state = set_group_by(state, group_by, schema)

    available = options.get(state.compare_by, [])
    cols = st.columns(MAX_COHORTS + 1)
    for i, value in enumerate(state.values):
        with cols[i]:
            picked = st.selectbox(
                f"Cohort {i + 1}",
                available,
                index=available.index(value) if value in available else 0,
                key=f"{schema.name}_cohort_{i}_{value}",
            )
            if picked != value:
                state = replace_cohort(state, i, picked)
            if len(state.values) > MIN_COHORTS and st.button("Remove", key=f"{schema.name}_rm_{i}_{value}"):
                state = remove_cohort(state, i)
    with cols[-1]:
        if len(state.values) < MAX_COHORTS and st.button("Add cohort", key=f"{schema.name}_add_cohort"):
            state = add_cohort(state, options)
    set_comparison(schema, state)

    cohorts = build_cohorts(state, period_records, all_records, schema)
    if not cohorts:
        st.info(f"At least {MIN_COHORTS} distinct values are needed to compare by {dimension_label(state.compare_by)}.")
        return
    labels = [c.label for c in cohorts]

    st.dataframe(_metric_rows(cohorts, schema), use_container_width=True)
    series = comparison_chart_data(cohorts, schema)
    chart_cols = st.columns(3)
    for col, (name, title) in zip(chart_cols, [("status", "Status"), ("priority", "Priority"), ("sla", "SLA")]):
        with col, ui.card(title):
            df = charts.comparison_series_frame(series[name], labels)
            st.altair_chart(charts.grouped_bar_chart(df, labels, height=220), use_container_width=True)

    if state.group_by != COMPARE_NONE:
        rows = build_pivot(cohorts, state.group_by, schema)
        with ui.card(f"{dimension_label(state.compare_by)} by {dimension_label(state.group_by)}"):
            if not rows:
                st.caption("No data")
            else:
                st.altair_chart(charts.grouped_bar_chart(pivot_frame(rows, cohorts), labels), use_container_width=True)
                st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def render_dashboard(schema: RecordSchema, subtitle: str) -> None:
    settings = get_settings()
    ui.init_page()
    controller = get_controller(schema)
    period = render_period_selector(schema, settings.default_period)
    render_filter_sidebar(controller)

    ui.render_page_header(schema.label, subtitle=subtitle)
    if not controller.store:
        st.info(
            f"No {schema.name} loaded. Generate demo data with "
            "`python -m scripts.generate_demo_data` or set DASHBOARD_DATA_DIR."
        )
        st.stop()

    render_active_filters(controller)
    render_breadcrumb(controller)

    records = controller.get_filtered_by_drill_down()
    period_records = filter_by_period(records, period, schema)
    current = calculate_metrics(period_records, schema)
    trends = period_trends(current, previous_period_metrics(records, period, schema), schema)
    st.caption(f"{PERIOD_LABELS.get(period, period)}: {len(period_records)} of {len(records)} records")
    _kpis(schema, current, trends, settings.sla_target)

    tab_view, tab_insights, tab_compare = st.tabs(["Drill-down", "Executive", "Compare"])
    with tab_view:
        kind = controller.drill_down.view_kind
        if kind == "overview":
            _render_overview(controller, records)
        elif kind == "group":
            _render_group_view(controller, records)
        else:
            _render_detail(controller, records)
    with tab_insights:
        _render_insights(schema, period_records)
    with tab_compare:
        _render_comparison(schema, period_records, records)
