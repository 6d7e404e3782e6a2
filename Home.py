import streamlit as st

from src import ui
from src.metrics import calculate_metrics, kpi_summary
from src.schema import INSPECTIONS, PERMITS
from src.ui_helpers import get_settings, load_store_cached

st.set_page_config(page_title="Operations Dashboard", layout="wide")
ui.init_page()

ui.render_page_header(
    "Operations Dashboard",
    subtitle="Permits and inspections at a glance. Open a page on the left to filter, drill down and compare.",
)

settings = get_settings()
permits = load_store_cached(PERMITS.name, str(settings.data_dir))
inspections = load_store_cached(INSPECTIONS.name, str(settings.data_dir))

if not permits and not inspections:
    st.info(
        "No records found. Run `python -m scripts.generate_demo_data` to write demo data, "
        "or point DASHBOARD_DATA_DIR at a folder holding permits.jsonl and inspections.jsonl."
    )
    st.stop()

# ---------------------------------------------------------------------------
# Permits
# ---------------------------------------------------------------------------

pm = calculate_metrics(permits, PERMITS)
with ui.card("Permits", f"{len(permits)} requests loaded"):
    k1, k2, k3, k4 = st.columns(4)
    with k1:
        ui.kpi_card("Opened", pm["opened"], caption=f"{pm['high_priority']} high priority")
    with k2:
        ui.kpi_card("Closed", pm["closed"], caption=f"{pm['completion_rate']}% completion")
    with k3:
        ok = pm["sla_compliance"] >= settings.sla_target
        ui.kpi_card(
            "SLA Compliance",
            f"{pm['sla_compliance']}%",
            caption=f"Target {settings.sla_target}%",
            color="#16A34A" if ok else "#DC2626",
        )
    with k4:
        ui.kpi_card("Avg Processing", f"{pm['avg_processing_days']} days")
    by_status = kpi_summary(permits, PERMITS)["by_current_status"]
    ui.render_badges([ui.status_badge(f"{k}: {v}") for k, v in sorted(by_status.items(), key=lambda kv: -kv[1])])

# ---------------------------------------------------------------------------
# Inspections
# ---------------------------------------------------------------------------

im = calculate_metrics(inspections, INSPECTIONS)
with ui.card("Inspections", f"{len(inspections)} inspections loaded"):
    k1, k2, k3, k4 = st.columns(4)
    with k1:
        ui.kpi_card("Completed", im["completed"], caption=f"{im['failed']} failed")
    with k2:
        ui.kpi_card("Pass Rate", f"{im['pass_rate']}%")
    with k3:
        ui.kpi_card("Avg Compliance Score", im["avg_score"])
    with k4:
        ok = im["sla_compliance"] >= settings.sla_target
        ui.kpi_card(
            "SLA Compliance",
            f"{im['sla_compliance']}%",
            caption=f"{im['reinspections']} need reinspection",
            color="#16A34A" if ok else "#DC2626",
        )

with ui.card("How it works"):
    cols = st.columns(3)
    _STEPS = [
        ("Filter", "Narrow the records from the sidebar: dimensions, search and period."),
        ("Drill down", "Click any bar to filter by it. The breadcrumb keeps the trail; Back undoes one step."),
        ("Group and compare", "Nest up to three group-by levels, or compare two to three cohorts side by side."),
    ]
    for col, (step, desc) in zip(cols, _STEPS):
        with col:
            st.markdown(f"**{step}**")
            st.caption(desc)
