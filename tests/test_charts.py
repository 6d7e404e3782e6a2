"""
Tests for the chart data frames behind the dashboard pages.
Run with: pytest tests/test_charts.py -v
"""

import altair as alt

from src.charts import (
    axis_labels,
    comparison_series_frame,
    group_bar_chart,
    matrix_frame,
    nodes_frame,
)
from src.grouping import build_group_matrix, build_group_tree
from src.schema import PERMITS


def _permit(**overrides):
    rec = {
        "request_no": "SR-1",
        "service_type": "Sewerage Site Inspection",
        "current_status": "Approved",
        "status": "Closed",
        "owner": "Gulf Engineering",
        "zone": "North",
        "priority": "Medium",
        "remaining_time": "10:00",
        "creation_date": "2025-03-01T08:00:00",
        "updated_date": "2025-03-03T08:00:00",
    }
    rec.update(overrides)
    return rec


RECORDS = [
    _permit(zone="North", priority="High"),
    _permit(zone="North", priority="Low", current_status="Pending"),
    _permit(zone="South", priority="High"),
]


def test_nodes_frame_keeps_tree_order():
    df = nodes_frame(build_group_tree(RECORDS, ["zone"], PERMITS))
    assert df["name"].tolist() == ["North", "South"]
    assert df["count"].tolist() == [2, 1]
    assert df["percentage"].tolist() == [67, 33]


def test_nodes_frame_empty():
    df = nodes_frame([])
    assert df.empty
    assert "count" in df.columns


def test_group_bar_chart_is_selectable():
    chart = group_bar_chart(build_group_tree(RECORDS, ["priority"], PERMITS), title="Priority")
    assert isinstance(chart, alt.Chart)
    vl = chart.to_dict()
    assert vl["params"][0]["name"] == "pick"


def test_long_names_that_share_a_prefix_keep_separate_bars():
    records = [_permit(owner="Gulf Engineering Co North"), _permit(owner="Gulf Engineering Co South")]
    nodes = build_group_tree(records, ["owner"], PERMITS)
    assert nodes[0].short_name == nodes[1].short_name
    assert axis_labels(nodes) == {
        "Gulf Engineering Co North": "Gulf Engineerin...",
        "Gulf Engineering Co South": "Gulf Engineerin... (2)",
    }
    y = group_bar_chart(nodes).to_dict()["encoding"]["y"]
    assert y["field"] == "name"
    assert y["sort"] == ["Gulf Engineering Co North", "Gulf Engineering Co South"]
    assert "Gulf Engineerin... (2)" in y["axis"]["labelExpr"]


def test_comparison_series_frame():
    series = [{"name": "High", "value1": 2, "value2": 1}, {"name": "Low", "value1": 0}]
    df = comparison_series_frame(series, ["North", "South"])
    assert df.to_dict("records") == [
        {"name": "High", "cohort": "North", "count": 2},
        {"name": "High", "cohort": "South", "count": 1},
        {"name": "Low", "cohort": "North", "count": 0},
        {"name": "Low", "cohort": "South", "count": 0},
    ]


def test_matrix_frame():
    matrix = build_group_matrix(RECORDS, "zone", "status", PERMITS)
    df = matrix_frame(matrix)
    assert len(df) == 4
    north_pending = df[(df["row"] == "North") & (df["col"] == "Pending")].iloc[0]
    assert north_pending["count"] == 1
    assert north_pending["percentage"] == 50
