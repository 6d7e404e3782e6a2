"""Altair chart builders for the dashboard pages (no Streamlit imports)."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

import altair as alt
import pandas as pd

from src.constants import COHORT_COLORS, FALLBACK_COLOR
from src.grouping import GroupNode

SELECTION_NAME = "pick"


def nodes_frame(nodes: Sequence[GroupNode]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "name": n.name,
                "short_name": n.short_name,
                "count": n.count,
                "percentage": n.percentage,
                "color": n.color,
                "sla_compliance": n.sla_compliance,
                "avg_score": n.avg_score,
            }
            for n in nodes
        ],
        columns=["name", "short_name", "count", "percentage", "color", "sla_compliance", "avg_score"],
    )


def axis_labels(nodes: Sequence[GroupNode]) -> Dict[str, str]:
    """name -> bar label; short names that collide get a " (2)", " (3)" suffix."""
    out: Dict[str, str] = {}
    seen: Dict[str, int] = {}
    for n in nodes:
        seen[n.short_name] = seen.get(n.short_name, 0) + 1
        count = seen[n.short_name]
        out[n.name] = n.short_name if count == 1 else f"{n.short_name} ({count})"
    return out


def _label_expr(labels: Mapping[str, str]) -> str:
    return f"({json.dumps(dict(labels))})[datum.value] || datum.label"


def group_bar_chart(nodes: Sequence[GroupNode], title: Optional[str] = None, height: int = 280) -> alt.Chart:
    """Horizontal bars, one per node, clickable through the ``pick`` selection."""
    df = nodes_frame(nodes)
    pick = alt.selection_point(name=SELECTION_NAME, fields=["name"])
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("count:Q", title="Records"),
            y=alt.Y(
                "name:N",
                sort=df["name"].tolist(),
                title=None,
                axis=alt.Axis(labelExpr=_label_expr(axis_labels(nodes))),
            ),
            color=alt.Color("color:N", scale=None),
            opacity=alt.condition(pick, alt.value(1.0), alt.value(0.55)),
            tooltip=["name:N", "count:Q", "percentage:Q", "sla_compliance:Q"],
        )
        .add_params(pick)
        .properties(height=height)
    )
    if title:
        chart = chart.properties(title=title)
    return chart


def status_donut(counts: Mapping[str, int], colors: Mapping[str, str]) -> alt.Chart:
    df = pd.DataFrame([{"status": k, "count": v} for k, v in counts.items() if v])
    domain = df["status"].tolist() if not df.empty else []
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=55)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color(
                "status:N",
                scale=alt.Scale(domain=domain, range=[colors.get(s, FALLBACK_COLOR) for s in domain]),
                legend=alt.Legend(title=None, orient="bottom"),
            ),
            tooltip=["status:N", "count:Q"],
        )
        .properties(height=260)
    )


def bands_chart(bands: Mapping[str, int], labels: Mapping[str, str], colors: Sequence[str]) -> alt.Chart:
    df = pd.DataFrame([{"band": labels.get(k, k), "count": v} for k, v in bands.items()])
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("band:N", sort=df["band"].tolist(), title=None),
            y=alt.Y("count:Q", title="Records"),
            color=alt.Color("band:N", scale=alt.Scale(domain=df["band"].tolist(), range=list(colors)), legend=None),
            tooltip=["band:N", "count:Q"],
        )
        .properties(height=220)
    )


def _cohort_scale(labels: Sequence[str]) -> alt.Scale:
    return alt.Scale(domain=list(labels), range=COHORT_COLORS[: len(labels)])


def comparison_series_frame(series: Sequence[Dict[str, Any]], labels: Sequence[str]) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for item in series:
        for idx, label in enumerate(labels, start=1):
            rows.append({"name": item["name"], "cohort": label, "count": item.get(f"value{idx}", 0)})
    return pd.DataFrame(rows, columns=["name", "cohort", "count"])


def grouped_bar_chart(df: pd.DataFrame, labels: Sequence[str], height: int = 260) -> alt.Chart:
    """Side-by-side cohort bars from a long frame with name / cohort / count columns."""
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("name:N", sort=list(dict.fromkeys(df["name"].tolist())), title=None),
            xOffset=alt.XOffset("cohort:N", sort=list(labels)),
            y=alt.Y("count:Q", title="Records"),
            color=alt.Color("cohort:N", scale=_cohort_scale(labels), legend=alt.Legend(title=None, orient="bottom")),
            tooltip=["name:N", "cohort:N", "count:Q"],
        )
        .properties(height=height)
    )


def matrix_frame(matrix: Mapping[str, Any]) -> pd.DataFrame:
    rows = []
    for row in matrix["rows"]:
        for col, cell in row["cells"].items():
            rows.append(
                {
                    "row": row["name"],
                    "col": col,
                    "count": cell["count"],
                    "percentage": cell["percentage"],
                    "sla_rate": cell["sla_rate"],
                }
            )
    return pd.DataFrame(rows, columns=["row", "col", "count", "percentage", "sla_rate"])


def matrix_heatmap(matrix: Mapping[str, Any]) -> alt.Chart:
    df = matrix_frame(matrix)
    base = alt.Chart(df).encode(
        x=alt.X("col:N", sort=list(matrix["columns"]), title=None),
        y=alt.Y("row:N", sort=[r["name"] for r in matrix["rows"]], title=None),
    )
    rects = base.mark_rect().encode(
        color=alt.Color("count:Q", scale=alt.Scale(scheme="blues"), legend=None),
        tooltip=["row:N", "col:N", "count:Q", "percentage:Q", "sla_rate:Q"],
    )
    labels = base.mark_text(fontSize=11).encode(text="count:Q")
    return (rects + labels).properties(height=max(120, 28 * len(matrix["rows"])))
