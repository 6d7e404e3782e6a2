"""Comparison Pivot Builder: 2-3 side-by-side cohorts of one dimension, optionally
broken down by a second dimension into a pivot table (rows = group values,
columns = cohorts).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from src.constants import (
    COMPARE_NONE,
    MAX_COHORTS,
    MIN_COHORTS,
    MONTH_OPTIONS_LIMIT,
    PERMIT_LIFECYCLE,
    PRIORITY_ORDER,
    SERVICE_TYPE_SHORT_NAMES,
)
from src.metrics import calculate_metrics, sla_compliance, average_score
from src.schema import PERMITS, Record, RecordSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonState:
    compare_by: str = COMPARE_NONE
    values: Tuple[str, ...] = ()
    group_by: str = COMPARE_NONE


@dataclass(frozen=True)
class Cohort:
    label: str
    records: List[Record]
    metrics: Dict[str, Any]


def cohort_value(rec: Record, dimension: str, schema: RecordSchema) -> str:
    # Service types are compared on their short display names.
    value = schema.value(rec, dimension)
    if dimension == "service_type":
        return SERVICE_TYPE_SHORT_NAMES.get(value, value)
    return value


def _check_compare_by(compare_by: str, schema: RecordSchema) -> str:
    if compare_by != COMPARE_NONE and compare_by not in schema.compare_dimensions:
        raise ValueError(
            f"Unknown {schema.name} comparison dimension: {compare_by!r}. "
            f"Expected one of {[COMPARE_NONE, *schema.compare_dimensions]}"
        )
    return compare_by


def comparison_options(
    period_records: Sequence[Record],
    all_records: Sequence[Record],
    schema: RecordSchema,
) -> Dict[str, List[str]]:
    """Selectable cohort values per comparison dimension.

    Months come from ``all_records`` (every period, first six labels in
    first-seen order); every other dimension comes from the period subset.
    """
    options: Dict[str, List[str]] = {}
    for dim in schema.compare_dimensions:
        if dim == "month":
            months = [cohort_value(r, dim, schema) for r in all_records]
            options[dim] = [m for m in dict.fromkeys(months) if m][:MONTH_OPTIONS_LIMIT]
        else:
            options[dim] = sorted({cohort_value(r, dim, schema) for r in period_records} - {""})
    return options


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------

def set_compare_by(
    state: ComparisonState,
    compare_by: str,
    options: Mapping[str, Sequence[str]],
    schema: RecordSchema,
) -> ComparisonState:
    """Switch the comparison axis; cohorts reset to the first two options of the new axis."""
    _check_compare_by(compare_by, schema)
    group_by = COMPARE_NONE if state.group_by == compare_by else state.group_by
    if compare_by == COMPARE_NONE:
        return ComparisonState(group_by=group_by)
    available = list(options.get(compare_by, []))
    values = tuple(available[:MIN_COHORTS]) if len(available) >= MIN_COHORTS else ()
    logger.debug("compare by %s with cohorts %s", compare_by, values)
    return ComparisonState(compare_by=compare_by, values=values, group_by=group_by)


def add_cohort(state: ComparisonState, options: Mapping[str, Sequence[str]]) -> ComparisonState:
    if state.compare_by == COMPARE_NONE or len(state.values) >= MAX_COHORTS:
        return state
    for option in options.get(state.compare_by, []):
        if option not in state.values:
            return replace(state, values=state.values + (option,))
    return state


def remove_cohort(state: ComparisonState, index: int) -> ComparisonState:
    if len(state.values) <= MIN_COHORTS or not 0 <= index < len(state.values):
        return state
    return replace(state, values=state.values[:index] + state.values[index + 1:])


def replace_cohort(state: ComparisonState, index: int, value: str) -> ComparisonState:
    """Swap the value of one cohort slot; duplicates are ignored."""
    if not 0 <= index < len(state.values) or value in state.values:
        return state
    values = list(state.values)
    values[index] = value
    return replace(state, values=tuple(values))


def refresh_cohorts(
    state: ComparisonState,
    options: Mapping[str, Sequence[str]],
    schema: RecordSchema,
) -> ComparisonState:
    """Re-seed the cohorts when a selected value is no longer offered (e.g. after a period change)."""
    if state.compare_by == COMPARE_NONE:
        return state
    available = set(options.get(state.compare_by, []))
    if len(state.values) >= MIN_COHORTS and all(v in available for v in state.values):
        return state
    logger.debug("cohorts %s stale for %s, re-seeding", state.values, state.compare_by)
    return set_compare_by(state, state.compare_by, options, schema)


def group_by_options(state: ComparisonState, schema: RecordSchema) -> List[str]:
    return [d for d in schema.dimensions if d != state.compare_by]


def set_group_by(state: ComparisonState, group_by: str, schema: RecordSchema) -> ComparisonState:
    if group_by == COMPARE_NONE:
        return replace(state, group_by=COMPARE_NONE)
    schema.require_dimension(group_by)
    if group_by == state.compare_by:
        # One dimension cannot be both the comparison and the grouping axis.
        return state
    return replace(state, group_by=group_by)


# ---------------------------------------------------------------------------
# Cohorts and pivot
# ---------------------------------------------------------------------------

def build_cohorts(
    state: ComparisonState,
    period_records: Sequence[Record],
    all_records: Sequence[Record],
    schema: RecordSchema,
) -> List[Cohort]:
    if state.compare_by == COMPARE_NONE or len(state.values) < MIN_COHORTS:
        return []
    source = all_records if state.compare_by == "month" else period_records
    cohorts = []
    for value in state.values:
        matched = [r for r in source if cohort_value(r, state.compare_by, schema) == value]
        cohorts.append(Cohort(label=value, records=matched, metrics=calculate_metrics(matched, schema)))
    return cohorts


def build_pivot(cohorts: Sequence[Cohort], group_by: str, schema: RecordSchema) -> List[Dict[str, Any]]:
    """One row per distinct ``group_by`` value across all cohorts.

    Columns are numbered per cohort: ``value{i}`` (count), ``sla_compliance{i}``
    and ``avg_score{i}``. A cohort with no records for a row reports count 0.
    """
    if group_by == COMPARE_NONE or not cohorts:
        return []
    schema.require_dimension(group_by)
    per_cohort: List[Dict[str, List[Record]]] = []
    totals: Dict[str, int] = {}
    for cohort in cohorts:
        groups: Dict[str, List[Record]] = {}
        for r in cohort.records:
            key = schema.value(r, group_by)
            groups.setdefault(key, []).append(r)
            totals[key] = totals.get(key, 0) + 1
        per_cohort.append(groups)
    rows = []
    for name in sorted(totals, key=lambda k: -totals[k]):
        row: Dict[str, Any] = {"name": name, "total": totals[name]}
        for idx, groups in enumerate(per_cohort, start=1):
            items = groups.get(name, [])
            row[f"value{idx}"] = len(items)
            row[f"sla_compliance{idx}"] = sla_compliance(items, schema)
            row[f"avg_score{idx}"] = average_score(items, schema)
        rows.append(row)
    return rows


def _series(cohorts: Sequence[Cohort], names: Sequence[str], pred) -> List[Dict[str, Any]]:
    out = []
    for name in names:
        item: Dict[str, Any] = {"name": name}
        for idx, cohort in enumerate(cohorts, start=1):
            item[f"value{idx}"] = sum(1 for r in cohort.records if pred(r, name))
        out.append(item)
    return out


def comparison_chart_data(cohorts: Sequence[Cohort], schema: RecordSchema) -> Dict[str, List[Dict[str, Any]]]:
    """Fixed status / priority / SLA comparison series."""
    if len(cohorts) < MIN_COHORTS:
        return {"status": [], "priority": [], "sla": []}
    statuses = PERMIT_LIFECYCLE if schema is PERMITS else ["Completed", "Pending", "Failed"]
    return {
        "status": _series(cohorts, statuses, lambda r, s: r.get("status") == s),
        "priority": _series(cohorts, PRIORITY_ORDER, lambda r, p: r.get("priority") == p),
        "sla": _series(
            cohorts,
            ["Within SLA", "Breached"],
            lambda r, s: schema.is_breached(r) == (s == "Breached"),
        ),
    }


def pivot_frame(rows: Sequence[Dict[str, Any]], cohorts: Optional[Sequence[Cohort]] = None) -> pd.DataFrame:
    """Long-form pivot (name, cohort, count, sla_compliance) for grouped bar charts.

    Without ``cohorts`` the columns are labelled ``Cohort 1``, ``Cohort 2``, ...
    """
    width = len(cohorts) if cohorts else sum(1 for k in (rows[0] if rows else {}) if k.startswith("value"))
    labels = [c.label for c in cohorts] if cohorts else [f"Cohort {i}" for i in range(1, width + 1)]
    records = []
    for row in rows:
        for idx, label in enumerate(labels, start=1):
            records.append(
                {
                    "name": row["name"],
                    "cohort": label,
                    "count": row.get(f"value{idx}", 0),
                    "sla_compliance": row.get(f"sla_compliance{idx}", 100),
                }
            )
    return pd.DataFrame(records, columns=["name", "cohort", "count", "sla_compliance"])
