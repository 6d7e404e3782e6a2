"""Metrics Aggregator: pure summary statistics over any record subset.

Nothing here reads filter or drill-down state. The only clock dependency is
``now`` in the aging and previous-period helpers, and callers can pass it in.

Empty-set conventions: SLA compliance is 100, averages are 0, the permit
completion rate is 0 and the inspection pass rate is 100.
"""
from __future__ import annotations

import calendar
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from src.constants import (
    AT_RISK_HOURS,
    BACKLOG_FRESH_DAYS,
    BACKLOG_STALE_DAYS,
    INSPECTION_STATUSES,
    PERIODS,
    SCORE_EXCELLENT,
    SCORE_GOOD,
    SLA_WITHIN,
)
from src.schema import INSPECTIONS, PERMITS, Record, RecordSchema, parse_date


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def pct(part: float, whole: float, empty: int = 0) -> int:
    if not whole:
        return empty
    return round_half_up(100 * part / whole)


def count_where(records: Iterable[Record], pred: Callable[[Record], bool]) -> int:
    return sum(1 for r in records if pred(r))


def _mean(values: Sequence[float]) -> int:
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def breached_count(records: Sequence[Record], schema: RecordSchema) -> int:
    return count_where(records, schema.is_breached)


def sla_compliance(records: Sequence[Record], schema: RecordSchema) -> int:
    total = len(records)
    return pct(total - breached_count(records, schema), total, empty=100)


def average_score(records: Sequence[Record], schema: RecordSchema) -> int:
    """Mean of the schema's score over records that have one; null scores are left out."""
    scores = [s for s in (schema.score(r) for r in records) if s is not None]
    return _mean(scores)


def status_counts(records: Sequence[Record], schema: RecordSchema) -> Dict[str, int]:
    enum = ["Opened", "Closed"] if schema is PERMITS else INSPECTION_STATUSES
    counts = {s: 0 for s in enum}
    for r in records:
        s = r.get("status")
        if s in counts:
            counts[s] += 1
    return counts


def completion_rate(records: Sequence[Record], schema: RecordSchema) -> int:
    """Closed/total for permits; completed/(completed+failed) for inspections."""
    counts = status_counts(records, schema)
    if schema is PERMITS:
        return pct(counts["Closed"], len(records), empty=0)
    decided = counts["Completed"] + counts["Failed"]
    return pct(counts["Completed"], decided, empty=100)


def _high_priority_sla(records: Sequence[Record], schema: RecordSchema) -> tuple[int, int]:
    high = [r for r in records if r.get("priority") == "High"]
    return len(high), sla_compliance(high, schema)


# ---------------------------------------------------------------------------
# Per-domain summaries
# ---------------------------------------------------------------------------

def calculate_permit_metrics(records: Sequence[Record]) -> Dict[str, Any]:
    records = list(records)
    total = len(records)
    counts = status_counts(records, PERMITS)
    breached = breached_count(records, PERMITS)
    high_priority, high_priority_sla = _high_priority_sla(records, PERMITS)
    return {
        "total": total,
        "opened": counts["Opened"],
        "closed": counts["Closed"],
        "breached": breached,
        "within_sla": total - breached,
        "sla_compliance": pct(total - breached, total, empty=100),
        "high_priority": high_priority,
        "high_priority_sla": high_priority_sla,
        "avg_processing_days": average_score(records, PERMITS),
        "completion_rate": completion_rate(records, PERMITS),
    }


def calculate_inspection_metrics(records: Sequence[Record]) -> Dict[str, Any]:
    records = list(records)
    total = len(records)
    counts = status_counts(records, INSPECTIONS)
    breached = breached_count(records, INSPECTIONS)
    high_priority, high_priority_sla = _high_priority_sla(records, INSPECTIONS)
    reinspections = count_where(records, lambda r: bool(r.get("reinspection_required")))
    durations = [float(r["duration"]) for r in records if r.get("duration") is not None]
    return {
        "total": total,
        "completed": counts["Completed"],
        "pending": counts["Pending"],
        "in_progress": counts["In Progress"],
        "scheduled": counts["Scheduled"],
        "failed": counts["Failed"],
        "cancelled": counts["Cancelled"],
        "breached": breached,
        "within_sla": count_where(records, lambda r: r.get("sla_status") == SLA_WITHIN),
        "sla_compliance": pct(total - breached, total, empty=100),
        "pass_rate": completion_rate(records, INSPECTIONS),
        "avg_score": average_score(records, INSPECTIONS),
        "high_priority": high_priority,
        "high_priority_sla": high_priority_sla,
        "reinspections": reinspections,
        "reinspection_rate": pct(reinspections, total, empty=0),
        "avg_duration": _mean(durations),
    }


def calculate_metrics(records: Sequence[Record], schema: RecordSchema) -> Dict[str, Any]:
    if schema is PERMITS:
        return calculate_permit_metrics(records)
    return calculate_inspection_metrics(records)


# ---------------------------------------------------------------------------
# SLA risk and backlog aging (permits)
# ---------------------------------------------------------------------------

def parse_remaining_time_hours(remaining_time: Any) -> float:
    """'-12:30' -> -12.5; anything without an hh:mm shape -> 0."""
    s = str(remaining_time or "").strip()
    negative = s.startswith("-")
    parts = s.replace("-", "").split(":")
    if len(parts) < 2:
        return 0.0
    try:
        hours = int(parts[0] or 0)
    except ValueError:
        hours = 0
    try:
        minutes = int(parts[1] or 0)
    except ValueError:
        minutes = 0
    total = hours + minutes / 60
    return -total if negative else total


def sla_risk_bands(records: Iterable[Record]) -> Dict[str, int]:
    bands = {"critical": 0, "at_risk": 0, "on_track": 0}
    for r in records:
        h = parse_remaining_time_hours(r.get("remaining_time"))
        if h < 0:
            bands["critical"] += 1
        elif h <= AT_RISK_HOURS:
            bands["at_risk"] += 1
        else:
            bands["on_track"] += 1
    return bands


def backlog_aging(records: Iterable[Record], now: Optional[datetime] = None) -> Dict[str, int]:
    """Bucket open permits by whole days (rounded up) since creation."""
    now = now or datetime.now()
    buckets = {"less_than_3_days": 0, "three_to_7_days": 0, "more_than_7_days": 0}
    for r in records:
        if r.get("status") != "Opened":
            continue
        created = parse_date(r.get("creation_date"))
        if created is None:
            continue
        days = math.ceil((now - created).total_seconds() / 86400)
        if days < BACKLOG_FRESH_DAYS:
            buckets["less_than_3_days"] += 1
        elif days <= BACKLOG_STALE_DAYS:
            buckets["three_to_7_days"] += 1
        else:
            buckets["more_than_7_days"] += 1
    return buckets


def score_bands(records: Iterable[Record]) -> Dict[str, int]:
    bands = {"excellent": 0, "good": 0, "poor": 0}
    for r in records:
        score = INSPECTIONS.score(r)
        if score is None:
            continue
        if score >= SCORE_EXCELLENT:
            bands["excellent"] += 1
        elif score >= SCORE_GOOD:
            bands["good"] += 1
        else:
            bands["poor"] += 1
    return bands


# ---------------------------------------------------------------------------
# Breakdowns and KPI cards
# ---------------------------------------------------------------------------

def dimension_breakdown(records: Sequence[Record], dimension: str, schema: RecordSchema) -> Dict[str, Dict[str, int]]:
    groups: Dict[str, List[Record]] = {}
    for r in records:
        groups.setdefault(schema.value(r, dimension), []).append(r)
    done = "Closed" if schema is PERMITS else "Completed"
    return {
        name: {
            "total": len(items),
            "breached": breached_count(items, schema),
            "sla_compliance": sla_compliance(items, schema),
            "avg_score": average_score(items, schema),
            "completed": count_where(items, lambda r: r.get("status") == done),
        }
        for name, items in groups.items()
    }


def kpi_summary(records: Sequence[Record], schema: RecordSchema) -> Dict[str, Any]:
    records = list(records)
    out: Dict[str, Any] = {"total": len(records)}
    if schema is PERMITS:
        out.update({k.lower(): v for k, v in status_counts(records, schema).items()})
        by_status: Dict[str, int] = {}
        for r in records:
            key = schema.value(r, "status")
            by_status[key] = by_status.get(key, 0) + 1
        out["by_current_status"] = by_status
    else:
        for status, n in status_counts(records, schema).items():
            out[status.lower().replace(" ", "_")] = n
        out["avg_compliance_score"] = average_score(records, schema)
    out["sla_compliance"] = sla_compliance(records, schema)
    return out


# ---------------------------------------------------------------------------
# Reporting periods
# ---------------------------------------------------------------------------

def shift_months(dt: datetime, months: int) -> datetime:
    idx = dt.month - 1 + months
    year = dt.year + idx // 12
    month = idx % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def period_start(reference: datetime, period: str, periods_back: int = 1) -> datetime:
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period!r}. Expected one of {PERIODS}")
    if period == "week":
        return reference - timedelta(days=7 * periods_back)
    if period == "month":
        return shift_months(reference, -periods_back)
    if period == "quarter":
        return shift_months(reference, -3 * periods_back)
    return shift_months(reference, -12 * periods_back)


def filter_by_period(records: Sequence[Record], period: str, schema: RecordSchema) -> List[Record]:
    """Records dated within ``period`` of the most recent one; the whole input if that leaves nothing."""
    records = list(records)
    dated = [(r, schema.record_date(r)) for r in records]
    stamps = [d for _, d in dated if d is not None]
    if not stamps:
        return records
    cutoff = period_start(max(stamps), period)
    kept = [r for r, d in dated if d is not None and d >= cutoff]
    return kept if kept else records


def previous_period_metrics(
    records: Sequence[Record],
    period: str,
    schema: RecordSchema,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    now = now or datetime.now()
    start = period_start(now, period, 2)
    end = period_start(now, period, 1)
    prev = []
    for r in records:
        d = schema.record_date(r)
        if d is not None and start <= d < end:
            prev.append(r)
    return {
        "total": len(prev),
        "sla": sla_compliance(prev, schema),
        "rate": completion_rate(prev, schema),
    }


def period_trends(current: Dict[str, Any], previous: Dict[str, int], schema: RecordSchema) -> Dict[str, int]:
    rate_key = "completion_rate" if schema is PERMITS else "pass_rate"
    prev_total = previous.get("total", 0)
    return {
        "sla": current["sla_compliance"] - previous.get("sla", 100),
        "volume": pct(current["total"] - prev_total, prev_total, empty=0),
        "rate": current[rate_key] - previous.get("rate", 0),
    }
