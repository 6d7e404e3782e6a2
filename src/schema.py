"""Record-schema descriptors for the two dashboard domains.

The drill-down, grouping, metrics and comparison code is written once against
``RecordSchema``; Permits and Inspections each supply a descriptor naming their
dimensions, filter keys, search fields and the accessors the metrics need.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from src.constants import (
    INSPECTION_COMPARE_DIMENSIONS,
    INSPECTION_DIMENSIONS,
    INSPECTION_STATUS_COLORS,
    INSPECTION_UNSET,
    MONTH_LABEL_FORMAT,
    PERMIT_COMPARE_DIMENSIONS,
    PERMIT_DIMENSIONS,
    PERMIT_STATUS_COLORS,
    PERMIT_UNSET,
    SLA_BREACHED,
)

Record = Mapping[str, Any]


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO date/datetime string into a naive UTC datetime; None when unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            try:
                dt = datetime.strptime(s[:10], "%Y-%m-%d")
            except ValueError:
                return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def month_label(value: Any) -> str:
    dt = parse_date(value)
    return dt.strftime(MONTH_LABEL_FORMAT) if dt else ""


def _permit_breached(rec: Record) -> bool:
    return str(rec.get("remaining_time") or "").startswith("-")


def _permit_processing_days(rec: Record) -> Optional[float]:
    created = parse_date(rec.get("creation_date"))
    updated = parse_date(rec.get("updated_date"))
    if created is None or updated is None:
        return None
    return float(math.ceil((updated - created).total_seconds() / 86400))


def _inspection_breached(rec: Record) -> bool:
    return rec.get("sla_status") == SLA_BREACHED


def _inspection_score(rec: Record) -> Optional[float]:
    score = rec.get("compliance_score")
    if score is None or isinstance(score, bool):
        return None
    try:
        return float(score)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RecordSchema:
    name: str
    label: str
    id_field: str
    dimensions: Tuple[str, ...]
    dimension_fields: Mapping[str, str]
    unset: Any
    search_fields: Tuple[str, ...]
    date_field: str
    status_colors: Mapping[str, str]
    compare_dimensions: Tuple[str, ...]
    is_breached: Callable[[Record], bool]
    score: Callable[[Record], Optional[float]]
    # Equality filters beyond the dimensions (key -> field).
    extra_filter_fields: Mapping[str, str] = field(default_factory=dict)
    # Tri-state boolean filters (key -> field); None means unset.
    bool_filter_fields: Mapping[str, str] = field(default_factory=dict)

    @property
    def filter_keys(self) -> List[str]:
        return [*self.dimensions, *self.extra_filter_fields, *self.bool_filter_fields, "search"]

    def has_dimension(self, dimension: str) -> bool:
        return dimension in self.dimension_fields

    def require_dimension(self, dimension: Any) -> str:
        if dimension not in self.dimension_fields:
            raise ValueError(
                f"Unknown {self.name} dimension: {dimension!r}. Expected one of {list(self.dimensions)}"
            )
        return dimension

    def field_for(self, dimension: str) -> str:
        return self.dimension_fields[self.require_dimension(dimension)]

    def value(self, rec: Record, dimension: str) -> str:
        """Categorical value of ``rec`` for ``dimension`` ("month" is derived from the date field)."""
        if dimension == "month":
            return month_label(rec.get(self.date_field))
        raw = rec.get(self.field_for(dimension))
        return "" if raw is None else str(raw)

    def record_date(self, rec: Record) -> Optional[datetime]:
        return parse_date(rec.get(self.date_field))


PERMITS = RecordSchema(
    name="permits",
    label="Permits",
    id_field="request_no",
    dimensions=tuple(PERMIT_DIMENSIONS),
    dimension_fields={
        "service_type": "service_type",
        "status": "current_status",
        "owner": "owner",
        "zone": "zone",
        "priority": "priority",
    },
    unset=PERMIT_UNSET,
    search_fields=("request_no", "owner"),
    date_field="creation_date",
    status_colors=PERMIT_STATUS_COLORS,
    compare_dimensions=tuple(PERMIT_COMPARE_DIMENSIONS),
    is_breached=_permit_breached,
    score=_permit_processing_days,
)

INSPECTIONS = RecordSchema(
    name="inspections",
    label="Inspections",
    id_field="inspection_no",
    dimensions=tuple(INSPECTION_DIMENSIONS),
    dimension_fields={
        "inspection_type": "inspection_type",
        "status": "status",
        "inspector": "inspector",
        "zone": "zone",
        "priority": "priority",
        "category": "category",
    },
    unset=INSPECTION_UNSET,
    search_fields=("inspection_no", "inspector", "location"),
    date_field="scheduled_date",
    status_colors=INSPECTION_STATUS_COLORS,
    compare_dimensions=tuple(INSPECTION_COMPARE_DIMENSIONS),
    is_breached=_inspection_breached,
    score=_inspection_score,
    extra_filter_fields={"sla_status": "sla_status"},
    bool_filter_fields={"reinspection_required": "reinspection_required"},
)

SCHEMAS: Dict[str, RecordSchema] = {s.name: s for s in (PERMITS, INSPECTIONS)}


def get_schema(name: str) -> RecordSchema:
    key = str(name or "").strip().lower()
    if key not in SCHEMAS:
        raise ValueError(f"Unknown domain: {name!r}. Expected one of {sorted(SCHEMAS)}")
    return SCHEMAS[key]
