"""Drill-Down State Machine.

State is an immutable ``DrillDownState``; every transition is a pure function
returning a new state, and ``reduce`` folds the action objects used by the
controller. Breadcrumb entries are tagged: ``FilterStep`` narrows the record
set by equality, ``GroupMarker`` only records that an aggregate breakdown by a
dimension is being viewed and never filters.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from src.constants import DIMENSION_LABELS, GROUP_MARKER_PREFIX, ROOT_LABEL
from src.schema import Record, RecordSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Root:
    label: str = ROOT_LABEL


@dataclass(frozen=True)
class FilterStep:
    dimension: str
    value: str

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class GroupMarker:
    dimension: str

    @property
    def label(self) -> str:
        return f"By {DIMENSION_LABELS.get(self.dimension, self.dimension)}"

    @property
    def marker(self) -> str:
        return group_marker(self.dimension)


BreadcrumbEntry = Union[Root, FilterStep, GroupMarker]
ROOT = Root()


def group_marker(dimension: str) -> str:
    return f"{GROUP_MARKER_PREFIX}{dimension}"


def is_group_marker(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(GROUP_MARKER_PREFIX)


@dataclass(frozen=True)
class DrillDownState:
    breadcrumb: Tuple[BreadcrumbEntry, ...] = (ROOT,)
    group_by_levels: Tuple[str, ...] = ()
    parent_type: Optional[str] = None
    parent_value: Optional[str] = None

    @property
    def level(self) -> int:
        return len(self.breadcrumb) - 1

    @property
    def tail(self) -> BreadcrumbEntry:
        return self.breadcrumb[-1]

    @property
    def type(self) -> Optional[str]:
        tail = self.tail
        return None if isinstance(tail, Root) else tail.dimension

    @property
    def value(self) -> Optional[str]:
        tail = self.tail
        if isinstance(tail, FilterStep):
            return tail.value
        if isinstance(tail, GroupMarker):
            return tail.marker
        return None

    @property
    def view_kind(self) -> str:
        if self.level == 0:
            return "overview"
        if isinstance(self.tail, GroupMarker):
            return "group"
        return "detail"

    @property
    def current_group_dimension(self) -> Optional[str]:
        if self.group_by_levels:
            return self.group_by_levels[0]
        for entry in reversed(self.breadcrumb):
            if isinstance(entry, GroupMarker):
                return entry.dimension
        return None

    @property
    def used_dimensions(self) -> List[str]:
        if self.group_by_levels:
            return list(dict.fromkeys(self.group_by_levels))
        return list(dict.fromkeys(e.dimension for e in self.breadcrumb if isinstance(e, GroupMarker)))

    def available_dimensions(self, schema: RecordSchema) -> List[str]:
        used = set(self.used_dimensions)
        return [d for d in schema.dimensions if d not in used]

    def breadcrumb_items(self) -> List[Dict[str, Optional[str]]]:
        return [to_breadcrumb_item(e) for e in self.breadcrumb]


INITIAL_STATE = DrillDownState()


def to_breadcrumb_item(entry: BreadcrumbEntry) -> Dict[str, Optional[str]]:
    """Render an entry as the ``{label, type, value}`` dict the breadcrumb bar reads."""
    if isinstance(entry, FilterStep):
        return {"label": entry.label, "type": entry.dimension, "value": entry.value}
    if isinstance(entry, GroupMarker):
        return {"label": entry.label, "type": entry.dimension, "value": entry.marker}
    return {"label": entry.label, "type": None, "value": None}


def from_breadcrumb_item(item: Dict[str, Any]) -> BreadcrumbEntry:
    dimension = item.get("type")
    value = item.get("value")
    if dimension is None:
        return ROOT
    if is_group_marker(value):
        return GroupMarker(dimension=value[len(GROUP_MARKER_PREFIX):])
    return FilterStep(dimension=dimension, value="" if value is None else str(value))


def _check_dimension(dimension: Any, schema: Optional[RecordSchema]) -> str:
    if not dimension:
        raise ValueError("Drill-down requires a dimension")
    if schema is not None:
        schema.require_dimension(dimension)
    return dimension


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def navigate_drill_down(
    state: DrillDownState,
    dimension: str,
    value: str,
    schema: Optional[RecordSchema] = None,
) -> DrillDownState:
    _check_dimension(dimension, schema)
    if value is None:
        raise ValueError("Drill-down requires a value")
    if is_group_marker(value):
        marker_dim = value[len(GROUP_MARKER_PREFIX):]
        if marker_dim != dimension:
            raise ValueError(f"Group marker {value!r} does not match dimension {dimension!r}")
        entry: BreadcrumbEntry = GroupMarker(dimension)
    else:
        entry = FilterStep(dimension, str(value))
    logger.debug("drill-down navigate %s=%s (level %d)", dimension, value, state.level + 1)
    # A breadcrumb push leaves the pivot pipeline view.
    return DrillDownState(
        breadcrumb=state.breadcrumb + (entry,),
        parent_type=state.type,
        parent_value=state.value,
    )


def go_back_drill_down(state: DrillDownState) -> DrillDownState:
    if state.level == 0:
        return state
    logger.debug("drill-down back to level %d", state.level - 1)
    return DrillDownState(breadcrumb=state.breadcrumb[:-1])


def reset_drill_down(state: Optional[DrillDownState] = None) -> DrillDownState:
    return INITIAL_STATE


def set_group_by_levels(
    state: DrillDownState,
    levels: Sequence[str],
    schema: Optional[RecordSchema] = None,
) -> DrillDownState:
    levels = tuple(levels)
    if not levels:
        return INITIAL_STATE
    for dim in levels:
        _check_dimension(dim, schema)
    if len(set(levels)) != len(levels):
        logger.debug("group-by levels repeat a dimension: %s", levels)
    logger.debug("group-by levels set to %s", levels)
    return DrillDownState(breadcrumb=(ROOT, GroupMarker(levels[0])), group_by_levels=levels)


def clear_group_by_levels(state: Optional[DrillDownState] = None) -> DrillDownState:
    return INITIAL_STATE


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Navigate:
    dimension: str
    value: str


@dataclass(frozen=True)
class GoBack:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class SetGroupByLevels:
    levels: Tuple[str, ...]


@dataclass(frozen=True)
class ClearGroupByLevels:
    pass


Action = Union[Navigate, GoBack, Reset, SetGroupByLevels, ClearGroupByLevels]


def reduce(state: DrillDownState, action: Action, schema: Optional[RecordSchema] = None) -> DrillDownState:
    if isinstance(action, Navigate):
        return navigate_drill_down(state, action.dimension, action.value, schema)
    if isinstance(action, GoBack):
        return go_back_drill_down(state)
    if isinstance(action, Reset):
        return reset_drill_down(state)
    if isinstance(action, SetGroupByLevels):
        return set_group_by_levels(state, action.levels, schema)
    if isinstance(action, ClearGroupByLevels):
        return clear_group_by_levels(state)
    raise ValueError(f"Unsupported drill-down action: {action!r}")


# ---------------------------------------------------------------------------
# Derived view
# ---------------------------------------------------------------------------

def filter_by_drill_down(
    records: Iterable[Record],
    state: DrillDownState,
    schema: RecordSchema,
) -> List[Record]:
    """Narrow ``records`` by every FilterStep in breadcrumb order; group markers are skipped."""
    data = list(records)
    for entry in state.breadcrumb[1:]:
        if not isinstance(entry, FilterStep):
            continue
        data = [r for r in data if schema.value(r, entry.dimension) == entry.value]
    return data

