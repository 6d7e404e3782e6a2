"""Single owner of the FilterState / DrillDownState pair for one domain.

Pages hold one ``DashboardController`` per domain in ``st.session_state`` and
only ever change state through its methods. Derived views are memoised on
``(filters, breadcrumb, group_by_levels)``; every transition clears the memo.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from src import drilldown
from src.drilldown import Action, DrillDownState, INITIAL_STATE
from src.filters import (
    FilterState,
    active_filters,
    apply_filters,
    filters_key,
    initial_filters,
    update_filter,
)
from src.grouping import GroupNode, build_group_tree
from src.metrics import calculate_metrics
from src.schema import Record, RecordSchema
from src.settings import Settings, load_settings

logger = logging.getLogger(__name__)


def _fresh(value: Any) -> Any:
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, list):
        return list(value)
    return value


class DashboardController:
    def __init__(self, store: Sequence[Record], schema: RecordSchema, settings: Optional[Settings] = None):
        self.store = tuple(store)
        self.schema = schema
        self.settings = settings or load_settings()
        self._filters: FilterState = initial_filters(schema)
        self._drill: DrillDownState = INITIAL_STATE
        self._cache: Dict[tuple, Any] = {}

    # -- state -------------------------------------------------------------

    @property
    def filters(self) -> FilterState:
        return dict(self._filters)

    @property
    def drill_down(self) -> DrillDownState:
        return self._drill

    @property
    def breadcrumb(self) -> List[Dict[str, Optional[str]]]:
        return self._drill.breadcrumb_items()

    @property
    def active_filters(self) -> Dict[str, Any]:
        return active_filters(self._filters, self.schema)

    def _transition(self, new_state: DrillDownState) -> DrillDownState:
        if new_state != self._drill:
            self._cache.clear()
        self._drill = new_state
        return new_state

    def _set_filters(self, filters: FilterState) -> FilterState:
        self._filters = filters
        self._cache.clear()
        return self.filters

    # -- drill-down transitions ---------------------------------------------

    def navigate_drill_down(self, dimension: str, value: str) -> DrillDownState:
        return self._transition(drilldown.navigate_drill_down(self._drill, dimension, value, self.schema))

    def go_back_drill_down(self) -> DrillDownState:
        return self._transition(drilldown.go_back_drill_down(self._drill))

    def reset_drill_down(self) -> DrillDownState:
        return self._transition(drilldown.reset_drill_down(self._drill))

    def set_group_by_levels(self, levels: Sequence[str]) -> DrillDownState:
        return self._transition(drilldown.set_group_by_levels(self._drill, levels, self.schema))

    def clear_group_by_levels(self) -> DrillDownState:
        return self._transition(drilldown.clear_group_by_levels(self._drill))

    def dispatch(self, action: Action) -> DrillDownState:
        return self._transition(drilldown.reduce(self._drill, action, self.schema))

    # -- filters -------------------------------------------------------------

    def set_filters(self, filters: Mapping[str, Any]) -> FilterState:
        unknown = [k for k in filters if k not in self.schema.filter_keys]
        if unknown:
            raise ValueError(f"Unknown {self.schema.name} filters: {unknown}")
        merged = initial_filters(self.schema)
        merged.update(filters)
        return self._set_filters(merged)

    def update_filter(self, key: str, value: Any) -> FilterState:
        return self._set_filters(update_filter(self._filters, key, value, self.schema))

    def reset_filters(self) -> FilterState:
        return self._set_filters(initial_filters(self.schema))

    # -- derived views -------------------------------------------------------

    def _memo(self, name: str, compute: Callable[[], Any]) -> Any:
        """Cached ``compute()``; callers get a fresh list or dict so the cached entry stays intact."""
        if not self.settings.cache_enabled:
            return compute()
        key = (name, filters_key(self._filters), self._drill.breadcrumb, self._drill.group_by_levels)
        if key in self._cache:
            logger.debug("cache hit: %s", name)
        else:
            logger.debug("cache miss: %s", name)
            self._cache[key] = compute()
        return _fresh(self._cache[key])

    def filtered_records(self) -> List[Record]:
        """Records passing the global filters only."""
        return self._memo("filtered", lambda: apply_filters(self.store, self._filters, self.schema))

    def get_filtered_by_drill_down(self) -> List[Record]:
        return self._memo(
            "drill",
            lambda: drilldown.filter_by_drill_down(self.filtered_records(), self._drill, self.schema),
        )

    def group_levels(self) -> List[str]:
        """Levels for the group tree: the pivot pipeline, else the dimension of the last group marker."""
        if self._drill.group_by_levels:
            return list(self._drill.group_by_levels)
        current = self._drill.current_group_dimension
        return [current] if current else []

    def group_tree(self, levels: Optional[Sequence[str]] = None) -> List[GroupNode]:
        if levels is not None:
            return build_group_tree(self.get_filtered_by_drill_down(), levels, self.schema)
        return self._memo(
            "tree",
            lambda: build_group_tree(self.get_filtered_by_drill_down(), self.group_levels(), self.schema),
        )

    def metrics(self) -> Dict[str, Any]:
        return self._memo("metrics", lambda: calculate_metrics(self.get_filtered_by_drill_down(), self.schema))
