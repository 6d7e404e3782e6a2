"""Group-By Pipeline: recursive partition of a record subset into a tree of groups."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from src.constants import (
    FALLBACK_COLOR,
    PALETTE,
    PRIORITY_COLORS,
    SERVICE_TYPE_SHORT_NAMES,
    SHORT_NAME_MAX,
)
from src.metrics import breached_count, average_score, completion_rate, pct, sla_compliance
from src.schema import Record, RecordSchema


@dataclass(frozen=True)
class GroupNode:
    name: str
    short_name: str
    count: int
    items: List[Record]
    percentage: int
    color: str
    sla_compliance: int
    avg_score: int
    completion_rate: int
    breached: int
    level: int
    path: Tuple[str, ...]
    children: Optional[List["GroupNode"]] = None

    @property
    def key(self) -> str:
        """Unique tree-node key; names alone can repeat under different parents."""
        return "/".join(self.path)


def short_name(dimension: str, value: str) -> str:
    if dimension == "service_type":
        return SERVICE_TYPE_SHORT_NAMES.get(value, value)
    if len(value) > SHORT_NAME_MAX:
        return value[:SHORT_NAME_MAX] + "..."
    return value


def group_color(dimension: str, value: str, index: int, schema: RecordSchema) -> str:
    if dimension == "status":
        return schema.status_colors.get(value, FALLBACK_COLOR)
    if dimension == "priority":
        return PRIORITY_COLORS.get(value, FALLBACK_COLOR)
    return PALETTE[index % len(PALETTE)]


def partition(records: Sequence[Record], dimension: str, schema: RecordSchema) -> List[Tuple[str, List[Record]]]:
    """Distinct values of ``dimension`` with their records, most common first (ties keep first-seen order)."""
    groups: Dict[str, List[Record]] = {}
    for r in records:
        groups.setdefault(schema.value(r, dimension), []).append(r)
    return sorted(groups.items(), key=lambda kv: -len(kv[1]))


def _build(
    records: Sequence[Record],
    levels: Tuple[str, ...],
    schema: RecordSchema,
    level: int,
    path: Tuple[str, ...],
) -> List[GroupNode]:
    if level >= len(levels) or not records:
        return []
    dimension = levels[level]
    last = level == len(levels) - 1
    nodes: List[GroupNode] = []
    for index, (name, items) in enumerate(partition(records, dimension, schema)):
        node_path = path + (name,)
        nodes.append(
            GroupNode(
                name=name,
                short_name=short_name(dimension, name),
                count=len(items),
                items=items,
                percentage=pct(len(items), len(records)),
                color=group_color(dimension, name, index, schema),
                sla_compliance=sla_compliance(items, schema),
                avg_score=average_score(items, schema),
                completion_rate=completion_rate(items, schema),
                breached=breached_count(items, schema),
                level=level,
                path=node_path,
                children=None if last else _build(items, levels, schema, level + 1, node_path),
            )
        )
    return nodes


def build_group_tree(records: Sequence[Record], levels: Sequence[str], schema: RecordSchema) -> List[GroupNode]:
    """Top-level groups for ``levels[0]``, each expanded for the remaining levels.

    A dimension repeated in ``levels`` is grouped on again as given, which
    yields a single child per parent at the repeated level.
    """
    levels = tuple(levels)
    for dim in levels:
        schema.require_dimension(dim)
    return _build(list(records), levels, schema, 0, ())


def sort_nodes(nodes: Sequence[GroupNode], by: str = "count") -> List[GroupNode]:
    """Presentation re-sort by ``count``, ``name`` or ``sla``, applied at every level."""
    if by == "name":
        key = lambda n: n.name.lower()  # noqa: E731
    elif by == "sla":
        key = lambda n: -n.sla_compliance  # noqa: E731
    elif by == "count":
        key = lambda n: -n.count  # noqa: E731
    else:
        raise ValueError(f"Unsupported sort: {by!r}")
    out = []
    for node in sorted(nodes, key=key):
        if node.children is not None:
            node = replace(node, children=sort_nodes(node.children, by))
        out.append(node)
    return out


def flatten_tree(nodes: Sequence[GroupNode]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for node in nodes:
        rows.append(
            {
                "level": node.level,
                "path": " > ".join(node.path),
                "name": node.name,
                "count": node.count,
                "percentage": node.percentage,
                "sla_compliance": node.sla_compliance,
                "avg_score": node.avg_score,
                "completion_rate": node.completion_rate,
                "breached": node.breached,
            }
        )
        if node.children:
            rows.extend(flatten_tree(node.children))
    return rows


def tree_frame(nodes: Sequence[GroupNode]) -> pd.DataFrame:
    return pd.DataFrame(
        flatten_tree(nodes),
        columns=["level", "path", "name", "count", "percentage", "sla_compliance", "avg_score", "completion_rate", "breached"],
    )


def build_group_matrix(
    records: Sequence[Record],
    row_dim: str,
    col_dim: str,
    schema: RecordSchema,
) -> Dict[str, Any]:
    """Row x column counts with per-cell SLA rate; rows follow the tree ordering."""
    col_values = sorted({schema.value(r, col_dim) for r in records} - {""})
    rows = []
    for node in build_group_tree(records, [row_dim], schema):
        cells = {}
        for col in col_values:
            matching = [r for r in node.items if schema.value(r, col_dim) == col]
            cells[col] = {"count": len(matching), "percentage": 0, "sla_rate": sla_compliance(matching, schema)}
        row_total = sum(c["count"] for c in cells.values())
        for cell in cells.values():
            cell["percentage"] = pct(cell["count"], row_total)
        rows.append({"name": node.name, "total": row_total, "cells": cells})
    max_count = max((c["count"] for row in rows for c in row["cells"].values()), default=0)
    return {"row_dimension": row_dim, "col_dimension": col_dim, "columns": col_values, "rows": rows, "max_count": max_count}
