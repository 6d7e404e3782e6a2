"""Filter Stage: flat field-equality / substring constraints over the record store."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from src.schema import Record, RecordSchema

FilterState = Dict[str, Any]


def initial_filters(schema: RecordSchema) -> FilterState:
    filters: FilterState = {dim: schema.unset for dim in schema.dimensions}
    for key in schema.extra_filter_fields:
        filters[key] = schema.unset
    for key in schema.bool_filter_fields:
        filters[key] = None
    filters["search"] = ""
    return filters


def reset_filters(schema: RecordSchema) -> FilterState:
    return initial_filters(schema)


def is_unset(schema: RecordSchema, key: str, value: Any) -> bool:
    if key in schema.bool_filter_fields:
        return value is None
    if key == "search":
        return not str(value or "").strip()
    # Both "all" and "" read as unset, whichever sentinel the domain uses.
    return value is None or value == "" or value == schema.unset


def update_filter(filters: Mapping[str, Any], key: str, value: Any, schema: RecordSchema) -> FilterState:
    """Return a copy of ``filters`` with one key replaced."""
    if key not in schema.filter_keys:
        raise ValueError(f"Unknown {schema.name} filter: {key!r}")
    out = dict(filters)
    out[key] = value
    return out


def active_filters(filters: Mapping[str, Any], schema: RecordSchema) -> Dict[str, Any]:
    return {k: v for k, v in filters.items() if k in schema.filter_keys and not is_unset(schema, k, v)}


def filters_key(filters: Mapping[str, Any]) -> tuple:
    """Hashable snapshot of a filter mapping."""
    return tuple(sorted((k, v) for k, v in filters.items()))


def _matches_search(rec: Record, query: str, schema: RecordSchema) -> bool:
    q = query.lower()
    return any(q in str(rec.get(f) or "").lower() for f in schema.search_fields)


def _field_text(rec: Record, field_name: str) -> str:
    raw = rec.get(field_name)
    return "" if raw is None else str(raw)


def _predicate(filters: Mapping[str, Any], schema: RecordSchema):
    active = active_filters(filters, schema)
    # Null reads as "", matching drill-down and grouping.
    equality = []
    for key, value in active.items():
        if key in schema.dimension_fields:
            equality.append((lambda rec, k=key: schema.value(rec, k), str(value)))
        elif key in schema.extra_filter_fields:
            equality.append((lambda rec, f=schema.extra_filter_fields[key]: _field_text(rec, f), str(value)))
    flags = [(schema.bool_filter_fields[k], bool(v)) for k, v in active.items() if k in schema.bool_filter_fields]
    query = str(active.get("search") or "").strip()

    def keep(rec: Record) -> bool:
        for read, wanted in equality:
            if read(rec) != wanted:
                return False
        for field_name, wanted in flags:
            if bool(rec.get(field_name)) != wanted:
                return False
        if query and not _matches_search(rec, query, schema):
            return False
        return True

    return keep


def apply_filters(records: Iterable[Record], filters: Mapping[str, Any], schema: RecordSchema) -> List[Record]:
    keep = _predicate(filters, schema)
    return [r for r in records if keep(r)]


def filter_options(records: Iterable[Record], schema: RecordSchema) -> Dict[str, List[str]]:
    """Sorted distinct values per filterable key, for dropdowns."""
    rows = list(records)
    out: Dict[str, List[str]] = {}
    for dim in schema.dimensions:
        out[dim] = sorted({schema.value(r, dim) for r in rows} - {""})
    for key, field_name in schema.extra_filter_fields.items():
        out[key] = sorted({str(r.get(field_name)) for r in rows if r.get(field_name) not in (None, "")})
    return out
