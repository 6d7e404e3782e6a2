from __future__ import annotations
from typing import Tuple, List, Dict, Any

from src.constants import (
    ALLOWED_PRIORITY,
    INSPECTION_REQUIRED_KEYS,
    INSPECTION_STATUSES,
    PERMIT_LIFECYCLE,
    PERMIT_REQUIRED_KEYS,
    SLA_STATUSES,
)
from src.schema import RecordSchema, PERMITS, parse_date


def _is_date(s: Any) -> bool:
    return isinstance(s, str) and parse_date(s) is not None


def _missing(rec: Dict[str, Any], keys: List[str]) -> List[str]:
    return [f"Missing key: {k}" for k in keys if k not in rec]


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def validate_permit(rec: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errs = _missing(rec, PERMIT_REQUIRED_KEYS)
    if errs:
        return False, errs

    if not str(rec["request_no"] or "").strip():
        errs.append("request_no must be a non-empty string")

    if rec["status"] not in PERMIT_LIFECYCLE:
        errs.append(f"status must be one of {PERMIT_LIFECYCLE}")

    if rec["priority"] not in ALLOWED_PRIORITY:
        errs.append(f"priority must be one of {sorted(ALLOWED_PRIORITY)}")

    for k in ("creation_date", "updated_date"):
        if not _is_date(rec[k]):
            errs.append(f"{k} must be an ISO date or datetime")

    if not isinstance(rec["remaining_time"], str):
        errs.append("remaining_time must be a string like '12:30' or '-4:15'")

    return (len(errs) == 0), errs


def validate_inspection(rec: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errs = _missing(rec, INSPECTION_REQUIRED_KEYS)
    if errs:
        return False, errs

    if not str(rec["inspection_no"] or "").strip():
        errs.append("inspection_no must be a non-empty string")

    if rec["status"] not in INSPECTION_STATUSES:
        errs.append(f"status must be one of {INSPECTION_STATUSES}")

    if rec["priority"] not in ALLOWED_PRIORITY:
        errs.append(f"priority must be one of {sorted(ALLOWED_PRIORITY)}")

    if rec["sla_status"] not in SLA_STATUSES:
        errs.append(f"sla_status must be one of {SLA_STATUSES}")

    if not _is_date(rec["scheduled_date"]):
        errs.append("scheduled_date must be an ISO date or datetime")

    if rec["completed_date"] not in (None, "") and not _is_date(rec["completed_date"]):
        errs.append("completed_date must be an ISO date, empty string, or null")

    score = rec["compliance_score"]
    if score is not None and (not _is_number(score) or not 0 <= score <= 100):
        errs.append("compliance_score must be a number in 0..100 or null")

    if rec["duration"] is not None and not _is_number(rec["duration"]):
        errs.append("duration must be a number of minutes or null")

    if not isinstance(rec["reinspection_required"], bool):
        errs.append("reinspection_required must be true or false")

    return (len(errs) == 0), errs


def validate(rec: Dict[str, Any], schema: RecordSchema) -> Tuple[bool, List[str]]:
    if schema is PERMITS:
        return validate_permit(rec)
    return validate_inspection(rec)
