#!/usr/bin/env python
"""
CLI script to generate deterministic demo permits and inspections.

Usage:
    python -m scripts.generate_demo_data --out data/demo_seed \\
        --permits 240 --inspections 180 --seed 7

Options:
    --out: directory receiving permits.jsonl and inspections.jsonl (default: data/demo_seed)
    --permits / --inspections: number of records per domain
    --seed: random seed; the same seed always writes the same files
    --today: reference date (YYYY-MM-DD) records are dated back from (default: 2025-06-30)
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

from src.constants import (
    INSPECTION_STATUSES,
    PERMIT_STATUS_COLORS,
    PRIORITY_ORDER,
    SERVICE_TYPE_SHORT_NAMES,
)
from src.schema import INSPECTIONS, PERMITS
from src.settings import configure_logging
from src.storage import records_filename, write_jsonl

logger = logging.getLogger("generate_demo_data")

ZONES = ["North", "South", "East", "West"]
OWNERS = ["Al Noor Contracting", "Gulf Engineering", "Horizon Developers", "Summit Builders", "Oasis Projects"]
INSPECTORS = ["A. Rahman", "M. Saleh", "S. Haddad", "L. Karim", "R. Nasser"]
INSPECTION_TYPES = ["Pre-Connection", "Final Connection", "Manhole Check", "Line Survey", "Complaint Follow-up"]
CATEGORIES = ["Residential", "Commercial", "Industrial"]
PERMIT_CATEGORIES = ["New Connection", "Modification", "Information Request"]
FINDINGS = ["Minor leakage", "Cover misaligned", "Depth below standard", "Documentation missing"]
SLA_DAYS = {"High": 3, "Medium": 5, "Low": 10}
PRIORITY_WEIGHTS = [0.25, 0.5, 0.25]


def _iso(dt: datetime) -> str:
    return dt.replace(microsecond=0).isoformat()


def _hhmm(hours: float) -> str:
    sign = "-" if hours < 0 else ""
    hours = abs(hours)
    return f"{sign}{int(hours)}:{int(round((hours % 1) * 60)) % 60:02d}"


def make_permit(rng: random.Random, n: int, today: datetime) -> dict:
    priority = rng.choices(PRIORITY_ORDER, PRIORITY_WEIGHTS)[0]
    created = today - timedelta(days=rng.randint(0, 180), hours=rng.randint(0, 23))
    closed = rng.random() < 0.55
    current = "Approved" if closed and rng.random() < 0.8 else rng.choice(list(PERMIT_STATUS_COLORS))
    if closed and current not in ("Approved", "Rejected"):
        current = "Rejected"
    sla_hours = SLA_DAYS[priority] * 24
    elapsed = rng.uniform(2, SLA_DAYS[priority] * 40)
    updated = created + timedelta(hours=elapsed)
    return {
        "request_no": f"SR-{2025000 + n}",
        "service_type": rng.choice(list(SERVICE_TYPE_SHORT_NAMES)),
        "location": f"Plot {rng.randint(100, 999)}, {rng.choice(ZONES)} District",
        "current_status": current,
        "service_sla": f"{SLA_DAYS[priority]} days",
        "remaining_time": _hhmm(sla_hours - elapsed),
        "final_employee": rng.choice(INSPECTORS),
        "final_remarks": "",
        "creation_date": _iso(created),
        "updated_date": _iso(updated),
        "status": "Closed" if closed else "Opened",
        "owner": rng.choice(OWNERS),
        "permit_category": rng.choice(PERMIT_CATEGORIES),
        "priority": priority,
        "zone": rng.choice(ZONES),
    }


def make_inspection(rng: random.Random, n: int, today: datetime) -> dict:
    priority = rng.choices(PRIORITY_ORDER, PRIORITY_WEIGHTS)[0]
    scheduled = today - timedelta(days=rng.randint(-14, 180))
    status = rng.choices(INSPECTION_STATUSES, [0.45, 0.15, 0.1, 0.12, 0.12, 0.06])[0]
    done = status in ("Completed", "Failed")
    score = None
    if done:
        score = rng.randint(75, 100) if status == "Completed" else rng.randint(30, 69)
    if status in ("Scheduled", "Cancelled"):
        sla_status = "N/A"
    else:
        sla_status = "SLA Breached" if rng.random() < 0.15 else "Within SLA"
    return {
        "inspection_no": f"INS-{50000 + n}",
        "inspection_type": rng.choice(INSPECTION_TYPES),
        "location": f"Plot {rng.randint(100, 999)}, {rng.choice(ZONES)} District",
        "status": status,
        "scheduled_date": _iso(scheduled),
        "completed_date": _iso(scheduled + timedelta(hours=rng.randint(1, 72))) if done else None,
        "inspector": rng.choice(INSPECTORS),
        "supervisor_remarks": "",
        "findings": rng.choice(FINDINGS) if status == "Failed" else None,
        "compliance_score": score,
        "priority": priority,
        "zone": rng.choice(ZONES),
        "category": rng.choice(CATEGORIES),
        "created_by": "system",
        "related_permit_no": f"SR-{2025000 + rng.randint(1, 240)}" if rng.random() < 0.6 else None,
        "reinspection_required": status == "Failed" or (done and rng.random() < 0.05),
        "sla_status": sla_status,
        "duration": rng.randint(20, 180) if done else None,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate deterministic demo dashboard data")
    parser.add_argument("--out", type=Path, default=Path("data/demo_seed"), help="Output directory")
    parser.add_argument("--permits", type=int, default=240, help="Number of permits")
    parser.add_argument("--inspections", type=int, default=180, help="Number of inspections")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    parser.add_argument("--today", default="2025-06-30", help="Reference date YYYY-MM-DD")
    args = parser.parse_args()

    configure_logging()
    try:
        today = datetime.strptime(args.today, "%Y-%m-%d")
    except ValueError:
        print(f"Error: --today must be YYYY-MM-DD, got {args.today!r}", file=sys.stderr)
        sys.exit(1)

    rng = random.Random(args.seed)
    permits = [make_permit(rng, i, today) for i in range(1, args.permits + 1)]
    inspections = [make_inspection(rng, i, today) for i in range(1, args.inspections + 1)]

    for schema, rows in ((PERMITS, permits), (INSPECTIONS, inspections)):
        path = args.out / records_filename(schema)
        n = write_jsonl(path, rows)
        logger.info("wrote %d %s to %s", n, schema.name, path)
        print(f"Saved {n} {schema.name} to {path}", file=sys.stderr)


if __name__ == "__main__":
    main()
