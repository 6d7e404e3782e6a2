"""
Tests for record loading, validation and the demo-seed bootstrap.
Run with: pytest tests/test_storage.py -v
"""

import json
import logging

import pytest

from src.schema import INSPECTIONS, PERMITS
from src.schema_validate import validate, validate_inspection, validate_permit
from src.storage import load_records, load_store, read_jsonl, records_path, write_jsonl


def _permit(**overrides):
    rec = {
        "request_no": "SR-1",
        "service_type": "Sewerage Site Inspection",
        "location": "Plot 1",
        "current_status": "Approved",
        "service_sla": "5 days",
        "remaining_time": "10:00",
        "creation_date": "2025-03-01T08:00:00",
        "updated_date": "2025-03-03T08:00:00",
        "status": "Closed",
        "owner": "Gulf Engineering",
        "permit_category": "Modification",
        "priority": "Medium",
        "zone": "North",
    }
    rec.update(overrides)
    return rec


def _inspection(**overrides):
    rec = {
        "inspection_no": "INS-1",
        "inspection_type": "Manhole Check",
        "location": "Plot 12",
        "status": "Completed",
        "scheduled_date": "2025-03-01T09:00:00",
        "completed_date": "2025-03-01T15:00:00",
        "inspector": "A. Rahman",
        "compliance_score": 80,
        "priority": "Medium",
        "zone": "North",
        "category": "Residential",
        "reinspection_required": False,
        "sla_status": "Within SLA",
        "duration": 60,
    }
    rec.update(overrides)
    return rec


class TestValidation:
    def test_valid_records(self):
        assert validate_permit(_permit()) == (True, [])
        assert validate_inspection(_inspection()) == (True, [])
        assert validate(_inspection(compliance_score=None, completed_date=None, duration=None), INSPECTIONS)[0]

    def test_missing_keys_short_circuit(self):
        rec = _permit()
        del rec["zone"]
        ok, errs = validate_permit(rec)
        assert not ok
        assert errs == ["Missing key: zone"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"status": "Open"},
            {"priority": "Urgent"},
            {"creation_date": "yesterday"},
            {"remaining_time": 12},
            {"request_no": ""},
        ],
    )
    def test_invalid_permits(self, overrides):
        ok, errs = validate(_permit(**overrides), PERMITS)
        assert not ok and len(errs) == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"status": "Done"},
            {"sla_status": "Late"},
            {"compliance_score": 120},
            {"compliance_score": "80"},
            {"compliance_score": True},
            {"completed_date": "soon"},
            {"reinspection_required": "no"},
            {"duration": "1h"},
        ],
    )
    def test_invalid_inspections(self, overrides):
        ok, errs = validate(_inspection(**overrides), INSPECTIONS)
        assert not ok and len(errs) == 1


class TestLoadStore:
    def test_loads_immutable_store(self, tmp_path):
        write_jsonl(records_path(PERMITS, tmp_path), [_permit(request_no="a"), _permit(request_no="b")])
        store = load_store(PERMITS, tmp_path)
        assert isinstance(store, tuple)
        assert [r["request_no"] for r in store] == ["a", "b"]
        with pytest.raises(TypeError):
            store[0]["zone"] = "South"

    def test_skips_malformed_lines(self, tmp_path, caplog):
        path = records_path(INSPECTIONS, tmp_path)
        path.write_text(
            json.dumps(_inspection()) + "\n" + "{not json\n" + "\n" + "[1, 2]\n",
            encoding="utf-8",
        )
        with caplog.at_level(logging.WARNING, logger="src.storage"):
            rows = read_jsonl(path)
        assert len(rows) == 1
        assert "malformed" in caplog.text

    def test_invalid_records_skipped_and_reported(self, tmp_path):
        write_jsonl(records_path(PERMITS, tmp_path), [_permit(request_no="a"), _permit(request_no="b", priority="Urgent")])
        rows, errors = load_records(PERMITS, tmp_path)
        assert [r["request_no"] for r in rows] == ["a"]
        assert len(errors) == 1 and errors[0].startswith("permits b:")
        assert len(load_store(PERMITS, tmp_path)) == 1

    def test_strict_raises(self, tmp_path):
        write_jsonl(records_path(PERMITS, tmp_path), [_permit(status="Pending")])
        with pytest.raises(ValueError):
            load_store(PERMITS, tmp_path, strict=True)

    def test_missing_file_is_empty(self, tmp_path):
        assert load_store(INSPECTIONS, tmp_path) == ()

    def test_bootstraps_from_demo_seed(self, tmp_path):
        seed = tmp_path / "demo_seed" / "permits.jsonl"
        write_jsonl(seed, [_permit(request_no="seeded")])
        store = load_store(PERMITS, tmp_path)
        assert [r["request_no"] for r in store] == ["seeded"]
        assert records_path(PERMITS, tmp_path).exists()

    def test_live_file_wins_over_seed(self, tmp_path):
        write_jsonl(tmp_path / "demo_seed" / "permits.jsonl", [_permit(request_no="seeded")])
        write_jsonl(records_path(PERMITS, tmp_path), [_permit(request_no="live")])
        assert [r["request_no"] for r in load_store(PERMITS, tmp_path)] == ["live"]
