"""
Tests for the metrics aggregator: empty-set conventions, SLA compliance,
null-score handling, aging buckets and reporting periods.
Run with: pytest tests/test_metrics.py -v
"""

from datetime import datetime

import pytest

from src.metrics import (
    average_score,
    backlog_aging,
    calculate_metrics,
    dimension_breakdown,
    filter_by_period,
    kpi_summary,
    parse_remaining_time_hours,
    pct,
    period_start,
    period_trends,
    previous_period_metrics,
    round_half_up,
    score_bands,
    shift_months,
    sla_compliance,
    sla_risk_bands,
)
from src.schema import INSPECTIONS, PERMITS


def _permit(**overrides):
    rec = {
        "request_no": "SR-1",
        "service_type": "Sewerage Site Inspection",
        "current_status": "Approved",
        "status": "Closed",
        "owner": "Gulf Engineering",
        "zone": "North",
        "priority": "Medium",
        "remaining_time": "10:00",
        "creation_date": "2025-03-01T08:00:00",
        "updated_date": "2025-03-03T08:00:00",
    }
    rec.update(overrides)
    return rec


def _inspection(**overrides):
    rec = {
        "inspection_no": "INS-1",
        "inspection_type": "Manhole Check",
        "status": "Completed",
        "inspector": "A. Rahman",
        "zone": "North",
        "priority": "Medium",
        "category": "Residential",
        "compliance_score": 80,
        "sla_status": "Within SLA",
        "scheduled_date": "2025-03-01T09:00:00",
        "reinspection_required": False,
        "duration": 60,
    }
    rec.update(overrides)
    return rec


class TestRounding:
    @pytest.mark.parametrize("x,expected", [(2.5, 3), (2.49, 2), (0.5, 1), (66.666, 67), (-0.5, 0)])
    def test_round_half_up(self, x, expected):
        assert round_half_up(x) == expected

    def test_pct(self):
        assert pct(1, 3) == 33
        assert pct(2, 3) == 67
        assert pct(1, 0) == 0
        assert pct(1, 0, empty=100) == 100


class TestPermitMetrics:
    def test_scenario(self):
        records = (
            [_permit(status="Opened", remaining_time="-2:00") for _ in range(3)]
            + [_permit(status="Opened") for _ in range(3)]
            + [_permit(status="Closed") for _ in range(4)]
        )
        m = calculate_metrics(records, PERMITS)
        assert {k: m[k] for k in ("total", "opened", "closed", "breached", "sla_compliance")} == {
            "total": 10,
            "opened": 6,
            "closed": 4,
            "breached": 3,
            "sla_compliance": 70,
        }
        assert m["within_sla"] == 7
        assert m["completion_rate"] == 40

    def test_empty(self):
        m = calculate_metrics([], PERMITS)
        assert m["total"] == 0
        assert m["sla_compliance"] == 100
        assert m["avg_processing_days"] == 0
        assert m["completion_rate"] == 0
        assert m["high_priority_sla"] == 100

    def test_all_breached(self):
        records = [_permit(remaining_time="-0:30"), _permit(remaining_time="-12:00")]
        assert sla_compliance(records, PERMITS) == 0

    def test_processing_days_round_up(self):
        records = [
            _permit(creation_date="2025-03-01T08:00:00", updated_date="2025-03-03T09:00:00"),
            _permit(creation_date="2025-03-01T08:00:00", updated_date="2025-03-02T08:00:00"),
            _permit(creation_date="2025-03-01T08:00:00", updated_date=None),
        ]
        # ceil(2.04) = 3 and 1; the undated record is left out
        assert calculate_metrics(records, PERMITS)["avg_processing_days"] == 2

    def test_high_priority(self):
        records = [
            _permit(priority="High", remaining_time="-1:00"),
            _permit(priority="High"),
            _permit(priority="Low"),
        ]
        m = calculate_metrics(records, PERMITS)
        assert m["high_priority"] == 2
        assert m["high_priority_sla"] == 50


class TestInspectionMetrics:
    def test_counts_and_rates(self):
        records = [
            _inspection(status="Completed", compliance_score=90),
            _inspection(status="Completed", compliance_score=None),
            _inspection(status="Completed", compliance_score=70),
            _inspection(status="Failed", compliance_score=40, sla_status="SLA Breached", reinspection_required=True),
            _inspection(status="Pending", compliance_score=None, duration=None),
            _inspection(status="Scheduled", compliance_score=None, sla_status="N/A", duration=None),
        ]
        m = calculate_metrics(records, INSPECTIONS)
        assert (m["completed"], m["failed"], m["pending"], m["scheduled"]) == (3, 1, 1, 1)
        assert m["pass_rate"] == 75
        assert m["avg_score"] == 67  # (90 + 70 + 40) / 3, nulls excluded
        assert m["breached"] == 1
        assert m["sla_compliance"] == 83
        assert m["within_sla"] == 4
        assert m["reinspections"] == 1
        assert m["reinspection_rate"] == 17
        assert m["avg_duration"] == 60

    def test_empty(self):
        m = calculate_metrics([], INSPECTIONS)
        assert m["sla_compliance"] == 100
        assert m["pass_rate"] == 100
        assert m["avg_score"] == 0
        assert m["avg_duration"] == 0

    def test_null_score_is_not_zero(self):
        records = [_inspection(compliance_score=100), _inspection(compliance_score=None)]
        assert average_score(records, INSPECTIONS) == 100

    def test_no_outcomes_yet(self):
        records = [_inspection(status="Pending"), _inspection(status="Scheduled")]
        assert calculate_metrics(records, INSPECTIONS)["pass_rate"] == 100


class TestSlaRisk:
    @pytest.mark.parametrize(
        "raw,hours",
        [("-12:30", -12.5), ("5:15", 5.25), ("48:00", 48.0), ("", 0.0), (None, 0.0), ("soon", 0.0)],
    )
    def test_parse_remaining_time(self, raw, hours):
        assert parse_remaining_time_hours(raw) == hours

    def test_bands(self):
        records = [
            _permit(remaining_time="-1:00"),
            _permit(remaining_time="3:00"),
            _permit(remaining_time="24:00"),
            _permit(remaining_time="72:00"),
        ]
        assert sla_risk_bands(records) == {"critical": 1, "at_risk": 2, "on_track": 1}


class TestBacklogAging:
    def test_buckets_with_injected_now(self):
        now = datetime(2025, 3, 10, 0, 0)
        records = [
            _permit(status="Opened", creation_date="2025-03-09T12:00:00"),  # 1 day
            _permit(status="Opened", creation_date="2025-03-07T00:00:00"),  # 3 days
            _permit(status="Opened", creation_date="2025-03-05T00:00:00"),  # 5 days
            _permit(status="Opened", creation_date="2025-03-02T12:00:00"),  # ceil(7.5) = 8 days
            _permit(status="Closed", creation_date="2025-01-01T00:00:00"),
            _permit(status="Opened", creation_date="not a date"),
        ]
        assert backlog_aging(records, now=now) == {
            "less_than_3_days": 1,
            "three_to_7_days": 2,
            "more_than_7_days": 1,
        }

    def test_deterministic(self):
        now = datetime(2025, 3, 10)
        records = [_permit(status="Opened", creation_date="2025-03-01T00:00:00")]
        assert backlog_aging(records, now=now) == backlog_aging(records, now=now)


class TestScoresAndBreakdowns:
    def test_score_bands(self):
        records = [
            _inspection(compliance_score=95),
            _inspection(compliance_score=90),
            _inspection(compliance_score=75),
            _inspection(compliance_score=20),
            _inspection(compliance_score=None),
        ]
        assert score_bands(records) == {"excellent": 2, "good": 1, "poor": 1}

    def test_dimension_breakdown(self):
        records = [
            _inspection(inspector="A", status="Completed", compliance_score=80),
            _inspection(inspector="A", status="Failed", compliance_score=50, sla_status="SLA Breached"),
            _inspection(inspector="B", status="Pending", compliance_score=None),
        ]
        stats = dimension_breakdown(records, "inspector", INSPECTIONS)
        assert stats["A"] == {"total": 2, "breached": 1, "sla_compliance": 50, "avg_score": 65, "completed": 1}
        assert stats["B"]["avg_score"] == 0

    def test_kpi_summary_permits(self):
        records = [
            _permit(status="Opened", current_status="Pending"),
            _permit(status="Opened", current_status="Technical Review"),
            _permit(status="Closed", current_status="Approved"),
        ]
        kpi = kpi_summary(records, PERMITS)
        assert (kpi["total"], kpi["opened"], kpi["closed"]) == (3, 2, 1)
        assert kpi["by_current_status"] == {"Pending": 1, "Technical Review": 1, "Approved": 1}

    def test_kpi_summary_inspections(self):
        kpi = kpi_summary([_inspection(status="In Progress", compliance_score=None)], INSPECTIONS)
        assert kpi["in_progress"] == 1
        assert kpi["avg_compliance_score"] == 0


class TestPeriods:
    def test_shift_months_clamps_day(self):
        assert shift_months(datetime(2025, 3, 31), -1) == datetime(2025, 2, 28)
        assert shift_months(datetime(2025, 1, 15), -2) == datetime(2024, 11, 15)

    def test_period_start(self):
        ref = datetime(2025, 6, 30)
        assert period_start(ref, "week") == datetime(2025, 6, 23)
        assert period_start(ref, "quarter") == datetime(2025, 3, 30)
        assert period_start(ref, "year", 2) == datetime(2023, 6, 30)
        with pytest.raises(ValueError):
            period_start(ref, "fortnight")

    def test_filter_by_period_anchors_on_latest_record(self):
        records = [
            _permit(request_no="a", creation_date="2025-06-30T10:00:00"),
            _permit(request_no="b", creation_date="2025-06-05T10:00:00"),
            _permit(request_no="c", creation_date="2025-05-01T10:00:00"),
            _permit(request_no="d", creation_date=None),
        ]
        kept = filter_by_period(records, "month", PERMITS)
        assert [r["request_no"] for r in kept] == ["a", "b"]

    def test_filter_by_period_undated_input_unchanged(self):
        records = [_permit(creation_date=None)]
        assert filter_by_period(records, "week", PERMITS) == records

    def test_previous_period_and_trends(self):
        now = datetime(2025, 6, 30)
        records = [
            _permit(creation_date="2025-05-10T00:00:00", status="Closed"),
            _permit(creation_date="2025-05-20T00:00:00", status="Opened", remaining_time="-1:00"),
            _permit(creation_date="2025-06-10T00:00:00", status="Closed"),
        ]
        prev = previous_period_metrics(records, "month", PERMITS, now=now)
        assert prev == {"total": 2, "sla": 50, "rate": 50}
        current = calculate_metrics(records[2:], PERMITS)
        trends = period_trends(current, prev, PERMITS)
        assert trends == {"sla": 50, "volume": -50, "rate": 50}
