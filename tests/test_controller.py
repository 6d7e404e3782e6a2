"""
Tests for the dashboard controller: state ownership, derived views and the
memo that every transition clears.
Run with: pytest tests/test_controller.py -v
"""

import pytest

import src.controller as controller_module
from src.controller import DashboardController
from src.drilldown import GoBack, Navigate, SetGroupByLevels
from src.schema import PERMITS
from src.settings import Settings


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


STORE = [
    _permit(request_no="SR-1", zone="North", priority="High", status="Opened", remaining_time="-1:00"),
    _permit(request_no="SR-2", zone="North", priority="Low"),
    _permit(request_no="SR-3", zone="South", priority="High", owner="Horizon Developers"),
    _permit(request_no="SR-4", zone="South", priority="Medium", owner="Horizon Developers"),
    _permit(request_no="SR-5", zone="East", priority="Low", status="Opened"),
]


def _controller(cache_enabled=True):
    return DashboardController(STORE, PERMITS, Settings(cache_enabled=cache_enabled))


def _ids(records):
    return [r["request_no"] for r in records]


class TestDrillDown:
    def test_starts_at_root(self):
        c = _controller()
        assert c.breadcrumb == [{"label": "Overview", "type": None, "value": None}]
        assert c.get_filtered_by_drill_down() == list(STORE)

    def test_navigate_and_back(self):
        c = _controller()
        before = c.get_filtered_by_drill_down()
        c.navigate_drill_down("zone", "North")
        assert _ids(c.get_filtered_by_drill_down()) == ["SR-1", "SR-2"]
        c.go_back_drill_down()
        assert c.get_filtered_by_drill_down() == before

    def test_group_marker_does_not_filter(self):
        c = _controller()
        c.navigate_drill_down("status", "_group_status")
        assert c.get_filtered_by_drill_down() == list(STORE)
        assert c.group_levels() == ["status"]

    def test_reset_matches_global_filter(self):
        c = _controller()
        c.update_filter("owner", "Horizon Developers")
        c.navigate_drill_down("zone", "South")
        c.navigate_drill_down("priority", "High")
        c.reset_drill_down()
        assert len(c.drill_down.breadcrumb) == 1
        assert c.get_filtered_by_drill_down() == c.filtered_records()
        assert _ids(c.filtered_records()) == ["SR-3", "SR-4"]

    def test_dispatch(self):
        c = _controller()
        c.dispatch(Navigate("zone", "East"))
        assert _ids(c.get_filtered_by_drill_down()) == ["SR-5"]
        c.dispatch(GoBack())
        assert c.drill_down.level == 0
        c.dispatch(SetGroupByLevels(("zone", "priority")))
        assert c.drill_down.group_by_levels == ("zone", "priority")

    def test_unknown_dimension(self):
        with pytest.raises(ValueError):
            _controller().navigate_drill_down("inspector", "A. Rahman")


class TestGroupTreeAndMetrics:
    def test_group_tree_follows_levels(self):
        c = _controller()
        c.set_group_by_levels(["zone", "priority"])
        tree = c.group_tree()
        assert [n.name for n in tree] == ["North", "South", "East"]
        assert sum(leaf.count for n in tree for leaf in n.children) == len(STORE)
        c.clear_group_by_levels()
        assert c.group_tree() == []

    def test_group_tree_explicit_levels(self):
        c = _controller()
        assert [n.name for n in c.group_tree(["priority"])] == ["High", "Low", "Medium"]

    def test_metrics_follow_drill_down(self):
        c = _controller()
        assert c.metrics()["total"] == 5
        c.navigate_drill_down("zone", "North")
        m = c.metrics()
        assert (m["total"], m["opened"], m["breached"], m["sla_compliance"]) == (2, 1, 1, 50)


class TestFilters:
    def test_update_and_reset(self):
        c = _controller()
        c.update_filter("zone", "South")
        assert c.active_filters == {"zone": "South"}
        assert len(c.filtered_records()) == 2
        c.reset_filters()
        assert c.active_filters == {}
        assert len(c.filtered_records()) == 5

    def test_set_filters_merges_with_defaults(self):
        c = _controller()
        c.set_filters({"priority": "High"})
        assert c.filters["zone"] == "all"
        assert _ids(c.filtered_records()) == ["SR-1", "SR-3"]

    def test_set_filters_rejects_unknown_keys(self):
        with pytest.raises(ValueError):
            _controller().set_filters({"sla_status": "SLA Breached"})

    def test_filters_property_is_a_copy(self):
        c = _controller()
        c.filters["zone"] = "North"
        assert c.filters["zone"] == "all"


class TestMemo:
    @pytest.fixture
    def calls(self, monkeypatch):
        seen = []
        real = controller_module.apply_filters

        def counting(records, filters, schema):
            seen.append(dict(filters))
            return real(records, filters, schema)

        monkeypatch.setattr(controller_module, "apply_filters", counting)
        return seen

    def test_cache_hits_until_transition(self, calls):
        c = _controller()
        first = c.get_filtered_by_drill_down()
        assert c.get_filtered_by_drill_down() == first
        assert len(calls) == 1
        c.navigate_drill_down("zone", "North")
        assert len(c.get_filtered_by_drill_down()) == 2
        assert len(calls) == 2

    def test_filter_change_invalidates(self):
        c = _controller()
        assert c.metrics()["total"] == 5
        c.update_filter("zone", "East")
        assert c.metrics()["total"] == 1

    def test_mutating_a_result_leaves_cache_intact(self):
        c = _controller()
        c.get_filtered_by_drill_down().clear()
        c.filtered_records().pop()
        c.metrics()["total"] = -1
        c.group_tree().clear()
        assert len(c.get_filtered_by_drill_down()) == 5
        assert len(c.filtered_records()) == 5
        assert c.metrics()["total"] == 5

    def test_mutating_group_tree_leaves_cache_intact(self):
        c = _controller()
        c.set_group_by_levels(["zone"])
        c.group_tree().clear()
        assert [n.name for n in c.group_tree()] == ["North", "South", "East"]

    def test_cache_can_be_disabled(self, calls):
        c = _controller(cache_enabled=False)
        assert c.get_filtered_by_drill_down() == c.get_filtered_by_drill_down()
        assert len(calls) == 2
