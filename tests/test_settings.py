"""
Tests for environment-driven settings.
Run with: pytest tests/test_settings.py -v
"""

from pathlib import Path

from src.settings import load_settings

_ENV = {
    "DASHBOARD_DATA_DIR": "/tmp/dashboard-data",
    "DASHBOARD_LOG_LEVEL": "debug",
    "DASHBOARD_SLA_TARGET": "90",
    "DASHBOARD_DEFAULT_PERIOD": "Quarter",
    "DASHBOARD_CACHE_ENABLED": "off",
}


def _set_env(monkeypatch, **overrides):
    env = dict(_ENV)
    env.update(overrides)
    for k, v in env.items():
        monkeypatch.setenv(k, v)


def test_reads_environment(monkeypatch):
    _set_env(monkeypatch)
    s = load_settings()
    assert s.data_dir == Path("/tmp/dashboard-data")
    assert s.log_level == "DEBUG"
    assert s.sla_target == 90
    assert s.default_period == "quarter"
    assert s.cache_enabled is False


def test_invalid_values_fall_back(monkeypatch):
    _set_env(
        monkeypatch,
        DASHBOARD_SLA_TARGET="ninety",
        DASHBOARD_DEFAULT_PERIOD="fortnight",
        DASHBOARD_CACHE_ENABLED="maybe",
    )
    s = load_settings()
    assert s.sla_target == 95
    assert s.default_period == "month"
    assert s.cache_enabled is True
