"""Runtime settings read from the environment, with a Streamlit secrets fallback.

Every value has a default so the engine runs with no configuration at all.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.constants import PERIODS, SLA_TARGET

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "data"

_logging_configured = False


def _lookup(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value:
        return value
    try:
        import streamlit as st

        secret = st.secrets.get(name)
    except Exception:
        secret = None
    return str(secret) if secret not in (None, "") else None


def _as_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def _as_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    s = str(raw).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    return default


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "WARNING"
    sla_target: int = SLA_TARGET
    default_period: str = "month"
    cache_enabled: bool = True


def load_settings() -> Settings:
    period = (_lookup("DASHBOARD_DEFAULT_PERIOD") or "month").strip().lower()
    if period not in PERIODS:
        period = "month"
    data_dir = _lookup("DASHBOARD_DATA_DIR")
    return Settings(
        data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
        log_level=(_lookup("DASHBOARD_LOG_LEVEL") or "WARNING").strip().upper(),
        sla_target=_as_int(_lookup("DASHBOARD_SLA_TARGET"), SLA_TARGET),
        default_period=period,
        cache_enabled=_as_bool(_lookup("DASHBOARD_CACHE_ENABLED"), True),
    )


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured log level once per process."""
    global _logging_configured
    if _logging_configured:
        return
    settings = settings or load_settings()
    level = getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True
