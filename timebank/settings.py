"""Application settings with JSON persistence.

Settings are stored at:
    ~/.timebank/settings.json      (or $TIMEBANK_HOME/settings.json)

Usage::

    settings = load_settings()
    settings.initial_energy = 120
    save_settings(settings)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any

from .energy.policy import EnergyConfig, config_from_mapping
from .timer.session import SessionKind

logger = logging.getLogger(__name__)


def app_support_dir() -> Path:
    """Where the database and settings live."""
    override = os.environ.get("TIMEBANK_HOME")
    if override:
        return Path(override)
    return Path.home() / ".timebank"


def settings_path() -> Path:
    return app_support_dir() / "settings.json"


@dataclass
class Settings:
    """All user-configurable preferences."""

    # ── timers ────────────────────────────────────────────────────────
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    staleness_hours: int = 24
    tick_interval_ms: int = 1000

    # ── energy ────────────────────────────────────────────────────────
    initial_energy: int = 150
    max_energy: int = 200
    # Partial overrides, e.g. {"priority_costs": {"urgent": 60}}
    energy_overrides: dict[str, dict[str, float]] = field(default_factory=dict)

    # ── analytics ─────────────────────────────────────────────────────
    target_balance_usd: float = 1000.0

    @property
    def durations(self) -> dict[SessionKind, int]:
        return {
            SessionKind.FOCUS: self.focus_minutes,
            SessionKind.BREAK: self.short_break_minutes,
            SessionKind.LONG_BREAK: self.long_break_minutes,
        }

    @property
    def staleness_window(self) -> timedelta:
        return timedelta(hours=self.staleness_hours)

    def energy_config(self) -> EnergyConfig:
        return config_from_mapping(self.energy_overrides)


def settings_from_dict(data: dict[str, Any]) -> Settings:
    """Build settings, ignoring keys the dataclass doesn't know."""
    valid_keys = {f.name for f in fields(Settings)}
    return Settings(**{k: v for k, v in data.items() if k in valid_keys})


def load_settings() -> Settings:
    """Load settings from disk, falling back to defaults."""
    path = settings_path()
    if not path.exists():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("settings file is not a JSON object")
        return settings_from_dict(data)
    except (OSError, ValueError, TypeError):
        logger.warning("Ignoring unreadable settings at %s", path, exc_info=True)
        return Settings()


def save_settings(settings: Settings) -> None:
    """Write settings to disk as JSON."""
    path = settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
