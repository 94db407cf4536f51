"""Utility modules for configuration and clocks."""

from .config import (
    TrackerConfig,
    TelemetrySettings,
    GoalSettings,
    StorageSettings,
    get_config,
    reset_config
)
from .clock import SystemClock, ManualClock

__all__ = [
    "TrackerConfig",
    "TelemetrySettings",
    "GoalSettings",
    "StorageSettings",
    "get_config",
    "reset_config",
    "SystemClock",
    "ManualClock"
]
