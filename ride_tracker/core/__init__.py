"""Core live-ride processing."""

from .telemetry import TelemetryAggregator, LiveRideStats, SessionState

__all__ = [
    "TelemetryAggregator",
    "LiveRideStats",
    "SessionState"
]
