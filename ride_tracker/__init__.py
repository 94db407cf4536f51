"""
Ride Tracker - live ride telemetry and goal progress engine.

Accumulates distance, duration and route from a stream of GPS samples during
a ride, and keeps weekly and monthly riding goals up to date from the stored
ride history.
"""

from .main import (
    RideTracker,
    setup_ride_tracker
)

from .core.telemetry import TelemetryAggregator, LiveRideStats, SessionState
from .goals.engine import GoalRecalculationEngine, RecalculationResult
from .storage.data_models import PositionSample, RideRecord, Goal
from .storage.memory import MemoryRideStore, MemoryGoalStore
from .storage.csv_manager import CSVStorageManager, CSVRideStore, CSVGoalStore
from .utils.config import get_config, reset_config
from .utils.clock import SystemClock, ManualClock
from .errors import (
    RideTrackerError,
    NotActive,
    AlreadyActive,
    Unauthenticated,
    RecordNotFound,
    AggregationFailure
)

__version__ = "1.0.0"

# Main interface classes
__all__ = [
    # Main interfaces
    "RideTracker",
    "setup_ride_tracker",

    # Core functionality
    "TelemetryAggregator",
    "LiveRideStats",
    "SessionState",
    "GoalRecalculationEngine",
    "RecalculationResult",

    # Data management
    "PositionSample",
    "RideRecord",
    "Goal",
    "MemoryRideStore",
    "MemoryGoalStore",
    "CSVStorageManager",
    "CSVRideStore",
    "CSVGoalStore",

    # Configuration
    "get_config",
    "reset_config",
    "SystemClock",
    "ManualClock",

    # Errors
    "RideTrackerError",
    "NotActive",
    "AlreadyActive",
    "Unauthenticated",
    "RecordNotFound",
    "AggregationFailure"
]
