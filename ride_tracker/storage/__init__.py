"""Data models and storage for rides and goals."""

from .data_models import (
    PositionSample,
    RideRecord,
    Goal,
    GOAL_METRICS,
    GOAL_PERIODS,
    new_goal,
    create_ride_id,
    create_goal_id
)
from .base import RideStore, GoalStore, require_user
from .memory import MemoryRideStore, MemoryGoalStore
from .csv_manager import CSVStorageManager, CSVRideStore, CSVGoalStore, open_csv_stores

__all__ = [
    # Data models
    "PositionSample",
    "RideRecord",
    "Goal",
    "GOAL_METRICS",
    "GOAL_PERIODS",
    "new_goal",
    "create_ride_id",
    "create_goal_id",

    # Store contracts
    "RideStore",
    "GoalStore",
    "require_user",

    # Implementations
    "MemoryRideStore",
    "MemoryGoalStore",
    "CSVStorageManager",
    "CSVRideStore",
    "CSVGoalStore",
    "open_csv_stores"
]
