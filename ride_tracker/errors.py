"""
Error types for the ride tracker system.

Session misuse errors are programmer errors and are raised immediately.
AggregationFailure is raised for a single goal and handled at the per-goal
boundary of a recalculation pass.
"""
from typing import Optional


class RideTrackerError(Exception):
    """Base class for all ride tracker errors."""


class SessionStateError(RideTrackerError):
    """A telemetry session operation was called in the wrong state."""


class NotActive(SessionStateError):
    """The telemetry session has not been started (or was already finalized)."""


class AlreadyActive(SessionStateError):
    """A telemetry session is already running."""


class Unauthenticated(RideTrackerError):
    """No current user context for an operation that requires one."""


class RecordNotFound(RideTrackerError):
    """A goal or ride referenced by identifier does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class AggregationFailure(RideTrackerError):
    """Recalculating a single goal failed."""

    def __init__(self, goal_id: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"goal {goal_id}: {message}")
        self.goal_id = goal_id
        self.cause = cause
