"""In-memory ride and goal stores."""
import logging
import threading
from typing import Any, Dict, List, Optional

from ..errors import RecordNotFound
from .base import require_user
from .data_models import (
    Goal,
    RideRecord,
    apply_goal_update,
    create_goal_id,
    create_ride_id,
    sort_goals_newest_first,
)

logger = logging.getLogger(__name__)


class MemoryRideStore:
    """Dict-backed ride store, safe to share between threads."""

    def __init__(self, rides: Optional[List[RideRecord]] = None):
        self._rides: Dict[str, RideRecord] = {}
        self._lock = threading.Lock()
        for ride in rides or []:
            self.save(ride)

    def list(self, user_id: str) -> List[RideRecord]:
        require_user(user_id)
        with self._lock:
            rides = [r for r in self._rides.values() if r.user_id == user_id]
        return sorted(rides, key=lambda r: r.start_time)

    def save(self, ride: RideRecord) -> str:
        require_user(ride.user_id)
        if not ride.ride_id:
            ride = ride.with_id(create_ride_id())
        with self._lock:
            self._rides[ride.ride_id] = ride
        logger.debug("Saved ride %s for user %s", ride.ride_id, ride.user_id)
        return ride.ride_id

    def delete(self, ride_id: str) -> None:
        with self._lock:
            if ride_id not in self._rides:
                raise RecordNotFound('ride', ride_id)
            del self._rides[ride_id]


class MemoryGoalStore:
    """Dict-backed goal store, safe to share between threads."""

    def __init__(self, goals: Optional[List[Goal]] = None):
        self._goals: Dict[str, Goal] = {}
        self._lock = threading.Lock()
        for goal in goals or []:
            self.save(goal)

    def list(self, user_id: str, active_only: Optional[bool] = None) -> List[Goal]:
        require_user(user_id)
        with self._lock:
            goals = [g for g in self._goals.values() if g.user_id == user_id]
        if active_only is not None:
            goals = [g for g in goals if g.is_active == active_only]
        return sort_goals_newest_first(goals)

    def get(self, goal_id: str) -> Goal:
        with self._lock:
            try:
                return self._goals[goal_id]
            except KeyError:
                raise RecordNotFound('goal', goal_id) from None

    def save(self, goal: Goal) -> str:
        require_user(goal.user_id)
        if not goal.goal_id:
            goal = goal.with_updates(goal_id=create_goal_id())
        with self._lock:
            self._goals[goal.goal_id] = goal
        logger.debug("Saved goal %s for user %s", goal.goal_id, goal.user_id)
        return goal.goal_id

    def update(self, goal_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            if goal_id not in self._goals:
                raise RecordNotFound('goal', goal_id)
            self._goals[goal_id] = apply_goal_update(self._goals[goal_id], fields)

    def delete(self, goal_id: str) -> None:
        with self._lock:
            if goal_id not in self._goals:
                raise RecordNotFound('goal', goal_id)
            del self._goals[goal_id]

