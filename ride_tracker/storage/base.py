"""
Store contracts consumed by the goal engine and the ride tracker facade.

Any object with these methods can back the engine: the CSV and in-memory
stores shipped here, or an adapter over a hosted document database.
"""
from typing import Any, Dict, List, Optional, Protocol

from ..errors import Unauthenticated
from .data_models import Goal, RideRecord


class RideStore(Protocol):
    def list(self, user_id: str) -> List[RideRecord]: ...

    def save(self, ride: RideRecord) -> str: ...

    def delete(self, ride_id: str) -> None: ...


class GoalStore(Protocol):
    def list(self, user_id: str, active_only: Optional[bool] = None) -> List[Goal]: ...

    def get(self, goal_id: str) -> Goal: ...

    def save(self, goal: Goal) -> str: ...

    def update(self, goal_id: str, fields: Dict[str, Any]) -> None: ...

    def delete(self, goal_id: str) -> None: ...


def require_user(user_id: Optional[str]) -> str:
    """Return ``user_id`` or raise Unauthenticated when there is no user context."""
    if not user_id:
        raise Unauthenticated("User not authenticated")
    return user_id
