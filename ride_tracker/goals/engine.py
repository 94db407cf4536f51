"""
Goal progress recalculation and lifecycle management.

Each active goal is recomputed from the owner's ride history over the goal's
period. Goals whose period has ended are archived with their progress frozen,
goals that reach their target are completed, and expired goals can be renewed
into a fresh goal for the next period.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..errors import AggregationFailure, Unauthenticated
from ..metrics.goal_metrics import aggregate_goal_metric, filter_rides_in_window, rides_to_frame
from ..storage.base import GoalStore, RideStore, require_user
from ..storage.data_models import Goal, RideRecord, new_goal
from ..utils.clock import SystemClock
from ..utils.config import TrackerConfig, get_config
from .periods import period_end_for

logger = logging.getLogger(__name__)


@dataclass
class RecalculationResult:
    """Outcome of one recalculation pass for a user."""
    user_id: str
    updated: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    expired: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'updated_count': self.updated_count,
            'updated': list(self.updated),
            'completed': list(self.completed),
            'expired': list(self.expired),
            'failed': list(self.failed),
            'errors': dict(self.errors),
        }


class GoalRecalculationEngine:
    """
    Recomputes goal progress from ride history.

    The engine only reads rides. Goal writes are partial updates limited to
    ``current_value``, ``is_active`` and ``completed_at``, one update per goal,
    so a failure on one goal never undoes or blocks the others.
    """

    def __init__(self, ride_store: RideStore, goal_store: GoalStore,
                 clock=None, config: Optional[TrackerConfig] = None):
        self.ride_store = ride_store
        self.goal_store = goal_store
        self.clock = clock or SystemClock()
        self.config = config or get_config()

    def recalculate(self, user_id: str) -> RecalculationResult:
        """
        Recalculate progress for all active goals of a user.

        Args:
            user_id: Owner of the goals and rides

        Returns:
            RecalculationResult listing updated, completed, expired and failed goals

        Raises:
            Unauthenticated: No user context
        """
        require_user(user_id)
        now = self.clock.now()
        goals = self.goal_store.list(user_id, active_only=True)
        logger.info("Recalculating progress for %d goals of user %s", len(goals), user_id)

        result = RecalculationResult(user_id=user_id)
        for goal in goals:
            try:
                self._recalculate_goal(goal, user_id, now, result)
            except AggregationFailure as e:
                logger.warning("Error updating goal %s: %s", goal.goal_id, e)
                result.failed.append(goal.goal_id)
                result.errors[goal.goal_id] = str(e)

        logger.info(
            "Recalculation for %s: %d updated, %d completed, %d expired, %d failed",
            user_id, result.updated_count, len(result.completed),
            len(result.expired), len(result.failed),
        )
        return result

    def recalculate_many(self, user_ids: Iterable[str], max_workers: int = 4) -> Dict[str, RecalculationResult]:
        """
        Recalculate several users in parallel; each user's goals are processed sequentially.

        Raises:
            Unauthenticated: Any of the user IDs is empty (checked before any work starts)
        """
        user_ids = [require_user(user_id) for user_id in dict.fromkeys(user_ids)]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {user_id: pool.submit(self.recalculate, user_id) for user_id in user_ids}
            return {user_id: future.result() for user_id, future in futures.items()}

    def compute_progress(self, goal: Goal, rides: Iterable[RideRecord]) -> float:
        """Aggregate the goal's metric over rides that started strictly inside its period."""
        df = rides_to_frame(rides)
        in_period = filter_rides_in_window(df, goal.period_start, goal.period_end)
        return aggregate_goal_metric(in_period, goal.metric, self.config.goals.calories_per_km)

    def update_progress(self, goal_id: str, value: float) -> Goal:
        """
        Write a new progress value for one goal, completing it when the target is met.

        Raises:
            RecordNotFound: The goal does not exist
        """
        goal = self.goal_store.get(goal_id)
        fields = self._progress_fields(goal, value, self.clock.now())
        self.goal_store.update(goal_id, fields)
        return goal.with_updates(**fields)

    def archive(self, goal_id: str) -> None:
        """Deactivate a goal without touching its progress."""
        self.goal_store.update(goal_id, {'is_active': False})
        logger.info("Archived goal %s", goal_id)

    def renew(self, goal: Goal) -> Goal:
        """
        Create a fresh goal for the next period.

        The new goal copies name, metric, target and period kind, starts now
        with zero progress and gets a new identifier. The old goal is not modified.
        """
        now = self.clock.now()
        renewed = new_goal(
            user_id=goal.user_id,
            name=goal.name,
            metric=goal.metric,
            target_value=goal.target_value,
            period=goal.period,
            period_start=now,
            period_end=period_end_for(goal.period, now, self.config.goals.weekly_period_days),
            created_at=now,
        )
        goal_id = self.goal_store.save(renewed)
        logger.info("Renewed goal %s as %s (%s)", goal.goal_id, goal_id, renewed.description)
        return renewed.with_updates(goal_id=goal_id)

    def renew_expired(self, user_id: str) -> List[Goal]:
        """
        Renew every expired, uncompleted goal of a user that has no successor yet.

        A successor is a goal with the same name, metric and period kind created
        at or after the expired goal's period end.
        """
        require_user(user_id)
        now = self.clock.now()
        goals = self.goal_store.list(user_id)

        renewed = []
        for goal in goals:
            if goal.is_active or goal.completed_at is not None or not goal.is_expired(now):
                continue
            if any(self._is_successor(other, goal) for other in goals):
                continue
            renewed.append(self.renew(goal))
        return renewed

    # -------------------------------------------------------------- internals

    def _recalculate_goal(self, goal: Goal, user_id: str, now: datetime, result: RecalculationResult):
        try:
            if goal.is_expired(now):
                # Progress is frozen once the period is over
                self.goal_store.update(goal.goal_id, {'is_active': False})
                result.expired.append(goal.goal_id)
                logger.info("Goal %s expired at %s", goal.goal_id, goal.period_end.isoformat())
                return

            rides = self.ride_store.list(user_id)
            value = self.compute_progress(goal, rides)
            fields = self._progress_fields(goal, value, now)
            logger.debug("Goal %s: %s = %s", goal.goal_id, goal.metric, value)
            self.goal_store.update(goal.goal_id, fields)
        except (AggregationFailure, Unauthenticated):
            raise
        except Exception as e:
            raise AggregationFailure(goal.goal_id, str(e), e) from e

        result.updated.append(goal.goal_id)
        if 'completed_at' in fields:
            result.completed.append(goal.goal_id)
            logger.info("Goal %s completed: %s", goal.goal_id, goal.description)

    def _progress_fields(self, goal: Goal, value: float, now: datetime) -> Dict[str, Any]:
        fields: Dict[str, Any] = {'current_value': float(value)}
        if value >= goal.target_value and goal.completed_at is None:
            fields['completed_at'] = now
            fields['is_active'] = False
        return fields

    @staticmethod
    def _is_successor(candidate: Goal, goal: Goal) -> bool:
        return (
            candidate.goal_id != goal.goal_id
            and candidate.name == goal.name
            and candidate.metric == goal.metric
            and candidate.period == goal.period
            and candidate.created_at >= goal.period_end
        )
