"""
Main module for the ride tracker system.
Provides a high-level interface for recording rides and tracking goals.
"""
import logging
from typing import Any, Dict, List, Optional

from .core.telemetry import LiveRideStats, TelemetryAggregator
from .goals.engine import GoalRecalculationEngine, RecalculationResult
from .goals.periods import period_end_for
from .metrics.ride_metrics import format_distance, format_duration
from .storage.base import GoalStore, RideStore, require_user
from .storage.csv_manager import CSVRideStore, open_csv_stores
from .storage.data_models import Goal, PositionSample, RideRecord, new_goal
from .utils.clock import SystemClock
from .utils.config import get_config

logger = logging.getLogger(__name__)


class RideTracker:
    """
    Ride tracker facade that wires telemetry, storage and goal recalculation
    together for one signed-in user.
    """

    def __init__(self, user_id: Optional[str] = None, data_dir: Optional[str] = None,
                 ride_store: Optional[RideStore] = None, goal_store: Optional[GoalStore] = None,
                 clock=None):
        self.config = get_config()
        self.config.validate_configuration()
        self.clock = clock or SystemClock()
        self.user_id = user_id

        if ride_store is None or goal_store is None:
            csv_rides, csv_goals = open_csv_stores(data_dir)
            ride_store = ride_store or csv_rides
            goal_store = goal_store or csv_goals
        self.ride_store = ride_store
        self.goal_store = goal_store

        self.telemetry = TelemetryAggregator(self.clock, self.config)
        self.goals = GoalRecalculationEngine(self.ride_store, self.goal_store, self.clock, self.config)
        logger.info("Ride tracker initialized for user %s", user_id or "<anonymous>")

    # ------------------------------------------------------------------ rides

    def start_ride(self, initial_position: Optional[PositionSample] = None) -> None:
        require_user(self.user_id)
        self.telemetry.start(initial_position)

    def record_position(self, sample: PositionSample) -> bool:
        return self.telemetry.accept(sample)

    def pause_ride(self) -> None:
        self.telemetry.pause()

    def resume_ride(self) -> None:
        self.telemetry.resume()

    def live_stats(self) -> LiveRideStats:
        return self.telemetry.tick()

    def finish_ride(self, name: Optional[str] = None, save: bool = True,
                    update_goals: bool = True) -> RideRecord:
        """
        Stop the current ride and optionally persist it.

        Args:
            name: Ride name (defaults to the configured ride name)
            save: Store the ride; False discards it after finalizing
            update_goals: Recalculate goal progress after saving

        Returns:
            The finalized ride record (with its stored ID when saved)
        """
        user_id = require_user(self.user_id)
        ride = self.telemetry.finalize(user_id, name=name)
        if not save:
            logger.info("Ride discarded")
            return ride

        ride = ride.with_id(self.ride_store.save(ride))
        logger.info(
            "Saved ride %s: %s in %s",
            ride.ride_id, format_distance(ride.distance_m), format_duration(ride.duration_s),
        )
        if update_goals:
            self.recalculate_goals()
        return ride

    def list_rides(self) -> List[RideRecord]:
        return self.ride_store.list(require_user(self.user_id))

    def delete_ride(self, ride_id: str) -> None:
        self.ride_store.delete(ride_id)

    # ------------------------------------------------------------------ goals

    def create_goal(self, name: str, metric: str, target_value: float, period: str = 'weekly') -> Goal:
        """Create an active goal whose period starts now."""
        user_id = require_user(self.user_id)
        now = self.clock.now()
        goal = new_goal(
            user_id=user_id,
            name=name,
            metric=metric,
            target_value=target_value,
            period=period,
            period_start=now,
            period_end=period_end_for(period, now, self.config.goals.weekly_period_days),
            created_at=now,
        )
        goal = goal.with_updates(goal_id=self.goal_store.save(goal))
        logger.info("Created goal %s: %s", goal.goal_id, goal.description)
        return goal

    def list_goals(self, active_only: Optional[bool] = None) -> List[Goal]:
        return self.goal_store.list(require_user(self.user_id), active_only)

    def recalculate_goals(self) -> RecalculationResult:
        return self.goals.recalculate(self.user_id)

    def renew_expired_goals(self) -> List[Goal]:
        return self.goals.renew_expired(self.user_id)

    def get_storage_info(self) -> Dict[str, Any]:
        """Get information about stored data (CSV stores only)."""
        if isinstance(self.ride_store, CSVRideStore):
            return self.ride_store.manager.get_storage_stats()
        return {}


# Convenience functions
def setup_ride_tracker(user_id: str, data_dir: Optional[str] = None, clock=None,
                       **telemetry_settings) -> RideTracker:
    """
    Setup and configure a ride tracker backed by CSV stores.

    Args:
        user_id: Signed-in user
        data_dir: Data directory path
        clock: Optional clock (defaults to the system clock)
        **telemetry_settings: Overrides such as max_plausible_speed_kph

    Returns:
        Configured RideTracker instance
    """
    if telemetry_settings:
        get_config().update_telemetry_settings(**telemetry_settings)
    return RideTracker(user_id=user_id, data_dir=data_dir, clock=clock or SystemClock())
