"""
Live ride telemetry aggregation.

Turns a stream of position samples into running ride statistics and a
recorded route for one ride session at a time.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from ..errors import AlreadyActive, NotActive
from ..metrics.ride_metrics import (
    average_speed_mps,
    estimate_calories,
    max_plausible_increment_m,
    sample_distance_m,
)
from ..storage.data_models import PositionSample, RideRecord
from ..utils.clock import SystemClock
from ..utils.config import TrackerConfig, get_config

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"


@dataclass(frozen=True)
class LiveRideStats:
    """Snapshot of a running session for display."""
    state: SessionState
    distance_m: float
    duration_s: int
    current_speed_mps: float
    sample_count: int
    rejected_count: int

    @property
    def average_speed_mps(self) -> float:
        return average_speed_mps(self.distance_m, self.duration_s)

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def current_speed_kph(self) -> float:
        return self.current_speed_mps * 3.6


class TelemetryAggregator:
    """
    Accumulates distance, duration and route for a single ride session.

    Distance grows incrementally, one haversine segment per accepted sample.
    A segment longer than the elapsed time allows at the maximum plausible
    speed is treated as a GPS jump: the sample is still recorded in the route
    but adds nothing to the distance and does not become the reference point
    for the next segment.

    Duration is measured from the clock over active (non-paused) time, so it
    keeps advancing when the location feed goes quiet.

    Every public operation holds one exclusive lock, so a sample arriving
    while the session is paused or finalized is applied fully or not at all.
    """

    def __init__(self, clock=None, config: Optional[TrackerConfig] = None):
        self.clock = clock or SystemClock()
        self.config = config or get_config()
        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._reset()

    def _reset(self):
        self._distance_m = 0.0
        self._last_accepted: Optional[PositionSample] = None
        self._route: List[PositionSample] = []
        self._sample_count = 0
        self._rejected_count = 0
        self._current_speed_mps = 0.0
        self._start_time: Optional[datetime] = None
        self._active_seconds = 0.0  # closed active spans
        self._span_started: Optional[datetime] = None  # open active span
        self._last_duration = 0

    # ------------------------------------------------------------- properties

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is not SessionState.IDLE

    @property
    def distance_m(self) -> float:
        return self._distance_m

    @property
    def route(self) -> Tuple[PositionSample, ...]:
        with self._lock:
            return tuple(self._route)

    @property
    def sample_count(self) -> int:
        return self._sample_count

    @property
    def start_time(self) -> Optional[datetime]:
        return self._start_time

    @property
    def duration_s(self) -> int:
        with self._lock:
            return self._duration_locked(self.clock.now())

    # ------------------------------------------------------------- operations

    def start(self, initial_position: Optional[PositionSample] = None) -> None:
        """
        Begin a new session.

        Args:
            initial_position: Last known fix before tracking; recorded in the
                route but not used as a distance reference

        Raises:
            AlreadyActive: A session is already running or paused
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise AlreadyActive("Ride session already in progress")
            self._reset()
            now = self.clock.now()
            self._start_time = now
            self._span_started = now
            if initial_position is not None:
                self._route.append(initial_position)
            self._state = SessionState.ACTIVE
        logger.info("Ride session started at %s", now.isoformat())

    def accept(self, sample: PositionSample) -> bool:
        """
        Feed one position sample.

        Returns:
            True when the sample advanced the ride, False when it was dropped
            (session paused) or rejected as a GPS jump

        Raises:
            NotActive: No session has been started
        """
        with self._lock:
            if self._state is SessionState.IDLE:
                raise NotActive("Ride session not started")
            if self._state is SessionState.PAUSED:
                logger.debug("Dropped sample at %s while paused", sample.timestamp.isoformat())
                return False

            self._route.append(sample)
            self._sample_count += 1
            self._current_speed_mps = sample.speed_mps

            last = self._last_accepted
            if last is not None:
                increment = sample_distance_m(last, sample, self.config.telemetry.earth_radius_m)
                elapsed = (sample.timestamp - last.timestamp).total_seconds()
                limit = max_plausible_increment_m(elapsed, self.config.telemetry.max_plausible_speed_kph)
                if increment > limit:
                    self._rejected_count += 1
                    logger.warning(
                        "Rejected GPS jump of %.1f m over %.1f s (limit %.1f m)",
                        increment, elapsed, limit,
                    )
                    return False
                self._distance_m += increment

            self._last_accepted = sample
            return True

    def consume(self, samples: Iterable[PositionSample]) -> int:
        """Feed a location stream; returns how many samples advanced the ride."""
        return sum(1 for sample in samples if self.accept(sample))

    def pause(self) -> None:
        """Stop accruing duration and drop incoming samples until resumed."""
        with self._lock:
            if self._state is SessionState.IDLE:
                raise NotActive("Ride session not started")
            if self._state is SessionState.PAUSED:
                return
            now = self.clock.now()
            self._active_seconds += self._open_span_seconds(now)
            self._span_started = None
            self._state = SessionState.PAUSED
        logger.info("Ride session paused")

    def resume(self) -> None:
        with self._lock:
            if self._state is SessionState.IDLE:
                raise NotActive("Ride session not started")
            if self._state is SessionState.ACTIVE:
                return
            self._span_started = self.clock.now()
            # Movement while paused does not count towards distance
            self._last_accepted = None
            self._state = SessionState.ACTIVE
        logger.info("Ride session resumed")

    def tick(self) -> LiveRideStats:
        """Current live statistics; call periodically to refresh a display."""
        with self._lock:
            return LiveRideStats(
                state=self._state,
                distance_m=self._distance_m,
                duration_s=self._duration_locked(self.clock.now()),
                current_speed_mps=self._current_speed_mps,
                sample_count=self._sample_count,
                rejected_count=self._rejected_count,
            )

    def finalize(self, user_id: str, name: Optional[str] = None,
                 activity_type: Optional[str] = None,
                 planned_route: Optional[Iterable[PositionSample]] = None) -> RideRecord:
        """
        End the session and return an immutable ride record.

        The record has no identifier yet; the ride store assigns one on save.

        Raises:
            NotActive: No session is running or paused
        """
        with self._lock:
            if self._state is SessionState.IDLE:
                raise NotActive("Ride session not started")

            now = self.clock.now()
            duration = self._duration_locked(now)
            end_time = max(now, self._start_time)
            settings = self.config.telemetry

            record = RideRecord(
                ride_id='',
                user_id=user_id,
                name=name or settings.default_ride_name,
                activity_type=activity_type or settings.default_activity_type,
                start_time=self._start_time,
                end_time=end_time,
                distance_m=self._distance_m,
                duration_s=duration,
                calories=estimate_calories(self._distance_m, self.config.goals.calories_per_km),
                route=tuple(self._route),
                planned_route=tuple(planned_route) if planned_route is not None else None,
            )

            self._state = SessionState.IDLE
            self._reset()

        logger.info(
            "Ride session finalized: %.0f m in %d s (%d samples)",
            record.distance_m, record.duration_s, len(record.route),
        )
        return record

    # -------------------------------------------------------------- internals

    def _open_span_seconds(self, now: datetime) -> float:
        if self._state is not SessionState.ACTIVE or self._span_started is None:
            return 0.0
        return max((now - self._span_started).total_seconds(), 0.0)

    def _duration_locked(self, now: datetime) -> int:
        duration = int(self._active_seconds + self._open_span_seconds(now))
        # Never report less than before if the clock steps backwards
        self._last_duration = max(self._last_duration, duration)
        return self._last_duration
