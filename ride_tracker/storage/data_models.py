"""
Data models for the ride tracker system.
Defines the structure for position samples, ride records and goals.
"""
import json
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional, Any, Tuple

from ..utils.timezone import ensure_utc, parse_timestamp


GOAL_METRICS = ('distance', 'rides', 'calories')
GOAL_PERIODS = ('weekly', 'monthly')


@dataclass(frozen=True)
class PositionSample:
    """A single fix from the location provider."""
    timestamp: datetime
    latitude: float
    longitude: float
    speed_mps: float = 0.0  # Instantaneous speed, may be noisy or zero
    accuracy_m: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, 'timestamp', ensure_utc(self.timestamp))
        validate_coordinates(self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'latitude': self.latitude,
            'longitude': self.longitude,
            'speed_mps': self.speed_mps,
            'accuracy_m': self.accuracy_m,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PositionSample':
        return cls(
            timestamp=parse_timestamp(data['timestamp']),
            latitude=float(data['latitude']),
            longitude=float(data['longitude']),
            speed_mps=float(data.get('speed_mps') or 0.0),
            accuracy_m=_optional_float(data.get('accuracy_m')),
        )


@dataclass(frozen=True)
class RideRecord:
    """A finalized (or in-progress) ride. Read-only to goal recalculation."""
    ride_id: str
    user_id: str
    name: str
    activity_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    distance_m: float = 0.0
    duration_s: int = 0
    calories: Optional[float] = None
    route: Tuple[PositionSample, ...] = ()
    planned_route: Optional[Tuple[PositionSample, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, 'start_time', ensure_utc(self.start_time))
        if self.end_time is not None:
            object.__setattr__(self, 'end_time', ensure_utc(self.end_time))
        object.__setattr__(self, 'route', tuple(self.route))
        if self.planned_route is not None:
            object.__setattr__(self, 'planned_route', tuple(self.planned_route))
        validate_ride(self)

    @property
    def average_speed_mps(self) -> float:
        """Derived from distance and duration; zero for zero-length rides."""
        if self.duration_s <= 0:
            return 0.0
        return self.distance_m / self.duration_s

    @property
    def average_speed_kph(self) -> float:
        return self.average_speed_mps * 3.6

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    def with_id(self, ride_id: str) -> 'RideRecord':
        return replace(self, ride_id=ride_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a flat dictionary for CSV storage."""
        return {
            'ride_id': self.ride_id,
            'user_id': self.user_id,
            'name': self.name,
            'activity_type': self.activity_type,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'distance_m': self.distance_m,
            'duration_s': self.duration_s,
            'calories': self.calories,
            'route': route_to_json(self.route),
            'planned_route': route_to_json(self.planned_route) if self.planned_route is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RideRecord':
        end_time = data.get('end_time')
        planned = data.get('planned_route')
        return cls(
            ride_id=str(data['ride_id']),
            user_id=str(data['user_id']),
            name=str(data.get('name') or ''),
            activity_type=str(data.get('activity_type') or 'cycling'),
            start_time=parse_timestamp(data['start_time']),
            end_time=parse_timestamp(end_time) if _present(end_time) else None,
            distance_m=float(data.get('distance_m') or 0.0),
            duration_s=int(float(data.get('duration_s') or 0)),
            calories=_optional_float(data.get('calories')),
            route=route_from_json(data.get('route')),
            planned_route=route_from_json(planned) if _present(planned) else None,
        )


@dataclass(frozen=True)
class Goal:
    """A user's riding goal over a weekly or monthly period."""
    goal_id: str
    user_id: str
    name: str
    metric: str  # 'distance' (km), 'rides' (count) or 'calories' (kcal)
    target_value: float
    period: str  # 'weekly' or 'monthly'
    period_start: datetime
    period_end: datetime
    created_at: datetime
    current_value: float = 0.0
    is_active: bool = True
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        for attr in ('period_start', 'period_end', 'created_at'):
            object.__setattr__(self, attr, ensure_utc(getattr(self, attr)))
        if self.completed_at is not None:
            object.__setattr__(self, 'completed_at', ensure_utc(self.completed_at))
        validate_goal(self)

    @property
    def progress_percentage(self) -> float:
        """Progress in percent, capped at 100."""
        if self.target_value == 0:
            return 0.0
        return min((self.current_value / self.target_value) * 100.0, 100.0)

    @property
    def is_completed(self) -> bool:
        return self.current_value >= self.target_value

    @property
    def remaining_value(self) -> float:
        return max(self.target_value - self.current_value, 0.0)

    def is_expired(self, now: datetime) -> bool:
        return ensure_utc(now) > self.period_end

    @property
    def description(self) -> str:
        per = 'per week' if self.period == 'weekly' else 'per month'
        if self.metric == 'distance':
            return f"{self.target_value} km {per}"
        if self.metric == 'rides':
            return f"{int(self.target_value)} rides {per}"
        return f"{int(self.target_value)} kcal {per}"

    def with_updates(self, **fields) -> 'Goal':
        return replace(self, **fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a flat dictionary for CSV storage."""
        return {
            'goal_id': self.goal_id,
            'user_id': self.user_id,
            'name': self.name,
            'metric': self.metric,
            'target_value': self.target_value,
            'current_value': self.current_value,
            'period': self.period,
            'period_start': self.period_start.isoformat(),
            'period_end': self.period_end.isoformat(),
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Goal':
        completed_at = data.get('completed_at')
        return cls(
            goal_id=str(data['goal_id']),
            user_id=str(data['user_id']),
            name=str(data.get('name') or ''),
            metric=str(data.get('metric') or 'distance'),
            target_value=float(data.get('target_value') or 0.0),
            current_value=float(data.get('current_value') or 0.0),
            period=str(data.get('period') or 'weekly'),
            period_start=parse_timestamp(data['period_start']),
            period_end=parse_timestamp(data['period_end']),
            is_active=_as_bool(data.get('is_active', True)),
            created_at=parse_timestamp(data['created_at']),
            completed_at=parse_timestamp(completed_at) if _present(completed_at) else None,
        )


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not (-90.0 <= latitude <= 90.0):
        raise ValueError(f"Latitude out of range: {latitude}")
    if not (-180.0 <= longitude <= 180.0):
        raise ValueError(f"Longitude out of range: {longitude}")


def validate_ride(ride: RideRecord) -> None:
    """Check ride record invariants."""
    if not math.isfinite(ride.distance_m) or ride.distance_m < 0:
        raise ValueError(f"Ride distance must be a non-negative number, got {ride.distance_m}")
    if ride.duration_s < 0:
        raise ValueError(f"Ride duration cannot be negative, got {ride.duration_s}")
    if ride.end_time is not None and ride.end_time < ride.start_time:
        raise ValueError("Ride end_time is before start_time")


def validate_goal(goal: Goal) -> None:
    """Check goal invariants."""
    if goal.metric not in GOAL_METRICS:
        raise ValueError(f"Unknown goal metric: {goal.metric}")
    if goal.period not in GOAL_PERIODS:
        raise ValueError(f"Unknown goal period: {goal.period}")
    if goal.current_value < 0:
        raise ValueError("Goal current_value cannot be negative")
    if goal.target_value < 0:
        raise ValueError("Goal target_value cannot be negative")
    if goal.period_end <= goal.period_start:
        raise ValueError("Goal period_end must be after period_start")


def route_to_json(route: Optional[Tuple[PositionSample, ...]]) -> str:
    return json.dumps([p.to_dict() for p in (route or ())])


def route_from_json(text: Optional[str]) -> Tuple[PositionSample, ...]:
    if not _present(text):
        return ()
    return tuple(PositionSample.from_dict(item) for item in json.loads(text))


def create_ride_id() -> str:
    """Create a unique ride ID."""
    return uuid.uuid4().hex


def create_goal_id() -> str:
    """Create a unique goal ID."""
    return uuid.uuid4().hex


def _present(value) -> bool:
    # CSV round trips turn missing values into NaN
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    return value != ''


def _optional_float(value) -> Optional[float]:
    return float(value) if _present(value) else None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return bool(value)


def new_goal(user_id: str, name: str, metric: str, target_value: float, period: str,
             period_start: datetime, period_end: datetime, created_at: datetime) -> Goal:
    """Build a fresh active goal with zero progress and no identifier yet."""
    return Goal(
        goal_id='',
        user_id=user_id,
        name=name,
        metric=metric,
        target_value=float(target_value),
        period=period,
        period_start=period_start,
        period_end=period_end,
        created_at=created_at,
    )


def sort_goals_newest_first(goals: List[Goal]) -> List[Goal]:
    return sorted(goals, key=lambda g: g.created_at, reverse=True)


def apply_goal_update(goal: Goal, fields: Dict[str, Any]) -> Goal:
    """Apply a partial update; the identifier and owner cannot be changed."""
    protected = {'goal_id', 'user_id'} & set(fields)
    if protected:
        raise ValueError(f"Cannot update protected goal fields: {sorted(protected)}")
    try:
        return goal.with_updates(**fields)
    except TypeError as e:
        raise ValueError(f"Unknown goal fields in update: {sorted(fields)}") from e
