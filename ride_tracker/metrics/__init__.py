"""Metrics calculation modules for rides and goals."""

from .ride_metrics import (
    EARTH_RADIUS_M,
    haversine_m,
    route_distance_m,
    max_plausible_increment_m,
    average_speed_mps,
    estimate_calories,
    format_duration,
    format_distance
)
from .goal_metrics import rides_to_frame, filter_rides_in_window, aggregate_goal_metric

__all__ = [
    "EARTH_RADIUS_M",
    "haversine_m",
    "route_distance_m",
    "max_plausible_increment_m",
    "average_speed_mps",
    "estimate_calories",
    "format_duration",
    "format_distance",
    "rides_to_frame",
    "filter_rides_in_window",
    "aggregate_goal_metric"
]
