"""
Ride-level metric calculations for the ride tracker system.
Geodesic distance, plausibility limits, derived speed and display formatting.
"""
from typing import Sequence

import numpy as np

from ..storage.data_models import PositionSample
from ..utils.config import get_config

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float,
                radius_m: float = EARTH_RADIUS_M) -> float:
    """
    Great-circle distance between two points.

    Args:
        lat1, lon1: First point in decimal degrees
        lat2, lon2: Second point in decimal degrees
        radius_m: Sphere radius in meters

    Returns:
        Distance in meters
    """
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    dphi = phi2 - phi1
    dlmb = np.radians(lon2) - np.radians(lon1)
    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlmb / 2.0) ** 2
    # Rounding can push ``a`` slightly above 1 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    return float(2.0 * radius_m * np.arcsin(np.sqrt(a)))


def sample_distance_m(a: PositionSample, b: PositionSample, radius_m: float = EARTH_RADIUS_M) -> float:
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude, radius_m)


def segment_distances_m(route: Sequence[PositionSample], radius_m: float = EARTH_RADIUS_M) -> np.ndarray:
    """Vectorised distances between consecutive route points."""
    if len(route) < 2:
        return np.zeros(0)
    lat = np.radians(np.array([p.latitude for p in route], dtype=float))
    lon = np.radians(np.array([p.longitude for p in route], dtype=float))
    dphi = np.diff(lat)
    dlmb = np.diff(lon)
    a = np.sin(dphi / 2.0) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlmb / 2.0) ** 2
    return 2.0 * radius_m * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def route_distance_m(route: Sequence[PositionSample], radius_m: float = EARTH_RADIUS_M) -> float:
    """
    Total path length of a route, including any GPS jumps.

    Used for display and analysis of stored routes only. Live distance is
    accumulated sample by sample and filtered for plausibility.
    """
    return float(segment_distances_m(route, radius_m).sum())


def max_plausible_increment_m(elapsed_s: float, max_speed_kph: float) -> float:
    """Largest distance a rider can plausibly cover in ``elapsed_s`` seconds."""
    return max(elapsed_s, 0.0) * (max_speed_kph / 3.6)


def average_speed_mps(distance_m: float, duration_s: float) -> float:
    if duration_s <= 0:
        return 0.0
    return distance_m / duration_s


def estimate_calories(distance_m: float, kcal_per_km: float = None) -> float:
    """Rough calorie estimate from distance alone."""
    if kcal_per_km is None:
        kcal_per_km = get_config().goals.calories_per_km
    return (distance_m / 1000.0) * kcal_per_km


def format_duration(seconds: int) -> str:
    """Format a duration like the ride pages do: '1h 5m', '3m 12s' or '45s'."""
    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_distance(meters: float) -> str:
    """Meters below one kilometre, kilometres with two decimals above."""
    if meters < 1000:
        return f"{meters:.0f} m"
    return f"{meters / 1000:.2f} km"
