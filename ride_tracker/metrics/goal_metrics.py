"""Goal progress aggregation over a user's ride history."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from ..storage.data_models import RideRecord
from ..utils.config import get_config
from ..utils.timezone import ensure_utc

RIDE_FRAME_COLUMNS = ["ride_id", "start_time", "distance_m"]


def rides_to_frame(rides: Iterable[RideRecord]) -> pd.DataFrame:
    """Build a ride-history frame, rejecting rows that cannot be aggregated."""
    rows = [
        {"ride_id": r.ride_id, "start_time": r.start_time, "distance_m": r.distance_m}
        for r in rides
    ]
    df = pd.DataFrame(rows, columns=RIDE_FRAME_COLUMNS)
    df["start_time"] = pd.to_datetime(df["start_time"], utc=True)
    df["distance_m"] = pd.to_numeric(df["distance_m"], errors="raise").astype(float)

    bad = df["start_time"].isna() | ~np.isfinite(df["distance_m"]) | (df["distance_m"] < 0)
    if bad.any():
        ids = ", ".join(str(i) for i in df.loc[bad, "ride_id"])
        raise ValueError(f"Malformed ride records: {ids}")
    return df


def filter_rides_in_window(df: pd.DataFrame, start: datetime, end: datetime) -> pd.DataFrame:
    """Rides whose start time lies strictly inside (start, end); boundary instants are excluded."""
    lo = pd.Timestamp(ensure_utc(start))
    hi = pd.Timestamp(ensure_utc(end))
    return df[(df["start_time"] > lo) & (df["start_time"] < hi)]


def aggregate_goal_metric(df: pd.DataFrame, metric: str, kcal_per_km: Optional[float] = None) -> float:
    """
    Aggregate filtered rides for a goal metric.

    Args:
        df: Ride frame already restricted to the goal window
        metric: 'distance' (km), 'rides' (count) or 'calories' (kcal estimate)
        kcal_per_km: Override for the calories conversion factor

    Returns:
        Aggregated value
    """
    if metric == "rides":
        return float(len(df))

    total_km = float(df["distance_m"].sum()) / 1000.0
    if metric == "distance":
        return total_km
    if metric == "calories":
        # Per-ride calorie fields are ignored so rides without them count the same
        if kcal_per_km is None:
            kcal_per_km = get_config().goals.calories_per_km
        return total_km * kcal_per_km

    raise ValueError(f"Unknown goal metric: {metric}")
