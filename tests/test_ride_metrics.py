from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from ride_tracker.metrics.goal_metrics import aggregate_goal_metric, filter_rides_in_window, rides_to_frame
from ride_tracker.metrics.ride_metrics import (
    estimate_calories,
    format_distance,
    format_duration,
    haversine_m,
    max_plausible_increment_m,
    route_distance_m,
    segment_distances_m,
)
from ride_tracker.storage.data_models import PositionSample, RideRecord

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_one_degree_of_latitude():
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_194.93, rel=1e-6)


def test_haversine_is_symmetric_and_zero_for_same_point():
    assert haversine_m(52.52, 13.405, 48.8566, 2.3522) == pytest.approx(haversine_m(48.8566, 2.3522, 52.52, 13.405))
    assert haversine_m(52.52, 13.405, 52.52, 13.405) == 0.0


def test_antipodal_points():
    assert haversine_m(0.0, 0.0, 0.0, 180.0) == pytest.approx(6_371_000.0 * 3.141592653589793)


def test_route_distance_matches_pairwise_haversine():
    route = [PositionSample(T0 + timedelta(seconds=i), 52.52 + i * 0.001, 13.405 + i * 0.0005) for i in range(6)]
    expected = sum(
        haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
        for a, b in zip(route, route[1:])
    )
    assert route_distance_m(route) == pytest.approx(expected)
    assert len(segment_distances_m(route)) == 5
    assert route_distance_m(route[:1]) == 0.0


def test_plausible_increment():
    assert max_plausible_increment_m(1.0, 120.0) == pytest.approx(33.333, rel=1e-3)
    assert max_plausible_increment_m(-5.0, 120.0) == 0.0


def test_estimate_calories():
    assert estimate_calories(12_000) == pytest.approx(600.0)
    assert estimate_calories(12_000, kcal_per_km=40.0) == pytest.approx(480.0)


@pytest.mark.parametrize('seconds, expected', [
    (0, '0s'),
    (45, '45s'),
    (192, '3m 12s'),
    (3900, '1h 5m'),
    (7200, '2h 0m'),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize('meters, expected', [
    (0, '0 m'),
    (850, '850 m'),
    (12_345.6, '12.35 km'),
])
def test_format_distance(meters, expected):
    assert format_distance(meters) == expected


def _make_ride(start, km):
    return RideRecord('r-%s' % start.isoformat(), 'u', 'Ride', 'cycling', start, distance_m=km * 1000.0)


def test_window_filter_excludes_both_boundaries():
    end = T0 + timedelta(days=7)
    df = rides_to_frame([_make_ride(T0, 1), _make_ride(T0 + timedelta(days=1), 2), _make_ride(end, 4)])
    inside = filter_rides_in_window(df, T0, end)
    assert list(inside['distance_m']) == [2000.0]


def test_aggregate_metrics_on_empty_window():
    df = rides_to_frame([])
    for metric in ('distance', 'rides', 'calories'):
        assert aggregate_goal_metric(df, metric) == 0.0


def test_aggregate_unknown_metric():
    df = rides_to_frame([_make_ride(T0, 1)])
    with pytest.raises(ValueError):
        aggregate_goal_metric(df, 'elevation')


def test_rides_to_frame_has_utc_start_times():
    df = rides_to_frame([_make_ride(T0, 1)])
    assert df['start_time'].iloc[0] == pd.Timestamp(T0)
    assert str(df['start_time'].dt.tz) == 'UTC'
