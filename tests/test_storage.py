from datetime import datetime, timedelta, timezone

import pytest

from ride_tracker.errors import RecordNotFound, Unauthenticated
from ride_tracker.goals.engine import GoalRecalculationEngine
from ride_tracker.storage.csv_manager import CSVStorageManager, open_csv_stores
from ride_tracker.storage.data_models import Goal, PositionSample, RideRecord
from ride_tracker.storage.memory import MemoryGoalStore, MemoryRideStore
from ride_tracker.utils.clock import ManualClock
from ride_tracker.utils.config import get_config

USER = 'rider-1'
T0 = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)


def _make_ride(start=T0, km=12.5, user=USER, with_route=True):
    route = ()
    if with_route:
        route = (
            PositionSample(start, 52.52, 13.405, 5.0, 4.0),
            PositionSample(start + timedelta(seconds=1, microseconds=250000), 52.52005, 13.405, 5.5),
        )
    return RideRecord(
        ride_id='',
        user_id=user,
        name='Lunch ride',
        activity_type='cycling',
        start_time=start,
        end_time=start + timedelta(minutes=40),
        distance_m=km * 1000.0,
        duration_s=2400,
        calories=km * 50.0,
        route=route,
    )


def _make_goal(goal_id='', created_at=T0, active=True, user=USER):
    return Goal(
        goal_id=goal_id,
        user_id=user,
        name='Weekly distance',
        metric='distance',
        target_value=50.0,
        period='weekly',
        period_start=created_at,
        period_end=created_at + timedelta(days=7),
        created_at=created_at,
        is_active=active,
    )


def test_csv_ride_round_trip(tmp_path):
    rides, _ = open_csv_stores(str(tmp_path))
    original = _make_ride()
    ride_id = rides.save(original)

    loaded = rides.list(USER)
    assert len(loaded) == 1
    ride = loaded[0]
    assert ride.ride_id == ride_id
    assert ride.start_time == original.start_time
    assert ride.end_time == original.end_time
    assert ride.distance_m == pytest.approx(original.distance_m)
    assert ride.duration_s == 2400
    assert ride.calories == pytest.approx(625.0)
    assert ride.route == original.route
    assert ride.planned_route is None


def test_csv_rides_are_filtered_and_ordered(tmp_path):
    rides, _ = open_csv_stores(str(tmp_path))
    rides.save(_make_ride(T0 + timedelta(days=2), with_route=False))
    rides.save(_make_ride(T0, with_route=False))
    rides.save(_make_ride(T0, user='rider-2', with_route=False))

    loaded = rides.list(USER)
    assert [r.start_time for r in loaded] == [T0, T0 + timedelta(days=2)]


def test_csv_ride_save_replaces_same_id(tmp_path):
    rides, _ = open_csv_stores(str(tmp_path))
    ride_id = rides.save(_make_ride(km=10))
    rides.save(_make_ride(km=20).with_id(ride_id))

    loaded = rides.list(USER)
    assert len(loaded) == 1
    assert loaded[0].distance_m == pytest.approx(20000.0)


def test_csv_delete_ride(tmp_path):
    rides, _ = open_csv_stores(str(tmp_path))
    ride_id = rides.save(_make_ride())
    rides.delete(ride_id)
    assert rides.list(USER) == []
    with pytest.raises(RecordNotFound):
        rides.delete(ride_id)


def test_csv_goal_round_trip_and_update(tmp_path):
    _, goals = open_csv_stores(str(tmp_path))
    goal_id = goals.save(_make_goal())

    goals.update(goal_id, {'current_value': 55.0, 'is_active': False, 'completed_at': T0 + timedelta(days=3)})

    goal = goals.get(goal_id)
    assert goal.current_value == 55.0
    assert goal.is_active is False
    assert goal.completed_at == T0 + timedelta(days=3)
    assert goal.target_value == 50.0
    assert goal.period_end == T0 + timedelta(days=7)


def test_csv_goal_list_active_only_newest_first(tmp_path):
    _, goals = open_csv_stores(str(tmp_path))
    goals.save(_make_goal('old', created_at=T0))
    goals.save(_make_goal('new', created_at=T0 + timedelta(days=1)))
    goals.save(_make_goal('archived', created_at=T0 + timedelta(days=2), active=False))

    assert [g.goal_id for g in goals.list(USER)] == ['archived', 'new', 'old']
    assert [g.goal_id for g in goals.list(USER, active_only=True)] == ['new', 'old']
    assert [g.goal_id for g in goals.list(USER, active_only=False)] == ['archived']


def test_csv_missing_goal(tmp_path):
    _, goals = open_csv_stores(str(tmp_path))
    with pytest.raises(RecordNotFound):
        goals.get('missing')
    with pytest.raises(RecordNotFound):
        goals.update('missing', {'current_value': 1.0})
    with pytest.raises(RecordNotFound):
        goals.delete('missing')


def test_csv_update_rejects_protected_fields(tmp_path):
    _, goals = open_csv_stores(str(tmp_path))
    goal_id = goals.save(_make_goal())
    with pytest.raises(ValueError):
        goals.update(goal_id, {'user_id': 'someone-else'})


def test_stores_require_user(tmp_path):
    rides, goals = open_csv_stores(str(tmp_path))
    with pytest.raises(Unauthenticated):
        rides.list('')
    with pytest.raises(Unauthenticated):
        goals.list(None)
    with pytest.raises(Unauthenticated):
        rides.save(_make_ride(user=''))


def test_backups_are_capped(tmp_path):
    get_config().update_storage_settings(max_backup_files=2)
    manager = CSVStorageManager(str(tmp_path))
    for day in range(5):
        manager.store_ride(_make_ride(T0 + timedelta(days=day), with_route=False))

    backups = list((tmp_path / 'backups').glob('rides_*.csv'))
    assert len(backups) == 2
    assert manager.get_storage_stats()['backup_count'] == 2


def test_backups_can_be_disabled(tmp_path):
    get_config().update_storage_settings(backup_enabled=False)
    manager = CSVStorageManager(str(tmp_path))
    manager.store_ride(_make_ride(with_route=False))
    manager.store_ride(_make_ride(with_route=False))
    assert not (tmp_path / 'backups').exists()


def test_storage_stats(tmp_path):
    manager = CSVStorageManager(str(tmp_path))
    empty = manager.get_storage_stats()
    assert empty['rides_count'] == 0
    assert empty['date_range'] is None

    manager.store_ride(_make_ride(T0, with_route=False))
    manager.store_ride(_make_ride(T0 + timedelta(days=1), with_route=False))
    manager.store_goal(_make_goal())
    manager.store_goal(_make_goal(active=False))

    stats = manager.get_storage_stats()
    assert stats['rides_count'] == 2
    assert stats['goals_count'] == 2
    assert stats['active_goals_count'] == 1
    assert stats['date_range']['earliest'] == T0
    assert stats['storage_size_mb'] > 0


def test_engine_over_csv_stores(tmp_path):
    rides, goals = open_csv_stores(str(tmp_path))
    goal_id = goals.save(_make_goal(created_at=T0))
    for day, km in ((1, 10), (2, 15), (3, 30)):
        rides.save(_make_ride(T0 + timedelta(days=day), km=km, with_route=False))

    engine = GoalRecalculationEngine(rides, goals, ManualClock(T0 + timedelta(days=4)))
    result = engine.recalculate(USER)

    goal = goals.get(goal_id)
    assert result.completed == [goal_id]
    assert goal.current_value == pytest.approx(55.0)
    assert goal.is_active is False
    assert goal.completed_at == T0 + timedelta(days=4)


def test_memory_stores_assign_ids_and_delete():
    rides = MemoryRideStore()
    ride_id = rides.save(_make_ride())
    assert ride_id
    assert rides.list(USER)[0].ride_id == ride_id
    rides.delete(ride_id)
    with pytest.raises(RecordNotFound):
        rides.delete(ride_id)

    goals = MemoryGoalStore()
    goal_id = goals.save(_make_goal())
    assert goals.get(goal_id).goal_id == goal_id
    goals.delete(goal_id)
    with pytest.raises(RecordNotFound):
        goals.get(goal_id)


def test_memory_goal_update_rejects_unknown_fields():
    goals = MemoryGoalStore([_make_goal('g1')])
    with pytest.raises(ValueError):
        goals.update('g1', {'colour': 'red'})
    with pytest.raises(ValueError):
        goals.update('g1', {'goal_id': 'g2'})
