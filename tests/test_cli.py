from datetime import datetime, timedelta, timezone

from ride_tracker.cli import main
from ride_tracker.storage.csv_manager import open_csv_stores
from ride_tracker.storage.data_models import Goal, RideRecord

USER = 'rider-1'


def _seed(data_dir, ride_km=12.0, target=10.0):
    now = datetime.now(timezone.utc)
    rides, goals = open_csv_stores(str(data_dir))
    goals.save(Goal(
        goal_id='g1', user_id=USER, name='Weekly distance', metric='distance',
        target_value=target, period='weekly', period_start=now - timedelta(days=1),
        period_end=now + timedelta(days=6), created_at=now - timedelta(days=1),
    ))
    rides.save(RideRecord(
        ride_id='', user_id=USER, name='Ride', activity_type='cycling',
        start_time=now - timedelta(hours=1), end_time=now - timedelta(minutes=20),
        distance_m=ride_km * 1000.0, duration_s=2400,
    ))
    return rides, goals


def test_recalculate_command(tmp_path, capsys):
    _, goals = _seed(tmp_path)

    assert main(['--data-dir', str(tmp_path), 'recalculate', '--user', USER]) == 0

    out = capsys.readouterr().out
    assert 'Completed: 1' in out
    goal = goals.get('g1')
    assert goal.current_value == 12.0
    assert goal.completed_at is not None


def test_recalculate_reports_failures(tmp_path, capsys):
    _seed(tmp_path)
    rides_file = tmp_path / 'rides.csv'
    text = rides_file.read_text().replace('12000.0', '-5.0')
    rides_file.write_text(text)

    assert main(['--data-dir', str(tmp_path), 'recalculate', '--user', USER]) == 1
    assert 'Failed: 1' in capsys.readouterr().out


def test_goals_command(tmp_path, capsys):
    _seed(tmp_path, target=100.0)
    assert main(['--data-dir', str(tmp_path), 'goals', '--user', USER, '--active']) == 0
    out = capsys.readouterr().out
    assert 'Weekly distance' in out
    assert 'active' in out


def test_goals_command_without_goals(tmp_path, capsys):
    assert main(['--data-dir', str(tmp_path), 'goals', '--user', 'nobody']) == 0
    assert 'No goals found' in capsys.readouterr().out


def test_renew_command_with_nothing_expired(tmp_path, capsys):
    _seed(tmp_path)
    assert main(['--data-dir', str(tmp_path), 'renew', '--user', USER]) == 0
    assert 'Renewed 0 goals' in capsys.readouterr().out


def test_stats_command(tmp_path, capsys):
    _seed(tmp_path)
    assert main(['--data-dir', str(tmp_path), 'stats']) == 0
    out = capsys.readouterr().out
    assert 'Stored rides: 1' in out
    assert 'Stored goals: 1 (1 active)' in out


def test_empty_user_is_not_authenticated(tmp_path, capsys):
    assert main(['--data-dir', str(tmp_path), 'recalculate', '--user', '']) == 2
    assert 'Not authenticated' in capsys.readouterr().err
