"""
CSV storage manager for the ride tracker system.
Handles persistence of ride records and goals to CSV files.
"""
import logging
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..errors import RecordNotFound
from ..utils.config import get_config
from .base import require_user
from .data_models import (
    Goal,
    RideRecord,
    apply_goal_update,
    create_goal_id,
    create_ride_id,
    sort_goals_newest_first,
)

logger = logging.getLogger(__name__)

RIDE_COLUMNS = [
    'ride_id', 'user_id', 'name', 'activity_type', 'start_time', 'end_time',
    'distance_m', 'duration_s', 'calories', 'route', 'planned_route',
]
GOAL_COLUMNS = [
    'goal_id', 'user_id', 'name', 'metric', 'target_value', 'current_value',
    'period', 'period_start', 'period_end', 'is_active', 'created_at', 'completed_at',
]


class CSVStorageManager:
    """
    Manages CSV storage for rides and goals with backup functionality.

    Every write rewrites the whole file, after copying the previous version to
    the backup directory when backups are enabled. A single lock serialises
    access so concurrent recalculations for different users stay consistent.
    """

    def __init__(self, data_dir: Optional[str] = None):
        self.config = get_config()
        self.data_dir = Path(data_dir) if data_dir else Path(self.config.storage.data_dir)
        self.data_dir.mkdir(exist_ok=True, parents=True)

        # CSV file paths
        self.rides_file = self.data_dir / self.config.storage.csv_rides
        self.goals_file = self.data_dir / self.config.storage.csv_goals

        # Backup directory
        self.backup_dir = self.data_dir / "backups"
        if self.config.storage.backup_enabled:
            self.backup_dir.mkdir(exist_ok=True)

        self._lock = threading.RLock()
        logger.info("CSV storage initialized: %s", self.data_dir)

    # ------------------------------------------------------------------ rides

    def load_rides(self, user_id: Optional[str] = None) -> List[RideRecord]:
        """
        Load ride records from CSV file.

        Args:
            user_id: Only return rides owned by this user (optional)

        Returns:
            Ride records ordered by start time
        """
        with self._lock:
            df = self._read(self.rides_file, RIDE_COLUMNS)
        if user_id is not None:
            df = df[df['user_id'] == user_id]
        rides = [RideRecord.from_dict(row) for row in df.to_dict('records')]
        logger.debug("Loaded %d ride records", len(rides))
        return sorted(rides, key=lambda r: r.start_time)

    def store_ride(self, ride: RideRecord) -> str:
        """
        Store a ride record, replacing any existing ride with the same ID.

        Returns:
            The ride ID (generated when the record has none)
        """
        if not ride.ride_id:
            ride = ride.with_id(create_ride_id())

        with self._lock:
            df = self._read(self.rides_file, RIDE_COLUMNS)
            if (df['ride_id'] == ride.ride_id).any():
                logger.info("Updating existing ride: %s", ride.ride_id)
                df = df[df['ride_id'] != ride.ride_id]
            else:
                logger.info("Adding new ride: %s", ride.ride_id)
            new_row = pd.DataFrame([ride.to_dict()], columns=RIDE_COLUMNS)
            combined = pd.concat([df, new_row], ignore_index=True)
            combined = combined.sort_values('start_time', kind='stable')
            self._write(combined, self.rides_file, 'rides')

        return ride.ride_id

    def delete_ride(self, ride_id: str) -> None:
        with self._lock:
            df = self._read(self.rides_file, RIDE_COLUMNS)
            if not (df['ride_id'] == ride_id).any():
                raise RecordNotFound('ride', ride_id)
            self._write(df[df['ride_id'] != ride_id], self.rides_file, 'rides')
        logger.info("Deleted ride: %s", ride_id)

    # ------------------------------------------------------------------ goals

    def load_goals(self, user_id: Optional[str] = None, active_only: Optional[bool] = None) -> List[Goal]:
        """
        Load goals from CSV file.

        Args:
            user_id: Only return goals owned by this user (optional)
            active_only: True for active goals, False for inactive ones, None for all

        Returns:
            Goals ordered newest first by creation time
        """
        with self._lock:
            df = self._read(self.goals_file, GOAL_COLUMNS)
        if user_id is not None:
            df = df[df['user_id'] == user_id]
        goals = [Goal.from_dict(row) for row in df.to_dict('records')]
        if active_only is not None:
            goals = [g for g in goals if g.is_active == active_only]
        return sort_goals_newest_first(goals)

    def get_goal(self, goal_id: str) -> Goal:
        with self._lock:
            df = self._read(self.goals_file, GOAL_COLUMNS)
        match = df[df['goal_id'] == goal_id]
        if match.empty:
            raise RecordNotFound('goal', goal_id)
        return Goal.from_dict(match.iloc[0].to_dict())

    def store_goal(self, goal: Goal) -> str:
        if not goal.goal_id:
            goal = goal.with_updates(goal_id=create_goal_id())

        with self._lock:
            df = self._read(self.goals_file, GOAL_COLUMNS)
            df = df[df['goal_id'] != goal.goal_id]
            new_row = pd.DataFrame([goal.to_dict()], columns=GOAL_COLUMNS)
            combined = pd.concat([df, new_row], ignore_index=True)
            self._write(combined, self.goals_file, 'goals')

        logger.info("Stored goal %s (%s)", goal.goal_id, goal.description)
        return goal.goal_id

    def update_goal(self, goal_id: str, fields: Dict[str, Any]) -> Goal:
        """
        Apply a partial update to a stored goal.

        Returns:
            The updated goal
        """
        with self._lock:
            df = self._read(self.goals_file, GOAL_COLUMNS)
            mask = df['goal_id'] == goal_id
            if not mask.any():
                raise RecordNotFound('goal', goal_id)
            current = Goal.from_dict(df[mask].iloc[0].to_dict())
            updated = apply_goal_update(current, fields)
            row = updated.to_dict()
            for column in GOAL_COLUMNS:
                df.loc[mask, column] = '' if row[column] is None else str(row[column])
            self._write(df, self.goals_file, 'goals')
        return updated

    def delete_goal(self, goal_id: str) -> None:
        with self._lock:
            df = self._read(self.goals_file, GOAL_COLUMNS)
            if not (df['goal_id'] == goal_id).any():
                raise RecordNotFound('goal', goal_id)
            self._write(df[df['goal_id'] != goal_id], self.goals_file, 'goals')
        logger.info("Deleted goal: %s", goal_id)

    # ------------------------------------------------------------------ stats

    def get_storage_stats(self) -> Dict[str, Any]:
        """Get statistics about stored data."""
        stats = {
            'rides_count': 0,
            'goals_count': 0,
            'active_goals_count': 0,
            'date_range': None,
            'storage_size_mb': 0.0,
            'backup_count': 0
        }

        with self._lock:
            rides = self._read(self.rides_file, RIDE_COLUMNS)
            goals = self._read(self.goals_file, GOAL_COLUMNS)

        stats['rides_count'] = len(rides)
        if not rides.empty:
            starts = pd.to_datetime(rides['start_time'], utc=True)
            stats['date_range'] = {'earliest': starts.min(), 'latest': starts.max()}

        stats['goals_count'] = len(goals)
        stats['active_goals_count'] = int((goals['is_active'].str.lower() == 'true').sum())

        for path in (self.rides_file, self.goals_file):
            if path.exists():
                stats['storage_size_mb'] += path.stat().st_size / (1024 * 1024)

        if self.backup_dir.exists():
            stats['backup_count'] = len(list(self.backup_dir.glob("*.csv")))

        return stats

    # --------------------------------------------------------------- internals

    def _read(self, path: Path, columns: List[str]) -> pd.DataFrame:
        if not path.exists():
            return pd.DataFrame(columns=columns, dtype=str)
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return pd.DataFrame(columns=columns, dtype=str)
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise ValueError(f"{path.name} is missing columns: {missing}")
        return df[columns].copy()

    def _write(self, df: pd.DataFrame, path: Path, file_type: str) -> None:
        if self.config.storage.backup_enabled and path.exists():
            self._create_backup(path, file_type)
        df.to_csv(path, index=False)

    def _create_backup(self, file_path: Path, file_type: str):
        """Create a backup of the specified file."""
        self.backup_dir.mkdir(exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.backup_dir / f"{file_type}_{timestamp}.csv"

        try:
            shutil.copy2(file_path, backup_path)
        except OSError as e:
            logger.warning("Could not create backup of %s: %s", file_path.name, e)
            return

        self._cleanup_old_backups(file_type)

    def _cleanup_old_backups(self, file_type: str):
        """Remove old backup files, keeping only the most recent ones."""
        # Names embed the timestamp, so lexical order is chronological
        backup_files = sorted(self.backup_dir.glob(f"{file_type}_*.csv"), reverse=True)

        max_backups = self.config.storage.max_backup_files
        for old_backup in backup_files[max_backups:]:
            try:
                old_backup.unlink()
            except OSError as e:
                logger.warning("Could not remove old backup %s: %s", old_backup.name, e)


class CSVRideStore:
    """Ride store backed by a CSVStorageManager."""

    def __init__(self, manager: CSVStorageManager):
        self.manager = manager

    def list(self, user_id: str) -> List[RideRecord]:
        return self.manager.load_rides(require_user(user_id))

    def save(self, ride: RideRecord) -> str:
        require_user(ride.user_id)
        return self.manager.store_ride(ride)

    def delete(self, ride_id: str) -> None:
        self.manager.delete_ride(ride_id)


class CSVGoalStore:
    """Goal store backed by a CSVStorageManager."""

    def __init__(self, manager: CSVStorageManager):
        self.manager = manager

    def list(self, user_id: str, active_only: Optional[bool] = None) -> List[Goal]:
        return self.manager.load_goals(require_user(user_id), active_only)

    def get(self, goal_id: str) -> Goal:
        return self.manager.get_goal(goal_id)

    def save(self, goal: Goal) -> str:
        require_user(goal.user_id)
        return self.manager.store_goal(goal)

    def update(self, goal_id: str, fields: Dict[str, Any]) -> None:
        self.manager.update_goal(goal_id, fields)

    def delete(self, goal_id: str) -> None:
        self.manager.delete_goal(goal_id)


def open_csv_stores(data_dir: Optional[str] = None):
    """
    Convenience function to open the CSV ride and goal stores.

    Returns:
        Tuple of (CSVRideStore, CSVGoalStore) sharing one storage manager
    """
    manager = CSVStorageManager(data_dir)
    return CSVRideStore(manager), CSVGoalStore(manager)
