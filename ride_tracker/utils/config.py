"""
Configuration module for the ride tracker system.
Groups tunable constants for telemetry, goals and storage.
"""
from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass
class TelemetrySettings:
    """Live ride telemetry configuration."""
    max_plausible_speed_kph: float = 120.0  # Faster increments are treated as GPS jumps
    earth_radius_m: float = 6_371_000.0  # Mean Earth radius for haversine
    default_activity_type: str = "cycling"
    default_ride_name: str = "Ride"


@dataclass
class GoalSettings:
    """Goal progress configuration."""
    calories_per_km: float = 50.0  # Rough estimate used by the calories metric
    weekly_period_days: int = 7


@dataclass
class StorageSettings:
    """Data storage configuration."""
    data_dir: str = "ride_data"  # Directory for CSV stores
    csv_rides: str = "rides.csv"
    csv_goals: str = "goals.csv"
    backup_enabled: bool = True  # Copy CSV files aside before rewriting them
    max_backup_files: int = 10  # Maximum backup files kept per store


class TrackerConfig:
    """Main configuration class for the ride tracker system."""

    def __init__(self):
        self.telemetry = TelemetrySettings()
        self.goals = GoalSettings()
        self.storage = StorageSettings()
        self._user_inputs: Dict[str, Any] = {}

    def _update(self, section: str, settings, **kwargs):
        for key, value in kwargs.items():
            if hasattr(settings, key):
                setattr(settings, key, value)
                self._user_inputs[f'{section}_{key}'] = value
            else:
                raise ValueError(f"Unknown {section} setting: {key}")

    def update_telemetry_settings(self, **kwargs):
        """Update telemetry settings dynamically."""
        self._update('telemetry', self.telemetry, **kwargs)

    def update_goal_settings(self, **kwargs):
        """Update goal settings dynamically."""
        self._update('goals', self.goals, **kwargs)

    def update_storage_settings(self, **kwargs):
        """Update storage settings dynamically."""
        self._update('storage', self.storage, **kwargs)

    @property
    def max_plausible_speed_mps(self) -> float:
        return self.telemetry.max_plausible_speed_kph / 3.6

    def get_summary(self) -> Dict[str, Any]:
        """Get configuration summary."""
        return {
            'telemetry_settings': asdict(self.telemetry),
            'goal_settings': asdict(self.goals),
            'storage_settings': asdict(self.storage),
            'user_inputs': dict(self._user_inputs),
        }

    def validate_configuration(self) -> bool:
        """Validate that settings are usable."""
        errors = []

        if self.telemetry.max_plausible_speed_kph <= 0:
            errors.append("Maximum plausible speed must be greater than 0")

        if self.telemetry.earth_radius_m <= 0:
            errors.append("Earth radius must be greater than 0")

        if self.goals.calories_per_km < 0:
            errors.append("Calories per km cannot be negative")

        if self.goals.weekly_period_days <= 0:
            errors.append("Weekly period must be at least one day")

        if self.storage.max_backup_files < 0:
            errors.append("Maximum backup files cannot be negative")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

        return True


# Global configuration instance
config = TrackerConfig()


def get_config() -> TrackerConfig:
    """Get the global configuration instance."""
    return config


def reset_config() -> TrackerConfig:
    """Reset configuration to defaults."""
    global config
    config = TrackerConfig()
    return config
