from datetime import datetime, timezone

import pytest

from ride_tracker.utils.clock import ManualClock
from ride_tracker.utils.config import reset_config


@pytest.fixture(autouse=True)
def fresh_config():
    # Settings are a module-level global; keep tests independent
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 1, 5, 12, 0, tzinfo=timezone.utc))
