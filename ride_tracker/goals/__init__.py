"""Goal progress recalculation and period handling."""

from .periods import period_end_for
from .engine import GoalRecalculationEngine, RecalculationResult

__all__ = [
    "period_end_for",
    "GoalRecalculationEngine",
    "RecalculationResult"
]
