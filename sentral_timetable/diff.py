"""
Compare two extracted days by subject.

Only subject names are compared: the same subject in a different period,
room or with a different teacher is not a change. Empty periods never
count as added or removed.
"""
from __future__ import annotations

from typing import List, NamedTuple

from .logging import get_logger
from .models import Day, ScheduledPeriod

log = get_logger(__name__)


class DayDiff(NamedTuple):
    added: List[ScheduledPeriod]
    removed: List[ScheduledPeriod]

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def _missing_from(day: Day, other: Day) -> List[ScheduledPeriod]:
    """Scheduled periods of ``day`` whose subject ``other`` never has."""
    other_subjects = other.subjects
    return [p for p in day.scheduled if p.subject not in other_subjects]


def diff_days(day_a: Day, day_b: Day) -> DayDiff:
    """
    Subjects in ``day_a`` but not ``day_b`` (added) and the reverse (removed).

    Both lists keep the row order of the day they come from.
    """
    result = DayDiff(added=_missing_from(day_a, day_b), removed=_missing_from(day_b, day_a))
    log.debug(
        "days_compared",
        day_a=day_a.date,
        day_b=day_b.date,
        added=len(result.added),
        removed=len(result.removed),
    )
    return result
