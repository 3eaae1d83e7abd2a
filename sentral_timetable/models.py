"""Pydantic models for extracted timetable data.

A period slot is either a ScheduledPeriod or an EmptyPeriod; "no class"
is its own type so it cannot be mistaken for a subject named "None".
"""
from __future__ import annotations

from typing import Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict

# Display text used for an empty slot in reports and exports.
EMPTY_SUBJECT = "None"


class ScheduledPeriod(BaseModel):
    """A timetable slot with a class in it."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["scheduled"] = "scheduled"
    period_number: str  # label copied from the row header, e.g. "3"
    subject: str
    class_id: str
    classroom: str
    teacher: str

    @property
    def is_empty(self) -> bool:
        return False


class EmptyPeriod(BaseModel):
    """A timetable slot with no class scheduled (inactive cell)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"
    period_number: str

    @property
    def is_empty(self) -> bool:
        return True

    @property
    def subject(self) -> str:
        return EMPTY_SUBJECT

    @property
    def class_id(self) -> str:
        return ""

    @property
    def classroom(self) -> str:
        return ""

    @property
    def teacher(self) -> str:
        return ""


Period = Union[ScheduledPeriod, EmptyPeriod]


class Day(BaseModel):
    """One calendar day's periods, in row order."""

    model_config = ConfigDict(frozen=True)

    date: str  # DD/MM/YYYY, copied from the page header
    weekday: str  # e.g. "Wednesday", computed from the matched date
    periods: Tuple[Period, ...] = ()

    @property
    def scheduled(self) -> list[ScheduledPeriod]:
        return [p for p in self.periods if isinstance(p, ScheduledPeriod)]

    @property
    def subjects(self) -> set[str]:
        return {p.subject for p in self.scheduled}
