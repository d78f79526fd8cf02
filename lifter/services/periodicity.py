"""Periodicity rules: which calendar days within a cycle are workout days.

A rule is exactly one of four variants (weekly day set, cyclic on/off block,
fixed interval, custom). Evaluation is done at day granularity relative to a
reference start date, normally the owning cycle's start date.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, ClassVar, Iterator, Mapping, Optional, Union

from lifter.errors import UnsupportedScheduleError, ValidationError
from lifter.services.workouts import frozen_mapping

ISO_WEEKDAYS = range(1, 8)
WEEKDAY_NAMES = {1: "Mon", 2: "Tue", 3: "Wed", 4: "Thu", 5: "Fri", 6: "Sat", 7: "Sun"}
NEXT_DATE_HORIZON_DAYS = 365


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Weekly:
    """Workout on the given ISO weekdays (1=Monday .. 7=Sunday), every week."""

    kind: ClassVar[str] = "weekly"
    days_of_week: tuple[int, ...]

    def __post_init__(self):
        days = tuple(self.days_of_week or ())
        if not days:
            raise ValidationError("Weekly periodicity needs at least one weekday")
        for day in days:
            if not _is_int(day) or day not in ISO_WEEKDAYS:
                raise ValidationError(f"Weekday must be an integer in 1..7, got {day!r}")
        object.__setattr__(self, "days_of_week", tuple(sorted(set(days))))


@dataclass(frozen=True)
class Cyclic:
    """``workout_days`` on, then ``rest_days`` off, repeating from the reference start."""

    kind: ClassVar[str] = "cyclic"
    workout_days: int
    rest_days: int = 0

    def __post_init__(self):
        if not _is_int(self.workout_days) or self.workout_days <= 0:
            raise ValidationError("Cyclic periodicity needs an integer workout_days >= 1")
        if not _is_int(self.rest_days) or self.rest_days < 0:
            raise ValidationError("Cyclic periodicity needs an integer rest_days >= 0")

    @property
    def block_length(self) -> int:
        return self.workout_days + self.rest_days


@dataclass(frozen=True)
class Interval:
    """Workout every Nth day counting from the reference start (day 0 included)."""

    kind: ClassVar[str] = "interval"
    every_n_days: int

    def __post_init__(self):
        if not _is_int(self.every_n_days) or self.every_n_days <= 0:
            raise ValidationError("Interval periodicity needs an integer every_n_days >= 1")


@dataclass(frozen=True)
class Custom:
    """Opaque schedule metadata. Never evaluated; see ``is_evaluable``."""

    kind: ClassVar[str] = "custom"
    pattern: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.pattern, Mapping):
            raise ValidationError("Custom periodicity pattern must be a mapping")
        object.__setattr__(self, "pattern", frozen_mapping(self.pattern))


PeriodicityRule = Union[Weekly, Cyclic, Interval, Custom]


def as_date(value: date) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def day_offset(reference_start: date, candidate: date) -> int:
    return (as_date(candidate) - as_date(reference_start)).days


def is_evaluable(rule: PeriodicityRule) -> bool:
    return not isinstance(rule, Custom)


def is_workout_expected(rule: PeriodicityRule, reference_start: date, candidate: date) -> bool:
    """Return True if ``candidate`` is a workout day under ``rule``.

    ``candidate`` may precede ``reference_start``; offsets wrap with a
    non-negative modulo. Custom rules raise ``UnsupportedScheduleError``.
    """
    if isinstance(rule, Weekly):
        return as_date(candidate).isoweekday() in rule.days_of_week
    if isinstance(rule, Cyclic):
        offset = day_offset(reference_start, candidate) % rule.block_length
        return offset < rule.workout_days
    if isinstance(rule, Interval):
        return day_offset(reference_start, candidate) % rule.every_n_days == 0
    if isinstance(rule, Custom):
        raise UnsupportedScheduleError("Custom periodicity cannot be evaluated; schedule sessions manually")
    raise TypeError(f"Unknown periodicity rule: {rule!r}")


def _iter_days(start: date, end: date) -> Iterator[date]:
    current = as_date(start)
    last = as_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def workout_dates(rule: PeriodicityRule, start: date, end: date) -> list[date]:
    """All workout days in ``[start, end]`` inclusive, ascending, using ``start`` as the reference."""
    return [d for d in _iter_days(start, end) if is_workout_expected(rule, start, d)]


def next_expected_date(
    rule: PeriodicityRule,
    from_date: date,
    horizon_days: int = NEXT_DATE_HORIZON_DAYS,
) -> Optional[date]:
    start = as_date(from_date)
    for d in _iter_days(start, start + timedelta(days=horizon_days)):
        if is_workout_expected(rule, start, d):
            return d
    return None


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def describe(rule: PeriodicityRule) -> str:
    """Human-readable summary, e.g. "Every Mon, Wed, Fri" or "3 days on, 1 day off"."""
    if isinstance(rule, Weekly):
        if len(rule.days_of_week) == 7:
            return "Every day"
        return "Every " + ", ".join(WEEKDAY_NAMES[d] for d in rule.days_of_week)
    if isinstance(rule, Cyclic):
        return f"{_plural(rule.workout_days, 'day')} on, {_plural(rule.rest_days, 'day')} off"
    if isinstance(rule, Interval):
        if rule.every_n_days == 1:
            return "Every day"
        return f"Every {rule.every_n_days} days"
    if isinstance(rule, Custom):
        return "Custom schedule"
    raise TypeError(f"Unknown periodicity rule: {rule!r}")


def frequency_description(rule: PeriodicityRule) -> str:
    if isinstance(rule, Weekly):
        return f"{len(rule.days_of_week)} days/week"
    if isinstance(rule, Cyclic):
        return f"~{_round_half_up(rule.workout_days / rule.block_length * 7)} days/week"
    if isinstance(rule, Interval):
        return f"~{_round_half_up(7 / rule.every_n_days)} days/week"
    if isinstance(rule, Custom):
        return "Variable"
    raise TypeError(f"Unknown periodicity rule: {rule!r}")
