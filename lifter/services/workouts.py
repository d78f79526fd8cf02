"""Workout leaf records: sessions, exercises and sets.

The scheduling core only creates sessions (during generation) and reads them
(for completion queries). Logging actual performance belongs to the workout
lifecycle, which updates these values with ``dataclasses.replace``.
"""

from __future__ import annotations

import uuid
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def frozen_mapping(value: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Read-only private copy of ``value``; values built from the same dict never share it."""
    return MappingProxyType(deepcopy(dict(value or {})))


@dataclass(frozen=True)
class ExerciseSet:
    id: str = field(default_factory=new_id)
    target_reps: Optional[int] = None
    target_weight: Optional[float] = None
    actual_reps: Optional[int] = None
    actual_weight: Optional[float] = None
    notes: Optional[str] = None
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    @property
    def has_targets(self) -> bool:
        return self.target_reps is not None or self.target_weight is not None

    @property
    def is_logged(self) -> bool:
        return self.actual_reps is not None or self.actual_weight is not None

    @property
    def volume(self) -> float:
        if self.actual_reps is None or self.actual_weight is None:
            return 0.0
        return self.actual_reps * self.actual_weight


@dataclass(frozen=True)
class WorkoutExercise:
    exercise_id: str
    name: str
    id: str = field(default_factory=new_id)
    sets: tuple[ExerciseSet, ...] = ()
    rest_seconds: int = 180
    notes: Optional[str] = None

    @property
    def total_sets_count(self) -> int:
        return len(self.sets)

    @property
    def completed_sets_count(self) -> int:
        return sum(1 for s in self.sets if s.is_completed)

    @property
    def is_completed(self) -> bool:
        return bool(self.sets) and all(s.is_completed for s in self.sets)

    @property
    def progress_percentage(self) -> float:
        if not self.sets:
            return 0.0
        return self.completed_sets_count / self.total_sets_count


@dataclass(frozen=True)
class WorkoutSession:
    """One concrete dated workout occurrence."""

    date: date
    id: str = field(default_factory=new_id)
    program_id: Optional[str] = None
    program_name: Optional[str] = None
    exercises: tuple[WorkoutExercise, ...] = ()
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "exercises", tuple(self.exercises))
        object.__setattr__(self, "metadata", frozen_mapping(self.metadata))

    @classmethod
    def create(
        cls,
        date: date,
        program_id: Optional[str] = None,
        program_name: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> "WorkoutSession":
        return cls(
            date=date,
            program_id=program_id,
            program_name=program_name,
            metadata=metadata or {},
        )

    @property
    def is_completed(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def is_in_progress(self) -> bool:
        return self.start_time is not None and self.end_time is None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def total_sets_count(self) -> int:
        return sum(ex.total_sets_count for ex in self.exercises)

    @property
    def completed_sets_count(self) -> int:
        return sum(ex.completed_sets_count for ex in self.exercises)

    @property
    def progress_percentage(self) -> float:
        if not self.exercises:
            return 0.0
        return sum(1 for ex in self.exercises if ex.is_completed) / len(self.exercises)
