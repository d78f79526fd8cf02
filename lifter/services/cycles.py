"""Program cycles: one dated execution instance of a program template.

A cycle owns its date range, an optional periodicity override and the list of
sessions generated from it. Every operation returns a new ``ProgramCycle``;
the receiver is never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

from lifter.errors import InvalidActivationError, NotFoundError, ValidationError
from lifter.services.periodicity import PeriodicityRule, as_date, is_workout_expected, workout_dates
from lifter.services.workouts import WorkoutSession, frozen_mapping, new_id, utcnow

# Open-ended cycles are treated as ending this many days after their start.
# The same horizon bounds session generation.
OPEN_CYCLE_HORIZON_DAYS = 365


def effective_end(start_date: date, end_date: Optional[date]) -> date:
    return end_date if end_date is not None else start_date + timedelta(days=OPEN_CYCLE_HORIZON_DAYS)


@dataclass(frozen=True)
class ProgramCycle:
    program_id: str
    cycle_number: int
    start_date: date
    end_date: Optional[date] = None
    periodicity: Optional[PeriodicityRule] = None
    is_active: bool = False
    is_completed: bool = False
    scheduled_sessions: tuple[WorkoutSession, ...] = ()
    notes: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        object.__setattr__(self, "start_date", as_date(self.start_date))
        if self.end_date is not None:
            object.__setattr__(self, "end_date", as_date(self.end_date))
        object.__setattr__(self, "scheduled_sessions", tuple(self.scheduled_sessions))
        object.__setattr__(self, "metadata", frozen_mapping(self.metadata))
        if self.cycle_number is None or self.cycle_number < 1:
            raise ValidationError(f"cycle_number must be >= 1, got {self.cycle_number!r}")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValidationError("Cycle end_date must not be before start_date")
        if self.is_active and self.is_completed:
            raise ValidationError("A cycle cannot be both active and completed")

    @classmethod
    def create(
        cls,
        program_id: str,
        cycle_number: int,
        start_date: date,
        end_date: Optional[date] = None,
        periodicity: Optional[PeriodicityRule] = None,
        notes: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        is_active: bool = False,
    ) -> "ProgramCycle":
        return cls(
            program_id=program_id,
            cycle_number=cycle_number,
            start_date=start_date,
            end_date=end_date,
            periodicity=periodicity,
            is_active=is_active,
            notes=notes,
            metadata=metadata or {},
        )

    # -- Date range --

    @property
    def effective_end_date(self) -> date:
        return effective_end(self.start_date, self.end_date)

    @property
    def duration_in_days(self) -> int:
        return (self.effective_end_date - self.start_date).days

    @property
    def duration_in_weeks(self) -> float:
        return self.duration_in_days / 7

    def is_within_date_range(self, on: date) -> bool:
        return self.start_date <= as_date(on) <= self.effective_end_date

    def can_be_activated_on(self, on: date) -> bool:
        return self.is_within_date_range(on) and not self.is_completed

    def overlaps(self, start_date: date, end_date: Optional[date] = None) -> bool:
        """Closed-interval intersection; ranges sharing an endpoint overlap."""
        start = as_date(start_date)
        end = effective_end(start, as_date(end_date) if end_date is not None else None)
        return start <= self.effective_end_date and end >= self.start_date

    # -- Lifecycle --

    def start(self, on: date) -> "ProgramCycle":
        if self.is_completed:
            raise InvalidActivationError("Cannot start a completed cycle", cycle_id=self.id)
        if not self.can_be_activated_on(on):
            raise InvalidActivationError(
                f"Cycle {self.cycle_number} cannot be started on {as_date(on)}: outside its date range",
                cycle_id=self.id,
            )
        if self.is_active:
            return self
        return replace(self, is_active=True)

    def stop(self) -> "ProgramCycle":
        if not self.is_active:
            return self
        return replace(self, is_active=False)

    def complete(self) -> "ProgramCycle":
        if self.is_completed and not self.is_active:
            return self
        return replace(self, is_completed=True, is_active=False)

    # -- Session generation --

    def resolve_periodicity(self, fallback: Optional[PeriodicityRule] = None) -> Optional[PeriodicityRule]:
        return self.periodicity if self.periodicity is not None else fallback

    def generate_scheduled_sessions(self, periodicity: Optional[PeriodicityRule] = None) -> "ProgramCycle":
        """Regenerate sessions for every workout day in the cycle's range.

        The cycle's own periodicity wins; ``periodicity`` is the owning
        program's default and is required when the cycle has no override.
        Session ids are fresh on every call, dates are not.
        """
        rule = self.resolve_periodicity(periodicity)
        if rule is None:
            raise ValidationError(f"Cycle {self.cycle_number} has no periodicity to generate sessions from")
        sessions = tuple(
            WorkoutSession.create(
                date=d,
                program_id=self.program_id,
                metadata={"cycle_id": self.id, "cycle_number": self.cycle_number},
            )
            for d in workout_dates(rule, self.start_date, self.effective_end_date)
        )
        return replace(self, scheduled_sessions=sessions)

    def is_workout_expected_on_date(self, on: date, periodicity: Optional[PeriodicityRule] = None) -> bool:
        rule = self.resolve_periodicity(periodicity)
        if rule is None or not self.is_within_date_range(on):
            return False
        return is_workout_expected(rule, self.start_date, on)

    # -- Session queries --

    @property
    def total_workouts_count(self) -> int:
        return len(self.scheduled_sessions)

    @property
    def completed_workouts_count(self) -> int:
        return sum(1 for s in self.scheduled_sessions if s.is_completed)

    @property
    def completion_percentage(self) -> float:
        if not self.scheduled_sessions:
            return 0.0
        return self.completed_workouts_count / self.total_workouts_count

    def current_workout_session(self, on: date) -> Optional[WorkoutSession]:
        """Latest uncompleted session dated on or before ``on``."""
        day = as_date(on)
        candidates = [s for s in self.scheduled_sessions if not s.is_completed and s.date <= day]
        return max(candidates, key=lambda s: s.date, default=None)

    def next_workout(self, on: date) -> Optional[WorkoutSession]:
        """Earliest uncompleted session dated after ``on``."""
        day = as_date(on)
        candidates = [s for s in self.scheduled_sessions if not s.is_completed and s.date > day]
        return min(candidates, key=lambda s: s.date, default=None)

    @property
    def last_completed_workout(self) -> Optional[WorkoutSession]:
        completed = [s for s in self.scheduled_sessions if s.is_completed]
        return max(completed, key=lambda s: s.date, default=None)

    def workouts_for_week(self, week_start: date) -> list[WorkoutSession]:
        first = as_date(week_start)
        last = first + timedelta(days=6)
        return [s for s in self.scheduled_sessions if first <= s.date <= last]

    def workouts_for_date(self, on: date) -> list[WorkoutSession]:
        day = as_date(on)
        return [s for s in self.scheduled_sessions if s.date == day]

    # -- Session edits --

    def _session_index(self, session_id: str) -> int:
        for idx, session in enumerate(self.scheduled_sessions):
            if session.id == session_id:
                return idx
        raise NotFoundError("WorkoutSession", session_id)

    def add_workout_session(self, session: WorkoutSession) -> "ProgramCycle":
        sessions = sorted([*self.scheduled_sessions, session], key=lambda s: s.date)
        return replace(self, scheduled_sessions=tuple(sessions))

    def remove_workout_session(self, session_id: str) -> "ProgramCycle":
        self._session_index(session_id)
        return replace(
            self,
            scheduled_sessions=tuple(s for s in self.scheduled_sessions if s.id != session_id),
        )

    def update_workout_session(self, session: WorkoutSession) -> "ProgramCycle":
        idx = self._session_index(session.id)
        sessions = list(self.scheduled_sessions)
        sessions[idx] = session
        return replace(self, scheduled_sessions=tuple(sessions))

    def reschedule_session(self, session_id: str, new_date: date) -> "ProgramCycle":
        """Move one session and shift every later uncompleted session by the same number of days.

        Raises ``ValidationError`` if any moved session would leave the cycle's range.
        """
        idx = self._session_index(session_id)
        moved = self.scheduled_sessions[idx]
        target = as_date(new_date)
        delta = target - moved.date
        if not delta:
            return self
        shifted = []
        for session in self.scheduled_sessions:
            if session.id == session_id:
                session = replace(session, date=target)
            elif session.date > moved.date and not session.is_completed:
                session = replace(session, date=session.date + delta)
            else:
                shifted.append(session)
                continue
            if not self.is_within_date_range(session.date):
                raise ValidationError(
                    f"Rescheduling would move a session to {session.date}, outside cycle "
                    f"{self.cycle_number} ({self.start_date}..{self.effective_end_date})"
                )
            shifted.append(session)
        shifted.sort(key=lambda s: s.date)
        return replace(self, scheduled_sessions=tuple(shifted))
