"""Programs: a reusable template plus its history of cycles.

``Program`` is a frozen value. Cycle operations return a new ``Program`` with
an updated cycle tuple, so a template can spawn any number of independent
cycle histories without aliasing. Construction rejects any cycle tuple that
breaks these rules, so they hold for loaded documents as well:

* at most one cycle is active,
* no two cycles' ``[start_date, effective_end_date]`` ranges overlap,
* cycle numbers are unique and increase per program.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from lifter.errors import CycleOverlapError, InvalidActivationError, NotFoundError, ValidationError
from lifter.services.cycles import ProgramCycle, effective_end
from lifter.services.periodicity import (
    PeriodicityRule,
    as_date,
    describe,
    frequency_description,
    is_evaluable,
    next_expected_date,
)
from lifter.services.workouts import frozen_mapping, new_id, utcnow


class ProgramType(str, Enum):
    STRENGTH = "strength"
    HYPERTROPHY = "hypertrophy"
    POWERLIFTING = "powerlifting"
    BODYBUILDING = "bodybuilding"
    CARDIO = "cardio"
    HIIT = "hiit"
    FLEXIBILITY = "flexibility"
    GENERAL = "general"
    SPORT = "sport"
    REHABILITATION = "rehabilitation"

    @property
    def display_name(self) -> str:
        return _PROGRAM_TYPE_NAMES[self]


_PROGRAM_TYPE_NAMES = {
    ProgramType.STRENGTH: "Strength Training",
    ProgramType.HYPERTROPHY: "Muscle Building",
    ProgramType.POWERLIFTING: "Powerlifting",
    ProgramType.BODYBUILDING: "Bodybuilding",
    ProgramType.CARDIO: "Cardiovascular",
    ProgramType.HIIT: "HIIT",
    ProgramType.FLEXIBILITY: "Flexibility",
    ProgramType.GENERAL: "General Fitness",
    ProgramType.SPORT: "Sport Specific",
    ProgramType.REHABILITATION: "Rehabilitation",
}


class ProgramDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def display_name(self) -> str:
        return self.value.title()


@dataclass(frozen=True)
class DayTemplate:
    """A named, reusable workout day: an ordered list of exercise ids."""

    name: str
    exercise_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class CycleStatus:
    total_cycles: int
    active_cycles: int
    completed_cycles: int
    activatable_cycles: int
    current_active_cycle_id: Optional[str]
    has_valid_cycle_state: bool
    next_cycle_number: int


def _reference(reference_date: Optional[date]) -> date:
    return as_date(reference_date) if reference_date is not None else date.today()


@dataclass(frozen=True)
class Program:
    name: str
    type: ProgramType = ProgramType.GENERAL
    difficulty: ProgramDifficulty = ProgramDifficulty.BEGINNER
    default_periodicity: Optional[PeriodicityRule] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    is_default: bool = False
    cycles: tuple[ProgramCycle, ...] = ()
    day_templates: tuple[DayTemplate, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "cycles", tuple(self.cycles))
        object.__setattr__(self, "day_templates", tuple(self.day_templates))
        object.__setattr__(self, "metadata", frozen_mapping(self.metadata))
        if not (self.name or "").strip():
            raise ValidationError("Program name must not be empty")
        numbers = [c.cycle_number for c in self.cycles]
        if len(numbers) != len(set(numbers)):
            raise ValidationError(f"Duplicate cycle numbers in program {self.id}")
        if sum(1 for c in self.cycles if c.is_active) > 1:
            raise ValidationError(f"Program {self.id} has more than one active cycle")
        for cycle in self.cycles:
            if cycle.program_id != self.id:
                raise ValidationError(f"Cycle {cycle.id} belongs to program {cycle.program_id}, not {self.id}")
        # Sorted by start, any overlap shows up between neighbours.
        ordered = sorted(self.cycles, key=lambda c: c.start_date)
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.start_date <= prev.effective_end_date:
                raise CycleOverlapError(
                    f"Cycle {cur.cycle_number} overlaps cycle {prev.cycle_number} in program {self.id}",
                    conflicting_cycle_id=prev.id,
                )

    @classmethod
    def create(
        cls,
        name: str,
        type: ProgramType = ProgramType.GENERAL,
        difficulty: ProgramDifficulty = ProgramDifficulty.BEGINNER,
        default_periodicity: Optional[PeriodicityRule] = None,
        description: Optional[str] = None,
        tags: tuple[str, ...] = (),
        day_templates: tuple[DayTemplate, ...] = (),
        is_default: bool = False,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> "Program":
        return cls(
            name=name,
            type=type,
            difficulty=difficulty,
            default_periodicity=default_periodicity,
            description=description,
            tags=tuple(tags),
            day_templates=tuple(day_templates),
            is_default=is_default,
            metadata=metadata or {},
        )

    # -- Cycle queries --

    @property
    def next_cycle_number(self) -> int:
        return max((c.cycle_number for c in self.cycles), default=0) + 1

    @property
    def active_cycle(self) -> Optional[ProgramCycle]:
        return next((c for c in self.cycles if c.is_active), None)

    @property
    def active_cycles_count(self) -> int:
        return sum(1 for c in self.cycles if c.is_active)

    @property
    def has_valid_cycle_state(self) -> bool:
        return self.active_cycles_count <= 1

    @property
    def completed_cycles(self) -> list[ProgramCycle]:
        return [c for c in self.cycles if c.is_completed]

    @property
    def last_completed_cycle(self) -> Optional[ProgramCycle]:
        return max(self.completed_cycles, key=lambda c: c.cycle_number, default=None)

    def get_cycle(self, cycle_id: str) -> ProgramCycle:
        for cycle in self.cycles:
            if cycle.id == cycle_id:
                return cycle
        raise NotFoundError("ProgramCycle", cycle_id)

    def effective_periodicity(self, cycle: ProgramCycle) -> Optional[PeriodicityRule]:
        return cycle.resolve_periodicity(self.default_periodicity)

    def conflicting_cycle(
        self,
        start_date: date,
        end_date: Optional[date] = None,
        exclude_cycle_id: Optional[str] = None,
    ) -> Optional[ProgramCycle]:
        for cycle in self.cycles:
            if cycle.id != exclude_cycle_id and cycle.overlaps(start_date, end_date):
                return cycle
        return None

    def would_cycle_overlap(
        self,
        start_date: date,
        end_date: Optional[date] = None,
        exclude_cycle_id: Optional[str] = None,
    ) -> bool:
        return self.conflicting_cycle(start_date, end_date, exclude_cycle_id) is not None

    def get_activatable_cycles(self, reference_date: Optional[date] = None) -> list[ProgramCycle]:
        today = _reference(reference_date)
        return [c for c in self.cycles if c.can_be_activated_on(today)]

    # -- Cycle operations --

    def _with_cycles(self, cycles) -> "Program":
        return replace(self, cycles=tuple(cycles))

    def create_cycle(
        self,
        start_date: date,
        end_date: Optional[date] = None,
        periodicity: Optional[PeriodicityRule] = None,
        notes: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        reference_date: Optional[date] = None,
    ) -> "Program":
        """Append a new cycle, generating its sessions from the effective periodicity.

        The cycle becomes active only when its range contains the reference
        date and no other cycle is active. Custom or missing periodicity
        leaves the cycle without generated sessions.
        """
        today = _reference(reference_date)
        start = as_date(start_date)
        end = as_date(end_date) if end_date is not None else None
        if end is not None and end < start:
            raise ValidationError("Cycle end_date must not be before start_date")
        conflict = self.conflicting_cycle(start, end)
        if conflict is not None:
            raise CycleOverlapError(
                f"Cycle {start}..{effective_end(start, end)} overlaps cycle {conflict.cycle_number}",
                conflicting_cycle_id=conflict.id,
            )

        in_range = start <= today <= effective_end(start, end)
        cycle = ProgramCycle.create(
            program_id=self.id,
            cycle_number=self.next_cycle_number,
            start_date=start,
            end_date=end,
            periodicity=periodicity,
            notes=notes,
            metadata=metadata,
            is_active=in_range and self.active_cycle is None,
        )
        rule = self.effective_periodicity(cycle)
        if rule is not None and is_evaluable(rule):
            cycle = cycle.generate_scheduled_sessions(rule)
        return self._with_cycles([*self.cycles, cycle])

    def start_immediate_cycle(
        self,
        end_date: Optional[date] = None,
        periodicity: Optional[PeriodicityRule] = None,
        notes: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        reference_date: Optional[date] = None,
    ) -> "Program":
        today = _reference(reference_date)
        return self.create_cycle(
            start_date=today,
            end_date=end_date,
            periodicity=periodicity,
            notes=notes,
            metadata=metadata,
            reference_date=today,
        )

    def activate_cycle(self, cycle_id: str, reference_date: Optional[date] = None) -> "Program":
        today = _reference(reference_date)
        target = self.get_cycle(cycle_id)
        if target.is_completed:
            raise InvalidActivationError(f"Cycle {target.cycle_number} is completed", cycle_id=cycle_id)
        if not target.is_within_date_range(today):
            raise InvalidActivationError(
                f"Cycle {target.cycle_number} cannot be activated on {today}: outside its date range",
                cycle_id=cycle_id,
            )
        return self._with_cycles(c.start(today) if c.id == cycle_id else c.stop() for c in self.cycles)

    def complete_current_cycle(self) -> "Program":
        active = self.active_cycle
        if active is None:
            return self
        completed = active.complete()
        return self._with_cycles(completed if c.id == active.id else c for c in self.cycles)

    def refresh_cycle_activation(self, reference_date: Optional[date] = None) -> "Program":
        """Activate the eligible cycle for the reference date and deactivate the rest.

        Cycle ranges never overlap, so at most one cycle is eligible; should
        that ever change, the lowest cycle number wins. Completed cycles are
        left as they are.
        """
        today = _reference(reference_date)
        winner = min(self.get_activatable_cycles(today), key=lambda c: c.cycle_number, default=None)
        updated = []
        for cycle in self.cycles:
            if cycle.is_completed:
                updated.append(cycle)
            elif winner is not None and cycle.id == winner.id:
                updated.append(cycle.start(today))
            else:
                updated.append(cycle.stop())
        return self._with_cycles(updated)

    def remove_cycle(self, cycle_id: str) -> "Program":
        self.get_cycle(cycle_id)
        return self._with_cycles(c for c in self.cycles if c.id != cycle_id)

    def update_cycle(self, updated: ProgramCycle) -> "Program":
        self.get_cycle(updated.id)
        conflict = self.conflicting_cycle(updated.start_date, updated.end_date, exclude_cycle_id=updated.id)
        if conflict is not None:
            raise CycleOverlapError(
                f"Cycle {updated.cycle_number} overlaps cycle {conflict.cycle_number}",
                conflicting_cycle_id=conflict.id,
            )
        if updated.is_active and any(c.is_active and c.id != updated.id for c in self.cycles):
            raise InvalidActivationError(
                f"Cycle {updated.cycle_number} cannot be active while another cycle is active",
                cycle_id=updated.id,
            )
        return self._with_cycles(updated if c.id == updated.id else c for c in self.cycles)

    # -- Schedule queries --

    def is_workout_expected_on_date(self, on: date) -> bool:
        active = self.active_cycle
        if active is None:
            return False
        return active.is_workout_expected_on_date(on, self.default_periodicity)

    def next_expected_workout_date(self, from_date: Optional[date] = None) -> Optional[date]:
        if self.default_periodicity is None or not is_evaluable(self.default_periodicity):
            return None
        return next_expected_date(self.default_periodicity, _reference(from_date))

    @property
    def has_scheduling_periodicity(self) -> bool:
        return self.default_periodicity is not None

    @property
    def periodicity_description(self) -> str:
        if self.default_periodicity is None:
            return "No periodicity defined"
        return describe(self.default_periodicity)

    @property
    def frequency_description(self) -> str:
        if self.default_periodicity is None:
            return "No schedule"
        return frequency_description(self.default_periodicity)

    def cycle_status(self, reference_date: Optional[date] = None) -> CycleStatus:
        active = self.active_cycle
        return CycleStatus(
            total_cycles=len(self.cycles),
            active_cycles=self.active_cycles_count,
            completed_cycles=len(self.completed_cycles),
            activatable_cycles=len(self.get_activatable_cycles(reference_date)),
            current_active_cycle_id=active.id if active else None,
            has_valid_cycle_state=self.has_valid_cycle_state,
            next_cycle_number=self.next_cycle_number,
        )

    def as_custom_copy(self) -> "Program":
        """User-owned copy of a template: fresh id, no cycles, linked back via ``template_id``."""
        return replace(
            self,
            id=new_id(),
            created_at=utcnow(),
            is_default=False,
            cycles=(),
            metadata={**self.metadata, "template_id": self.id},
        )
