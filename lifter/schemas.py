"""Document models: the JSON shape a Program takes in the store.

``ProgramDocument.from_domain(program).model_dump(mode="json")`` produces the
stored document and ``ProgramDocument.model_validate(data).to_domain()`` reads
it back. The whole value round-trips, cycles and sessions included.
"""

from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime as dt_datetime
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lifter.services.cycles import ProgramCycle
from lifter.services.periodicity import Custom, Cyclic, Interval, PeriodicityRule, Weekly
from lifter.services.programs import DayTemplate, Program, ProgramDifficulty, ProgramType
from lifter.services.workouts import ExerciseSet, WorkoutExercise, WorkoutSession

SCHEMA_VERSION = 1


# -- Periodicity --


class WeeklyDocument(BaseModel):
    kind: Literal["weekly"] = "weekly"
    days_of_week: list[int]

    def to_domain(self) -> Weekly:
        return Weekly(tuple(self.days_of_week))


class CyclicDocument(BaseModel):
    kind: Literal["cyclic"] = "cyclic"
    workout_days: int
    rest_days: int = 0

    def to_domain(self) -> Cyclic:
        return Cyclic(self.workout_days, self.rest_days)


class IntervalDocument(BaseModel):
    kind: Literal["interval"] = "interval"
    every_n_days: int

    def to_domain(self) -> Interval:
        return Interval(self.every_n_days)


class CustomDocument(BaseModel):
    kind: Literal["custom"] = "custom"
    pattern: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> Custom:
        return Custom(self.pattern)


PeriodicityDocument = Annotated[
    Union[WeeklyDocument, CyclicDocument, IntervalDocument, CustomDocument],
    Field(discriminator="kind"),
]


def periodicity_to_document(rule: Optional[PeriodicityRule]):
    if rule is None:
        return None
    if isinstance(rule, Weekly):
        return WeeklyDocument(days_of_week=list(rule.days_of_week))
    if isinstance(rule, Cyclic):
        return CyclicDocument(workout_days=rule.workout_days, rest_days=rule.rest_days)
    if isinstance(rule, Interval):
        return IntervalDocument(every_n_days=rule.every_n_days)
    if isinstance(rule, Custom):
        return CustomDocument(pattern=dict(rule.pattern))
    raise TypeError(f"Unknown periodicity rule: {rule!r}")


# -- Workout records --


class ExerciseSetDocument(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    target_reps: Optional[int] = None
    target_weight: Optional[float] = None
    actual_reps: Optional[int] = None
    actual_weight: Optional[float] = None
    notes: Optional[str] = None
    is_completed: bool = False
    completed_at: Optional[dt_datetime] = None

    def to_domain(self) -> ExerciseSet:
        return ExerciseSet(**self.model_dump())


class WorkoutExerciseDocument(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    exercise_id: str
    name: str
    sets: list[ExerciseSetDocument] = Field(default_factory=list)
    rest_seconds: int = 180
    notes: Optional[str] = None

    def to_domain(self) -> WorkoutExercise:
        return WorkoutExercise(
            id=self.id,
            exercise_id=self.exercise_id,
            name=self.name,
            sets=tuple(s.to_domain() for s in self.sets),
            rest_seconds=self.rest_seconds,
            notes=self.notes,
        )


class WorkoutSessionDocument(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: dt_date
    program_id: Optional[str] = None
    program_name: Optional[str] = None
    exercises: list[WorkoutExerciseDocument] = Field(default_factory=list)
    start_time: Optional[dt_datetime] = None
    end_time: Optional[dt_datetime] = None
    notes: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def thaw_metadata(cls, v):
        return dict(v) if isinstance(v, Mapping) else v

    def to_domain(self) -> WorkoutSession:
        return WorkoutSession(
            id=self.id,
            date=self.date,
            program_id=self.program_id,
            program_name=self.program_name,
            exercises=tuple(e.to_domain() for e in self.exercises),
            start_time=self.start_time,
            end_time=self.end_time,
            notes=self.notes,
            metadata=dict(self.metadata),
        )


# -- Cycles and programs --


class ProgramCycleDocument(BaseModel):
    id: str
    program_id: str
    cycle_number: int
    start_date: dt_date
    end_date: Optional[dt_date] = None
    periodicity: Optional[PeriodicityDocument] = None
    is_active: bool = False
    is_completed: bool = False
    scheduled_sessions: list[WorkoutSessionDocument] = Field(default_factory=list)
    notes: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: dt_datetime

    @classmethod
    def from_domain(cls, cycle: ProgramCycle) -> "ProgramCycleDocument":
        return cls(
            id=cycle.id,
            program_id=cycle.program_id,
            cycle_number=cycle.cycle_number,
            start_date=cycle.start_date,
            end_date=cycle.end_date,
            periodicity=periodicity_to_document(cycle.periodicity),
            is_active=cycle.is_active,
            is_completed=cycle.is_completed,
            scheduled_sessions=[WorkoutSessionDocument.model_validate(s) for s in cycle.scheduled_sessions],
            notes=cycle.notes,
            metadata=dict(cycle.metadata),
            created_at=cycle.created_at,
        )

    def to_domain(self) -> ProgramCycle:
        return ProgramCycle(
            id=self.id,
            program_id=self.program_id,
            cycle_number=self.cycle_number,
            start_date=self.start_date,
            end_date=self.end_date,
            periodicity=self.periodicity.to_domain() if self.periodicity else None,
            is_active=self.is_active,
            is_completed=self.is_completed,
            scheduled_sessions=tuple(s.to_domain() for s in self.scheduled_sessions),
            notes=self.notes,
            metadata=dict(self.metadata),
            created_at=self.created_at,
        )


class DayTemplateDocument(BaseModel):
    name: str
    exercise_ids: list[str] = Field(default_factory=list)


class ProgramDocument(BaseModel):
    schema_version: int = SCHEMA_VERSION
    id: str
    name: str
    type: ProgramType = ProgramType.GENERAL
    difficulty: ProgramDifficulty = ProgramDifficulty.BEGINNER
    default_periodicity: Optional[PeriodicityDocument] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    is_default: bool = False
    cycles: list[ProgramCycleDocument] = Field(default_factory=list)
    day_templates: list[DayTemplateDocument] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: dt_datetime

    @classmethod
    def from_domain(cls, program: Program) -> "ProgramDocument":
        return cls(
            id=program.id,
            name=program.name,
            type=program.type,
            difficulty=program.difficulty,
            default_periodicity=periodicity_to_document(program.default_periodicity),
            description=program.description,
            tags=list(program.tags),
            is_default=program.is_default,
            cycles=[ProgramCycleDocument.from_domain(c) for c in program.cycles],
            day_templates=[
                DayTemplateDocument(name=t.name, exercise_ids=list(t.exercise_ids)) for t in program.day_templates
            ],
            metadata=dict(program.metadata),
            created_at=program.created_at,
        )

    def to_domain(self) -> Program:
        return Program(
            id=self.id,
            name=self.name,
            type=self.type,
            difficulty=self.difficulty,
            default_periodicity=self.default_periodicity.to_domain() if self.default_periodicity else None,
            description=self.description,
            tags=tuple(self.tags),
            is_default=self.is_default,
            cycles=tuple(c.to_domain() for c in self.cycles),
            day_templates=tuple(DayTemplate(t.name, tuple(t.exercise_ids)) for t in self.day_templates),
            metadata=dict(self.metadata),
            created_at=self.created_at,
        )


def program_to_json(program: Program) -> dict[str, Any]:
    return ProgramDocument.from_domain(program).model_dump(mode="json")


def program_from_json(data: dict[str, Any]) -> Program:
    return ProgramDocument.model_validate(data).to_domain()
