"""Pydantic validation models for all user-facing data entry points."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from lifter.services.periodicity import Custom, Cyclic, Interval, PeriodicityRule, Weekly
from lifter.services.programs import DayTemplate, Program, ProgramDifficulty, ProgramType

_REQUIRED_BY_KIND = {
    "weekly": ("days_of_week",),
    "cyclic": ("workout_days",),
    "interval": ("every_n_days",),
    "custom": (),
}


class PeriodicityInput(BaseModel):
    kind: Literal["weekly", "cyclic", "interval", "custom"]
    days_of_week: Optional[list[int]] = None
    workout_days: Optional[int] = Field(default=None, ge=1)
    rest_days: Optional[int] = Field(default=None, ge=0)
    every_n_days: Optional[int] = Field(default=None, ge=1)
    pattern: Optional[dict[str, Any]] = None

    @field_validator("days_of_week")
    @classmethod
    def valid_weekdays(cls, v):
        if v is None:
            return v
        if not v:
            raise ValueError("days_of_week must not be empty")
        bad = [d for d in v if d < 1 or d > 7]
        if bad:
            raise ValueError(f"days_of_week must be within 1..7, got {bad}")
        return sorted(set(v))

    @model_validator(mode="after")
    def fields_for_kind(self):
        missing = [name for name in _REQUIRED_BY_KIND[self.kind] if getattr(self, name) is None]
        if missing:
            raise ValueError(f"{self.kind} periodicity requires {', '.join(missing)}")
        return self

    def to_rule(self) -> PeriodicityRule:
        if self.kind == "weekly":
            return Weekly(tuple(self.days_of_week))
        if self.kind == "cyclic":
            return Cyclic(self.workout_days, self.rest_days or 0)
        if self.kind == "interval":
            return Interval(self.every_n_days)
        return Custom(self.pattern or {})


class CycleCreateInput(BaseModel):
    start_date: date
    end_date: Optional[date] = None
    periodicity: Optional[PeriodicityInput] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(cls, v, info):
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must be >= start_date")
        return v

    def rule(self) -> Optional[PeriodicityRule]:
        return self.periodicity.to_rule() if self.periodicity else None


class DayTemplateInput(BaseModel):
    name: str = Field(min_length=1, max_length=80)
    exercise_ids: list[str] = Field(default_factory=list)


class ProgramCreateInput(BaseModel):
    name: str = Field(min_length=1, max_length=140)
    type: ProgramType = ProgramType.GENERAL
    difficulty: ProgramDifficulty = ProgramDifficulty.BEGINNER
    default_periodicity: Optional[PeriodicityInput] = None
    description: Optional[str] = Field(default=None, max_length=2000)
    tags: list[str] = Field(default_factory=list)
    day_templates: list[DayTemplateInput] = Field(default_factory=list)
    is_default: bool = False

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()

    def to_program(self) -> Program:
        return Program.create(
            name=self.name,
            type=self.type,
            difficulty=self.difficulty,
            default_periodicity=self.default_periodicity.to_rule() if self.default_periodicity else None,
            description=self.description,
            tags=tuple(self.tags),
            day_templates=tuple(DayTemplate(t.name, tuple(t.exercise_ids)) for t in self.day_templates),
            is_default=self.is_default,
        )
