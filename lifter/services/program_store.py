"""Program repository over SQLAlchemy.

Each Program is stored as one JSON document and replaced whole on update;
the scheduling core never sees the storage format. A few columns are
denormalized from the document so listing queries stay in SQL.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from lifter.db import session_scope
from lifter.errors import NotFoundError, ValidationError
from lifter.models import ProgramRecord
from lifter.schemas import program_from_json, program_to_json
from lifter.services.programs import Program, ProgramDifficulty, ProgramType


def _apply(record: ProgramRecord, program: Program) -> None:
    record.name = program.name
    record.program_type = program.type.value
    record.difficulty = program.difficulty.value
    record.is_default = program.is_default
    record.template_id = program.metadata.get("template_id")
    record.document = program_to_json(program)


class ProgramStore:
    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None):
        self._session_factory = session_factory

    def _load(self, stmt) -> list[Program]:
        with session_scope(self._session_factory) as s:
            records = s.execute(stmt).scalars().all()
            return [program_from_json(r.document) for r in records]

    def list_programs(self) -> list[Program]:
        return self._load(select(ProgramRecord).order_by(ProgramRecord.created_at, ProgramRecord.id))

    def get_program(self, program_id: str) -> Optional[Program]:
        with session_scope(self._session_factory) as s:
            record = s.get(ProgramRecord, program_id)
            return program_from_json(record.document) if record else None

    def create_program(self, program: Program) -> Program:
        with session_scope(self._session_factory) as s:
            if s.get(ProgramRecord, program.id) is not None:
                raise ValidationError(f"Program already exists: {program.id}")
            record = ProgramRecord(id=program.id, created_at=program.created_at)
            _apply(record, program)
            s.add(record)
        return program

    def update_program(self, program: Program) -> Program:
        with session_scope(self._session_factory) as s:
            record = s.get(ProgramRecord, program.id)
            if record is None:
                raise NotFoundError("Program", program.id)
            _apply(record, program)
        return program

    def delete_program(self, program_id: str) -> bool:
        with session_scope(self._session_factory) as s:
            record = s.get(ProgramRecord, program_id)
            if record is None:
                return False
            s.delete(record)
            return True

    def search_programs(self, query: str) -> list[Program]:
        """Case-insensitive match on name, description or tags."""
        needle = (query or "").strip().lower()
        programs = self.list_programs()
        if not needle:
            return programs
        return [
            p
            for p in programs
            if needle in p.name.lower()
            or needle in (p.description or "").lower()
            or any(needle in tag.lower() for tag in p.tags)
        ]

    def programs_by_type(self, program_type: ProgramType) -> list[Program]:
        return self._load(select(ProgramRecord).where(ProgramRecord.program_type == ProgramType(program_type).value))

    def programs_by_difficulty(self, difficulty: ProgramDifficulty) -> list[Program]:
        return self._load(
            select(ProgramRecord).where(ProgramRecord.difficulty == ProgramDifficulty(difficulty).value)
        )

    def default_programs(self) -> list[Program]:
        return self._load(select(ProgramRecord).where(ProgramRecord.is_default.is_(True)))

    def custom_programs(self) -> list[Program]:
        return self._load(select(ProgramRecord).where(ProgramRecord.is_default.is_(False)))

    def get_user_copy(self, template_id: str) -> Optional[Program]:
        programs = self._load(select(ProgramRecord).where(ProgramRecord.template_id == template_id))
        return programs[0] if programs else None

    def copy_program_as_custom(self, template: Program) -> Program:
        """Return the user's copy of ``template``, creating it on first use."""
        existing = self.get_user_copy(template.id)
        if existing is not None:
            return existing
        return self.create_program(template.as_custom_copy())
