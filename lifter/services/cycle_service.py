"""Cycle orchestration: load a Program, apply a core operation, save it back.

The scheduling core is pure; this service is where reference dates come
from (an injected clock) and where state changes are logged.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from lifter.errors import NotFoundError, SchedulingError
from lifter.logging_config import log_context
from lifter.services.cycles import ProgramCycle
from lifter.services.periodicity import PeriodicityRule, describe
from lifter.services.program_store import ProgramStore
from lifter.services.programs import CycleStatus, Program
from lifter.validators import CycleCreateInput, ProgramCreateInput

logger = logging.getLogger(__name__)


class ProgramCycleService:
    def __init__(self, store: ProgramStore, clock: Callable[[], date] = date.today):
        self._store = store
        self._clock = clock

    def _require(self, program_id: str) -> Program:
        program = self._store.get_program(program_id)
        if program is None:
            raise NotFoundError("Program", program_id)
        return program

    def _apply(self, program: Program, action: str, op: Callable[[Program], Program]) -> Program:
        try:
            updated = op(program)
        except SchedulingError as exc:
            logger.warning(
                "%s rejected for program %s: %s",
                action,
                program.id,
                exc,
                **log_context(program_id=program.id, action=action, error=type(exc).__name__),
            )
            raise
        if updated is not program:
            self._store.update_program(updated)
        return updated

    # -- Programs --

    def create_program(self, payload: ProgramCreateInput) -> Program:
        program = self._store.create_program(payload.to_program())
        logger.info("Program created: %s", program.name, **log_context(program_id=program.id))
        return program

    def start_program(self, template_id: str, end_date: Optional[date] = None) -> Program:
        """Start a cycle on the user's own copy of a program, copying default templates on first use."""
        template = self._require(template_id)
        program = self._store.copy_program_as_custom(template) if template.is_default else template
        return self.start_immediate_cycle_for_program(program.id, end_date=end_date)

    # -- Cycle mutations --

    def create_cycle_for_program(self, program_id: str, payload: CycleCreateInput) -> Program:
        program = self._require(program_id)
        updated = self._apply(
            program,
            "create_cycle",
            lambda p: p.create_cycle(
                start_date=payload.start_date,
                end_date=payload.end_date,
                periodicity=payload.rule(),
                notes=payload.notes,
                metadata=payload.metadata,
                reference_date=self._clock(),
            ),
        )
        cycle = updated.cycles[-1]
        logger.info(
            "Cycle %d created (%d sessions, active=%s)",
            cycle.cycle_number,
            cycle.total_workouts_count,
            cycle.is_active,
            **log_context(program_id=program_id, cycle_id=cycle.id),
        )
        return updated

    def start_immediate_cycle_for_program(
        self,
        program_id: str,
        end_date: Optional[date] = None,
        periodicity: Optional[PeriodicityRule] = None,
        notes: Optional[str] = None,
    ) -> Program:
        program = self._require(program_id)
        today = self._clock()
        updated = self._apply(
            program,
            "start_immediate_cycle",
            lambda p: p.start_immediate_cycle(
                end_date=end_date, periodicity=periodicity, notes=notes, reference_date=today
            ),
        )
        logger.info("Immediate cycle started on %s", today, **log_context(program_id=program_id))
        return updated

    def activate_cycle(self, program_id: str, cycle_id: str) -> Program:
        program = self._require(program_id)
        updated = self._apply(
            program, "activate_cycle", lambda p: p.activate_cycle(cycle_id, reference_date=self._clock())
        )
        logger.info("Cycle activated", **log_context(program_id=program_id, cycle_id=cycle_id))
        return updated

    def complete_current_cycle(self, program_id: str) -> Program:
        program = self._require(program_id)
        active = program.active_cycle
        updated = self._apply(program, "complete_current_cycle", lambda p: p.complete_current_cycle())
        if active is not None:
            logger.info("Cycle %d completed", active.cycle_number, **log_context(program_id=program_id, cycle_id=active.id))
        return updated

    def reschedule_session(self, program_id: str, cycle_id: str, session_id: str, new_date: date) -> Program:
        program = self._require(program_id)

        def op(p: Program) -> Program:
            return p.update_cycle(p.get_cycle(cycle_id).reschedule_session(session_id, new_date))

        return self._apply(program, "reschedule_session", op)

    def refresh_all_program_cycle_activations(self) -> list[str]:
        """Re-evaluate activation for every program; returns ids of programs that changed."""
        today = self._clock()
        changed: list[str] = []
        for program in self._store.list_programs():
            updated = program.refresh_cycle_activation(today)
            before = program.active_cycle.id if program.active_cycle else None
            after = updated.active_cycle.id if updated.active_cycle else None
            if before != after:
                self._store.update_program(updated)
                changed.append(program.id)
        if changed:
            logger.info("Cycle activation refreshed for %d program(s)", len(changed), **log_context(reference_date=today))
        return changed

    # -- Queries --

    def activatable_cycles_for_program(self, program_id: str) -> list[ProgramCycle]:
        program = self._store.get_program(program_id)
        if program is None:
            return []
        return program.get_activatable_cycles(self._clock())

    def would_cycle_overlap(self, program_id: str, start_date: date, end_date: Optional[date] = None) -> bool:
        program = self._store.get_program(program_id)
        if program is None:
            return False
        return program.would_cycle_overlap(start_date, end_date)

    def active_cycle(self) -> Optional[ProgramCycle]:
        for program in self._store.list_programs():
            if program.active_cycle is not None:
                return program.active_cycle
        return None

    def cycle_schedule_info(self, program_id: str, cycle_id: str) -> str:
        program = self._require(program_id)
        rule = program.effective_periodicity(program.get_cycle(cycle_id))
        return describe(rule) if rule is not None else "No schedule defined"

    def program_cycle_status(self, program_id: str) -> CycleStatus:
        return self._require(program_id).cycle_status(self._clock())
