"""Error taxonomy for the cycle scheduling core.

Every error here is a recoverable, caller-visible failure. The core raises and
never logs; collaborators decide how to surface them.
"""

from __future__ import annotations

from typing import Optional


class SchedulingError(Exception):
    pass


class ValidationError(SchedulingError, ValueError):
    """Malformed construction input (bad weekday set, non-positive lengths, reversed dates)."""


class CycleOverlapError(SchedulingError):
    def __init__(self, message: str, conflicting_cycle_id: Optional[str] = None):
        super().__init__(message)
        self.conflicting_cycle_id = conflicting_cycle_id


class NotFoundError(SchedulingError, LookupError):
    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class InvalidActivationError(SchedulingError):
    def __init__(self, message: str, cycle_id: Optional[str] = None):
        super().__init__(message)
        self.cycle_id = cycle_id


class UnsupportedScheduleError(SchedulingError):
    """Raised when a custom periodicity would have to be evaluated."""
