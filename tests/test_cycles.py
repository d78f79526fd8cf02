"""Tests for ProgramCycle: construction, generation, lifecycle and session queries."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from lifter.errors import InvalidActivationError, NotFoundError, UnsupportedScheduleError, ValidationError
from lifter.services.cycles import OPEN_CYCLE_HORIZON_DAYS, ProgramCycle
from lifter.services.periodicity import Custom, Cyclic, Interval, Weekly
from lifter.services.workouts import WorkoutSession


def _cycle(**overrides) -> ProgramCycle:
    defaults = {
        "program_id": "prog-1",
        "cycle_number": 1,
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 1, 14),
    }
    defaults.update(overrides)
    return ProgramCycle.create(**defaults)


def _done(session: WorkoutSession) -> WorkoutSession:
    start = datetime(2024, 1, 1, 7, 0, tzinfo=timezone.utc)
    return replace(session, start_time=start, end_time=start + timedelta(hours=1))


# --- Construction ---

def test_create_defaults():
    cycle = _cycle()
    assert cycle.is_active is False
    assert cycle.is_completed is False
    assert cycle.scheduled_sessions == ()
    assert cycle.id
    assert cycle.periodicity is None


def test_create_generates_unique_ids():
    assert _cycle().id != _cycle().id


@pytest.mark.parametrize("number", [0, -1])
def test_cycle_number_must_be_positive(number):
    with pytest.raises(ValidationError):
        _cycle(cycle_number=number)


def test_end_before_start_rejected():
    with pytest.raises(ValidationError):
        _cycle(start_date=date(2024, 2, 1), end_date=date(2024, 1, 31))


def test_active_and_completed_rejected():
    with pytest.raises(ValidationError):
        ProgramCycle(program_id="p", cycle_number=1, start_date=date(2024, 1, 1), is_active=True, is_completed=True)


def test_single_day_cycle_allowed():
    cycle = _cycle(start_date=date(2024, 1, 1), end_date=date(2024, 1, 1))
    assert cycle.duration_in_days == 0


# --- Date range ---

def test_open_ended_cycle_uses_horizon():
    cycle = _cycle(end_date=None)
    assert cycle.effective_end_date == date(2024, 1, 1) + timedelta(days=OPEN_CYCLE_HORIZON_DAYS)
    assert cycle.duration_in_days == OPEN_CYCLE_HORIZON_DAYS


def test_duration_in_days_and_weeks():
    cycle = _cycle(start_date=date(2024, 1, 1), end_date=date(2024, 1, 15))
    assert cycle.duration_in_days == 14
    assert cycle.duration_in_weeks == 2.0
    assert _cycle(end_date=date(2024, 1, 4)).duration_in_weeks == pytest.approx(3 / 7)


def test_can_be_activated_on():
    cycle = _cycle()
    assert cycle.can_be_activated_on(date(2024, 1, 1))
    assert cycle.can_be_activated_on(date(2024, 1, 14))
    assert not cycle.can_be_activated_on(date(2023, 12, 31))
    assert not cycle.can_be_activated_on(date(2024, 1, 15))
    assert not cycle.complete().can_be_activated_on(date(2024, 1, 5))


def test_overlaps_closed_interval():
    cycle = _cycle(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    assert cycle.overlaps(date(2024, 1, 31), date(2024, 2, 10))
    assert cycle.overlaps(date(2023, 12, 1), date(2024, 1, 1))
    assert cycle.overlaps(date(2024, 1, 10), date(2024, 1, 12))
    assert not cycle.overlaps(date(2024, 2, 1), date(2024, 2, 28))
    # open-ended candidate starting before the cycle reaches into it
    assert cycle.overlaps(date(2023, 6, 1))


# --- Generation ---

def test_generate_weekly_sessions():
    cycle = _cycle(periodicity=Weekly([1, 3, 5])).generate_scheduled_sessions()
    assert [s.date for s in cycle.scheduled_sessions] == [
        date(2024, 1, 1),
        date(2024, 1, 3),
        date(2024, 1, 5),
        date(2024, 1, 8),
        date(2024, 1, 10),
        date(2024, 1, 12),
    ]
    first = cycle.scheduled_sessions[0]
    assert first.program_id == "prog-1"
    assert first.metadata == {"cycle_id": cycle.id, "cycle_number": 1}


def test_generation_is_idempotent_by_date():
    cycle = _cycle(periodicity=Cyclic(3, 1))
    once = cycle.generate_scheduled_sessions()
    twice = once.generate_scheduled_sessions().generate_scheduled_sessions()
    assert [s.date for s in once.scheduled_sessions] == [s.date for s in twice.scheduled_sessions]
    assert len({s.date for s in twice.scheduled_sessions}) == len(twice.scheduled_sessions)


def test_generation_does_not_mutate_receiver():
    cycle = _cycle(periodicity=Interval(2))
    cycle.generate_scheduled_sessions()
    assert cycle.scheduled_sessions == ()


def test_generation_uses_fallback_when_no_override():
    cycle = _cycle().generate_scheduled_sessions(Interval(7))
    assert [s.date for s in cycle.scheduled_sessions] == [date(2024, 1, 1), date(2024, 1, 8)]


def test_override_wins_over_fallback():
    cycle = _cycle(periodicity=Interval(7)).generate_scheduled_sessions(Interval(1))
    assert len(cycle.scheduled_sessions) == 2


def test_generation_without_any_periodicity_fails():
    with pytest.raises(ValidationError):
        _cycle().generate_scheduled_sessions()


def test_generation_with_custom_raises():
    with pytest.raises(UnsupportedScheduleError):
        _cycle(periodicity=Custom({"days": "coach"})).generate_scheduled_sessions()


def test_open_ended_generation_is_bounded():
    cycle = _cycle(end_date=None, periodicity=Interval(1)).generate_scheduled_sessions()
    assert len(cycle.scheduled_sessions) == OPEN_CYCLE_HORIZON_DAYS + 1


# --- Lifecycle ---

def test_complete_sets_flags():
    cycle = _cycle(is_active=True).complete()
    assert cycle.is_completed is True
    assert cycle.is_active is False


def test_complete_is_idempotent():
    done = _cycle(is_active=True).complete()
    again = done.complete()
    assert again == done
    assert again.complete() == done


def test_start_and_stop():
    cycle = _cycle()
    started = cycle.start(date(2024, 1, 5))
    assert started.is_active is True
    assert started.stop().is_active is False
    assert cycle.is_active is False


def test_start_outside_range_fails():
    with pytest.raises(InvalidActivationError):
        _cycle().start(date(2024, 3, 1))


def test_start_completed_fails():
    with pytest.raises(InvalidActivationError):
        _cycle().complete().start(date(2024, 1, 5))


# --- Session queries ---

def test_completion_percentage_empty_is_zero():
    assert _cycle().completion_percentage == 0.0


def test_completion_percentage_counts_completed():
    cycle = _cycle(periodicity=Weekly([1, 3, 5])).generate_scheduled_sessions()
    done = cycle.update_workout_session(_done(cycle.scheduled_sessions[0]))
    done = done.update_workout_session(_done(done.scheduled_sessions[1]))
    assert done.completed_workouts_count == 2
    assert done.total_workouts_count == 6
    assert done.completion_percentage == pytest.approx(2 / 6)
    assert done.last_completed_workout.date == date(2024, 1, 3)


def test_current_and_next_workout():
    cycle = _cycle(periodicity=Weekly([1, 3, 5])).generate_scheduled_sessions()
    on = date(2024, 1, 4)
    assert cycle.current_workout_session(on).date == date(2024, 1, 3)
    assert cycle.next_workout(on).date == date(2024, 1, 5)
    assert cycle.next_workout(date(2024, 1, 12)) is None


def test_workouts_for_week_and_date():
    cycle = _cycle(periodicity=Weekly([1, 3, 5])).generate_scheduled_sessions()
    week_two = cycle.workouts_for_week(date(2024, 1, 8))
    assert [s.date for s in week_two] == [date(2024, 1, 8), date(2024, 1, 10), date(2024, 1, 12)]
    assert len(cycle.workouts_for_date(date(2024, 1, 3))) == 1
    assert cycle.workouts_for_date(date(2024, 1, 2)) == []


def test_is_workout_expected_on_date_respects_range():
    cycle = _cycle(periodicity=Weekly([1]))
    assert cycle.is_workout_expected_on_date(date(2024, 1, 8)) is True
    assert cycle.is_workout_expected_on_date(date(2024, 1, 15)) is False
    assert _cycle().is_workout_expected_on_date(date(2024, 1, 8)) is False


# --- Session edits ---

def test_add_and_remove_session_keeps_order():
    cycle = _cycle()
    later = WorkoutSession.create(date=date(2024, 1, 10))
    earlier = WorkoutSession.create(date=date(2024, 1, 2))
    cycle = cycle.add_workout_session(later).add_workout_session(earlier)
    assert [s.date for s in cycle.scheduled_sessions] == [date(2024, 1, 2), date(2024, 1, 10)]
    cycle = cycle.remove_workout_session(earlier.id)
    assert [s.id for s in cycle.scheduled_sessions] == [later.id]


def test_unknown_session_raises():
    with pytest.raises(NotFoundError):
        _cycle().remove_workout_session("missing")
    with pytest.raises(NotFoundError):
        _cycle().reschedule_session("missing", date(2024, 1, 2))


def test_reschedule_shifts_later_sessions():
    s1 = WorkoutSession(id="s1", date=date(2026, 1, 10))
    s2 = WorkoutSession(id="s2", date=date(2026, 1, 17))
    s3 = WorkoutSession(id="s3", date=date(2026, 1, 24))
    cycle = ProgramCycle(
        id="cycle1",
        program_id="prog1",
        cycle_number=1,
        start_date=date(2026, 1, 10),
        scheduled_sessions=(s1, s2, s3),
        periodicity=Weekly([date(2026, 1, 10).isoweekday()]),
    )
    moved = cycle.reschedule_session("s2", date(2026, 1, 20))
    by_id = {s.id: s.date for s in moved.scheduled_sessions}
    assert by_id == {"s1": date(2026, 1, 10), "s2": date(2026, 1, 20), "s3": date(2026, 1, 27)}


def test_reschedule_leaves_completed_sessions():
    s1 = WorkoutSession(id="s1", date=date(2026, 1, 10))
    s2 = _done(WorkoutSession(id="s2", date=date(2026, 1, 17)))
    s3 = WorkoutSession(id="s3", date=date(2026, 1, 24))
    cycle = ProgramCycle(program_id="p", cycle_number=1, start_date=date(2026, 1, 1), scheduled_sessions=(s1, s2, s3))
    moved = cycle.reschedule_session("s1", date(2026, 1, 12))
    by_id = {s.id: s.date for s in moved.scheduled_sessions}
    assert by_id == {"s1": date(2026, 1, 12), "s2": date(2026, 1, 17), "s3": date(2026, 1, 26)}


def test_reschedule_past_range_end_rejected():
    cycle = _cycle(periodicity=Weekly([1, 3, 5])).generate_scheduled_sessions()
    last = cycle.scheduled_sessions[-1]
    with pytest.raises(ValidationError):
        cycle.reschedule_session(last.id, date(2024, 3, 1))


def test_reschedule_before_range_start_rejected():
    cycle = _cycle(periodicity=Weekly([1, 3, 5])).generate_scheduled_sessions()
    with pytest.raises(ValidationError):
        cycle.reschedule_session(cycle.scheduled_sessions[0].id, date(2023, 12, 31))


def test_reschedule_rejected_when_shift_pushes_later_session_out():
    cycle = _cycle(periodicity=Weekly([1, 3, 5])).generate_scheduled_sessions()
    # Jan 12 would move to Jan 15, past the Jan 14 end.
    with pytest.raises(ValidationError):
        cycle.reschedule_session(cycle.scheduled_sessions[0].id, date(2024, 1, 4))
    moved = cycle.reschedule_session(cycle.scheduled_sessions[0].id, date(2024, 1, 2))
    assert [s.date for s in moved.scheduled_sessions][-1] == date(2024, 1, 13)


def test_session_metadata_is_private_to_each_cycle_value():
    cycle = _cycle(periodicity=Interval(7)).generate_scheduled_sessions()
    started = cycle.start(date(2024, 1, 2))
    with pytest.raises(TypeError):
        started.scheduled_sessions[0].metadata["cycle_number"] = 9
    assert cycle.metadata == {}
    assert started.scheduled_sessions[0].metadata == cycle.scheduled_sessions[0].metadata
