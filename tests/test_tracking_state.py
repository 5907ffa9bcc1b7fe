from __future__ import annotations

from dataclasses import replace

import pytest

from conftest import make_template
from settrack.core.state import (
    TrackingState,
    compute_statuses,
    exercise_status,
    first_incomplete_set,
    replace_cell,
)
from settrack.workout.model import Exercise, WorkoutTemplate


def test_fresh_state_matches_template_shape() -> None:
    template = make_template(shape=(3, 1, 4))

    state = TrackingState.fresh(template)

    assert tuple(len(row) for row in state.completion) == (3, 1, 4)
    assert all(not cell for row in state.completion for cell in row)
    assert state.overrides == tuple(exercise.sets for exercise in template.exercises)
    assert state.exercise_statuses == ("not_started",) * 3
    assert state.view == "selection"
    assert state.cursor == (0, 0)
    assert state.total_sets_count == 8
    assert state.progress_fraction == 0.0


def test_fresh_state_rejects_empty_templates() -> None:
    with pytest.raises(ValueError):
        TrackingState.fresh(WorkoutTemplate(name="Empty", exercises=()))
    with pytest.raises(ValueError):
        TrackingState.fresh(
            WorkoutTemplate(name="No sets", exercises=(Exercise("a", "A", ()),))
        )


def test_exercise_status_is_derived_from_row() -> None:
    assert exercise_status((True, True)) == "completed"
    assert exercise_status((False, False)) == "not_started"
    assert exercise_status((True, False)) == "in_progress"
    assert exercise_status(()) == "not_started"
    assert compute_statuses(3, ((True,), (False, True))) == (
        "completed",
        "in_progress",
        "not_started",
    )


def test_replace_cell_rebuilds_only_touched_row() -> None:
    matrix = ((False, False), (False,), (False, False, False))

    updated = replace_cell(matrix, 2, 1, True)

    assert updated == ((False, False), (False,), (False, True, False))
    assert updated[0] is matrix[0]
    assert updated[1] is matrix[1]
    assert matrix[2] == (False, False, False)


def test_first_incomplete_set() -> None:
    assert first_incomplete_set((True, False, False)) == 1
    assert first_incomplete_set((True, False, False), start=2) == 2
    assert first_incomplete_set((False, True), start=1) is None
    assert first_incomplete_set((True, True)) is None


def test_all_exercises_completed_requires_every_cell() -> None:
    state = TrackingState.fresh(make_template(shape=(2, 1)))
    assert not state.are_all_exercises_completed

    state = state.with_completion(((True, True), (False,)))
    assert not state.are_all_exercises_completed
    assert state.exercise_statuses == ("completed", "not_started")

    state = state.with_completion(((True, True), (True,)))
    assert state.are_all_exercises_completed
    assert state.progress_fraction == 1.0


def test_dimension_mismatch_forces_incomplete() -> None:
    state = TrackingState.fresh(make_template(shape=(2, 2)))

    short_row = replace(
        state,
        completion=((True, True), (True,)),
        exercise_statuses=("completed", "completed"),
    )
    missing_row = replace(
        state,
        completion=((True, True),),
        exercise_statuses=("completed", "completed"),
    )
    extra_cell = replace(
        state,
        completion=((True, True), (True, True, True)),
        exercise_statuses=("completed", "completed"),
    )

    assert not short_row.are_all_exercises_completed
    assert not missing_row.are_all_exercises_completed
    assert not extra_cell.are_all_exercises_completed


def test_stale_statuses_cannot_claim_completion() -> None:
    state = TrackingState.fresh(make_template(shape=(1, 1)))
    lying = replace(state, exercise_statuses=("completed", "completed"))

    assert not lying.are_all_exercises_completed


def test_current_accessors_follow_cursor() -> None:
    template = make_template(shape=(2, 3))
    state = replace(TrackingState.fresh(template), cursor=(1, 2))
    state = state.with_completed_cell(1, 2)

    assert state.current_exercise.exercise_id == "ex-1"
    assert state.current_set == template.exercises[1].sets[2]
    assert state.is_current_set_completed
    assert state.total_completed_sets_count == 1
    assert state.exercise_statuses == ("not_started", "in_progress")
