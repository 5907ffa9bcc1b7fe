"""Suggested reps/weight for upcoming sets.

Two sources, in priority order:

* carry-forward: after a set is completed, the next set in the same exercise
  adopts its reps/weight (keeping its own rest period);
* history: entering the first set of an exercise with nothing completed this
  session asks a ``HistoryLookup`` for the last completed values.

Prefill only seeds overrides; it never marks a set complete.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from settrack.core.state import TrackingState
from settrack.workout.model import WorkoutSet


class HistoryLookup(Protocol):
    async def find_last_completed_values_for_exercise(
        self,
        exercise_id: str,
        exercise_name: str | None = None,
    ) -> WorkoutSet | None:
        """Reps/weight of the last completed set in the most recent matching session."""


@dataclass(frozen=True)
class PrefillTarget:
    exercise_index: int
    set_index: int
    expected: WorkoutSet

    @property
    def cursor(self) -> tuple[int, int]:
        return self.exercise_index, self.set_index


def carry_forward(state: TrackingState, exercise_index: int, from_set: int, to_set: int) -> TrackingState:
    if not (state.has_cell(exercise_index, from_set) and state.has_cell(exercise_index, to_set)):
        return state
    source = state.overrides[exercise_index][from_set]
    target = state.overrides[exercise_index][to_set]
    logger.debug(
        "Carry-forward {} x {} into exercise {} set {}",
        source.reps,
        source.weight,
        exercise_index,
        to_set,
    )
    return state.with_override(exercise_index, to_set, target.with_values(source.reps, source.weight))


def needs_history_prefill(state: TrackingState, exercise_index: int, set_index: int) -> bool:
    return set_index == 0 and not any(state.completion[exercise_index])


def history_target(state: TrackingState) -> PrefillTarget:
    exercise_index, set_index = state.cursor
    return PrefillTarget(
        exercise_index=exercise_index,
        set_index=set_index,
        expected=state.overrides[exercise_index][set_index],
    )


def is_stale(state: TrackingState, target: PrefillTarget) -> bool:
    """True when the cursor left ``target`` or the set changed since the lookup started."""
    if state.is_completed or state.view != "tracking" or state.cursor != target.cursor:
        return True
    if not state.has_cell(target.exercise_index, target.set_index):
        return True
    if state.completion[target.exercise_index][target.set_index]:
        return True
    return state.overrides[target.exercise_index][target.set_index] != target.expected


def apply_history_values(
    state: TrackingState,
    target: PrefillTarget,
    values: WorkoutSet,
) -> TrackingState | None:
    """State with ``values`` seeded into ``target``, or None when the result is stale."""
    if is_stale(state, target):
        return None
    current = state.overrides[target.exercise_index][target.set_index]
    return state.with_override(
        target.exercise_index,
        target.set_index,
        current.with_values(values.reps, values.weight),
    )
