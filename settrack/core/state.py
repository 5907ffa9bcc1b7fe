"""Immutable tracking state for a workout session."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Literal, Sequence, TypeVar

from loguru import logger

from settrack.workout.model import Exercise, WorkoutSet, WorkoutTemplate


WorkoutView = Literal["selection", "tracking"]
ExerciseStatus = Literal["not_started", "in_progress", "completed"]

T = TypeVar("T")
Matrix = tuple[tuple[T, ...], ...]


def exercise_status(row: Sequence[bool]) -> ExerciseStatus:
    if row and all(row):
        return "completed"
    if any(row):
        return "in_progress"
    return "not_started"


def compute_statuses(exercise_count: int, completion: Matrix[bool]) -> tuple[ExerciseStatus, ...]:
    return tuple(
        exercise_status(completion[i] if i < len(completion) else ())
        for i in range(exercise_count)
    )


def replace_cell(matrix: Matrix[T], exercise_index: int, set_index: int, value: T) -> Matrix[T]:
    """Copy of ``matrix`` with one cell changed; only the touched row is rebuilt."""
    row = matrix[exercise_index]
    new_row = row[:set_index] + (value,) + row[set_index + 1 :]
    return matrix[:exercise_index] + (new_row,) + matrix[exercise_index + 1 :]


def first_incomplete_set(row: Sequence[bool], start: int = 0) -> int | None:
    for index in range(start, len(row)):
        if not row[index]:
            return index
    return None


def fresh_completion(template: WorkoutTemplate) -> Matrix[bool]:
    return tuple((False,) * len(exercise.sets) for exercise in template.exercises)


def default_overrides(template: WorkoutTemplate) -> Matrix[WorkoutSet]:
    return tuple(tuple(exercise.sets) for exercise in template.exercises)


@dataclass(frozen=True)
class TrackingState:
    template: WorkoutTemplate
    completion: Matrix[bool]
    overrides: Matrix[WorkoutSet]
    exercise_statuses: tuple[ExerciseStatus, ...]
    view: WorkoutView = "selection"
    cursor: tuple[int, int] = (0, 0)
    selected_set_index: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    is_completed: bool = False
    is_loading: bool = False
    error: str | None = None

    @classmethod
    def fresh(cls, template: WorkoutTemplate, started_at: datetime | None = None) -> TrackingState:
        if not template.exercises:
            raise ValueError("Workout must contain at least one exercise")
        for exercise in template.exercises:
            if not exercise.sets:
                raise ValueError(f"Exercise '{exercise.name}' must contain at least one set")
        completion = fresh_completion(template)
        return cls(
            template=template,
            completion=completion,
            overrides=default_overrides(template),
            exercise_statuses=compute_statuses(len(template.exercises), completion),
            started_at=started_at,
        )

    def with_completion(self, completion: Matrix[bool]) -> TrackingState:
        """Swap the completion matrix and recompute every exercise status from it."""
        return replace(
            self,
            completion=completion,
            exercise_statuses=compute_statuses(len(self.template.exercises), completion),
        )

    def with_completed_cell(self, exercise_index: int, set_index: int) -> TrackingState:
        if self.completion[exercise_index][set_index]:
            return self.with_completion(self.completion)
        return self.with_completion(
            replace_cell(self.completion, exercise_index, set_index, True)
        )

    def with_override(self, exercise_index: int, set_index: int, value: WorkoutSet) -> TrackingState:
        return replace(
            self,
            overrides=replace_cell(self.overrides, exercise_index, set_index, value),
        )

    def has_cell(self, exercise_index: int, set_index: int) -> bool:
        return (
            0 <= exercise_index < len(self.overrides)
            and 0 <= set_index < len(self.overrides[exercise_index])
        )

    @property
    def exercise_index(self) -> int:
        return self.cursor[0]

    @property
    def set_index(self) -> int:
        return self.cursor[1]

    @property
    def current_exercise(self) -> Exercise:
        return self.template.exercises[self.exercise_index]

    @property
    def current_set(self) -> WorkoutSet:
        return self.overrides[self.exercise_index][self.set_index]

    @property
    def is_current_set_completed(self) -> bool:
        return self.completion[self.exercise_index][self.set_index]

    @property
    def total_completed_sets_count(self) -> int:
        return sum(sum(1 for done in row if done) for row in self.completion)

    @property
    def total_sets_count(self) -> int:
        return self.template.total_sets

    @property
    def progress_fraction(self) -> float:
        total = self.total_sets_count
        return self.total_completed_sets_count / total if total > 0 else 0.0

    @property
    def are_all_exercises_completed(self) -> bool:
        """True only when the statuses and a fresh scan of the matrix both say so."""
        if len(self.exercise_statuses) != len(self.template.exercises):
            return False
        if not all(status == "completed" for status in self.exercise_statuses):
            return False
        return self._validate_all_sets_completed()

    def _validate_all_sets_completed(self) -> bool:
        exercises = self.template.exercises
        if len(self.completion) != len(exercises):
            logger.debug(
                "Completion check failed: {} completion rows for {} exercises",
                len(self.completion),
                len(exercises),
            )
            return False

        for index, (exercise, row) in enumerate(zip(exercises, self.completion)):
            if len(row) != len(exercise.sets):
                logger.debug(
                    "Completion check failed: exercise {} ({}) has {} completion cells for {} sets",
                    index,
                    exercise.name,
                    len(row),
                    len(exercise.sets),
                )
                return False
            missing = first_incomplete_set(row)
            if missing is not None:
                logger.debug(
                    "Completion check failed: exercise {} ({}) has incomplete set {}",
                    index,
                    exercise.name,
                    missing,
                )
                return False
        return True
