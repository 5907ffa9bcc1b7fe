"""Workout template models."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class WorkoutSet:
    reps: int
    weight: float
    rest_sec: int = 90

    def with_values(self, reps: int, weight: float) -> WorkoutSet:
        """Same rest period, new reps/weight."""
        return replace(self, reps=reps, weight=weight)


@dataclass(frozen=True)
class Exercise:
    exercise_id: str
    name: str
    sets: tuple[WorkoutSet, ...]


@dataclass(frozen=True)
class WorkoutTemplate:
    name: str
    exercises: tuple[Exercise, ...]

    @property
    def total_sets(self) -> int:
        return sum(len(exercise.sets) for exercise in self.exercises)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(len(exercise.sets) for exercise in self.exercises)
