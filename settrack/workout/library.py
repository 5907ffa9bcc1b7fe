"""Built-in strength templates with loads scaled to the lifter."""

from __future__ import annotations

from dataclasses import dataclass

from settrack.workout.model import Exercise, WorkoutSet, WorkoutTemplate

PLATE_STEP_KG = 2.5


@dataclass(frozen=True)
class LibraryExercise:
    exercise_id: str
    name: str
    sets: int
    reps: int
    base_weight_kg: float
    rest_sec: int = 90


@dataclass(frozen=True)
class LibraryTemplate:
    key: str
    name: str
    category: str
    exercises: tuple[LibraryExercise, ...]


TEMPLATES: tuple[LibraryTemplate, ...] = (
    LibraryTemplate(
        key="full_body_a",
        name="Full Body A",
        category="Full Body",
        exercises=(
            LibraryExercise("back-squat", "Back Squat", 3, 5, 80.0, 180),
            LibraryExercise("bench-press", "Bench Press", 3, 5, 60.0, 150),
            LibraryExercise("barbell-row", "Barbell Row", 3, 8, 50.0, 120),
        ),
    ),
    LibraryTemplate(
        key="full_body_b",
        name="Full Body B",
        category="Full Body",
        exercises=(
            LibraryExercise("back-squat", "Back Squat", 3, 5, 80.0, 180),
            LibraryExercise("overhead-press", "Overhead Press", 3, 5, 40.0, 150),
            LibraryExercise("deadlift", "Deadlift", 1, 5, 100.0, 240),
        ),
    ),
    LibraryTemplate(
        key="upper_hypertrophy",
        name="Upper Hypertrophy",
        category="Upper",
        exercises=(
            LibraryExercise("incline-db-press", "Incline Dumbbell Press", 4, 10, 22.5, 90),
            LibraryExercise("lat-pulldown", "Lat Pulldown", 4, 12, 55.0, 90),
            LibraryExercise("cable-row", "Seated Cable Row", 3, 12, 50.0, 75),
            LibraryExercise("lateral-raise", "Lateral Raise", 3, 15, 8.0, 60),
        ),
    ),
    LibraryTemplate(
        key="lower_hypertrophy",
        name="Lower Hypertrophy",
        category="Lower",
        exercises=(
            LibraryExercise("front-squat", "Front Squat", 4, 8, 60.0, 150),
            LibraryExercise("romanian-deadlift", "Romanian Deadlift", 3, 10, 70.0, 120),
            LibraryExercise("leg-press", "Leg Press", 3, 12, 140.0, 90),
            LibraryExercise("calf-raise", "Standing Calf Raise", 4, 15, 40.0, 60),
        ),
    ),
)


def list_templates() -> tuple[LibraryTemplate, ...]:
    return TEMPLATES


def _round_to_plate(weight_kg: float) -> float:
    return max(0.0, round(weight_kg / PLATE_STEP_KG) * PLATE_STEP_KG)


def build_template_from_library(template_key: str, scale: float = 1.0) -> WorkoutTemplate:
    if scale <= 0:
        raise ValueError("Load scale must be > 0")

    template = next((item for item in TEMPLATES if item.key == template_key), None)
    if template is None:
        raise ValueError(f"Unknown workout template '{template_key}'")

    exercises: list[Exercise] = []
    for item in template.exercises:
        planned = WorkoutSet(
            reps=item.reps,
            weight=_round_to_plate(item.base_weight_kg * scale),
            rest_sec=item.rest_sec,
        )
        exercises.append(
            Exercise(exercise_id=item.exercise_id, name=item.name, sets=(planned,) * item.sets)
        )
    return WorkoutTemplate(name=template.name, exercises=tuple(exercises))
