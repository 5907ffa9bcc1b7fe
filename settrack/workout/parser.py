"""Workout template file parser (CSV/JSON)."""

from __future__ import annotations

import csv
import json
import math
import re
from pathlib import Path

from settrack.workout.model import Exercise, WorkoutSet, WorkoutTemplate

DEFAULT_REST_SEC = 90


class WorkoutParseError(ValueError):
    """Raised when a workout file is invalid."""


def slugify(name: str) -> str:
    s = re.sub(r"[^a-zA-Z0-9]+", "-", name.strip().lower()).strip("-")
    return s or "exercise"


def load_workout(path: str | Path) -> WorkoutTemplate:
    file_path = Path(path)
    suffix = file_path.suffix.lower()
    if suffix == ".json":
        return _load_json(file_path)
    if suffix == ".csv":
        return _load_csv(file_path)
    raise WorkoutParseError(
        f"Unsupported workout format '{file_path.suffix}'. Use .json or .csv"
    )


def _load_json(path: Path) -> WorkoutTemplate:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise WorkoutParseError(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise WorkoutParseError("Workout JSON must be an object")

    name_obj = data.get("name", path.stem)
    if not isinstance(name_obj, str):
        raise WorkoutParseError("Workout field 'name' must be a string")

    exercises_obj = data.get("exercises")
    if not isinstance(exercises_obj, list):
        raise WorkoutParseError("Workout field 'exercises' must be an array")

    exercises: list[Exercise] = []
    for i, raw in enumerate(exercises_obj):
        if not isinstance(raw, dict):
            raise WorkoutParseError(f"Exercise {i + 1}: must be an object")
        exercises.append(_build_exercise(raw, index=i))

    return _build_template(name=name_obj.strip() or path.stem, exercises=exercises)


def _build_exercise(raw: dict[str, object], *, index: int) -> Exercise:
    name_obj = raw.get("name")
    if not isinstance(name_obj, str) or not name_obj.strip():
        raise WorkoutParseError(f"Exercise {index + 1}: 'name' must be a non-empty string")
    name = name_obj.strip()
    exercise_id = str(raw.get("id") or slugify(name))

    sets_obj = raw.get("sets")
    sets: list[WorkoutSet] = []
    if isinstance(sets_obj, list):
        for j, item in enumerate(sets_obj):
            if not isinstance(item, dict):
                raise WorkoutParseError(f"Exercise {index + 1}, set {j + 1}: must be an object")
            sets.append(
                _build_set(
                    reps_obj=item.get("reps"),
                    weight_obj=item.get("weight"),
                    rest_obj=item.get("rest_sec"),
                    where=f"Exercise {index + 1}, set {j + 1}",
                )
            )
    elif isinstance(sets_obj, int) and not isinstance(sets_obj, bool):
        # Shorthand: "sets": N with exercise-level reps/weight/rest_sec.
        if sets_obj <= 0:
            raise WorkoutParseError(f"Exercise {index + 1}: sets must be > 0")
        planned = _build_set(
            reps_obj=raw.get("reps"),
            weight_obj=raw.get("weight"),
            rest_obj=raw.get("rest_sec"),
            where=f"Exercise {index + 1}",
        )
        sets = [planned] * sets_obj
    else:
        raise WorkoutParseError(f"Exercise {index + 1}: 'sets' must be an array or a count")

    if not sets:
        raise WorkoutParseError(f"Exercise {index + 1}: must contain at least one set")
    return Exercise(exercise_id=exercise_id, name=name, sets=tuple(sets))


def _load_csv(path: Path) -> WorkoutTemplate:
    exercises: list[Exercise] = []
    current_key: str | None = None
    current_name = ""
    current_sets: list[WorkoutSet] = []

    def _flush() -> None:
        if current_key is not None and current_sets:
            exercises.append(
                Exercise(exercise_id=current_key, name=current_name, sets=tuple(current_sets))
            )

    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        fields = set(reader.fieldnames or [])
        required = {"exercise_name", "reps", "weight"}
        if not required.issubset(fields):
            raise WorkoutParseError(
                "CSV must contain headers: exercise_name,reps,weight[,rest_sec,exercise_id]"
            )

        for i, row in enumerate(reader):
            name = (row.get("exercise_name") or "").strip()
            if not name:
                raise WorkoutParseError(f"Row {i + 1}: exercise_name is required")
            key = (row.get("exercise_id") or "").strip() or slugify(name)
            planned = _build_set(
                reps_obj=row.get("reps"),
                weight_obj=row.get("weight"),
                rest_obj=row.get("rest_sec"),
                where=f"Row {i + 1}",
            )
            # Consecutive rows of the same exercise are its sets.
            if key != current_key:
                _flush()
                current_key, current_name, current_sets = key, name, []
            current_sets.append(planned)
    _flush()

    return _build_template(name=path.stem, exercises=exercises)


def _build_set(
    *,
    reps_obj: object,
    weight_obj: object,
    rest_obj: object,
    where: str,
) -> WorkoutSet:
    reps = _parse_int_field(raw=reps_obj, field_name="reps", where=where)
    weight = _parse_float_field(raw=weight_obj, field_name="weight", where=where)
    rest_sec = _parse_optional_int_field(raw=rest_obj, field_name="rest_sec", where=where)

    if reps <= 0:
        raise WorkoutParseError(f"{where}: reps must be > 0")
    if not math.isfinite(weight) or weight < 0:
        raise WorkoutParseError(f"{where}: weight must be >= 0")
    if rest_sec is not None and rest_sec < 0:
        raise WorkoutParseError(f"{where}: rest_sec must be >= 0")

    return WorkoutSet(
        reps=reps,
        weight=weight,
        rest_sec=DEFAULT_REST_SEC if rest_sec is None else rest_sec,
    )


def _build_template(*, name: str, exercises: list[Exercise]) -> WorkoutTemplate:
    if not exercises:
        raise WorkoutParseError("Workout must contain at least one exercise")
    return WorkoutTemplate(name=name, exercises=tuple(exercises))


def _parse_int_field(*, raw: object, field_name: str, where: str) -> int:
    if raw is None or isinstance(raw, bool):
        raise WorkoutParseError(f"{where}: invalid {field_name}")
    try:
        return int(str(raw).strip())
    except ValueError as exc:
        raise WorkoutParseError(f"{where}: invalid {field_name}") from exc


def _parse_float_field(*, raw: object, field_name: str, where: str) -> float:
    if raw is None or isinstance(raw, bool):
        raise WorkoutParseError(f"{where}: invalid {field_name}")
    try:
        return float(str(raw).strip())
    except ValueError as exc:
        raise WorkoutParseError(f"{where}: invalid {field_name}") from exc


def _parse_optional_int_field(*, raw: object, field_name: str, where: str) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, str) and raw.strip() == "":
        return None
    return _parse_int_field(raw=raw, field_name=field_name, where=where)
