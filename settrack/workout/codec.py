"""Conversions between tracking state, resumable snapshots and history records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from settrack.core.errors import ProgressValidationError
from settrack.core.state import Matrix, TrackingState, compute_statuses, first_incomplete_set
from settrack.workout.history import HistoryExercise, HistoryRecord, HistorySet, HistoryStatus
from settrack.workout.model import WorkoutSet, WorkoutTemplate


@dataclass(frozen=True)
class ProgressSnapshot:
    cursor: tuple[int, int]
    completion: Matrix[bool]
    overrides: Matrix[WorkoutSet]
    saved_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "cursor": list(self.cursor),
            "completion": [list(row) for row in self.completion],
            "overrides": [
                [
                    {"reps": item.reps, "weight": item.weight, "rest_sec": item.rest_sec}
                    for item in row
                ]
                for row in self.overrides
            ],
            "saved_at": self.saved_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: object) -> ProgressSnapshot:
        if not isinstance(data, dict):
            raise ProgressValidationError("Progress snapshot must be an object")

        cursor_obj = data.get("cursor")
        if (
            not isinstance(cursor_obj, (list, tuple))
            or len(cursor_obj) != 2
            or not all(_is_int(value) for value in cursor_obj)
        ):
            raise ProgressValidationError("Progress field 'cursor' must be two integers")

        completion_obj = data.get("completion")
        if not isinstance(completion_obj, list) or not all(
            isinstance(row, list) and all(isinstance(cell, bool) for cell in row)
            for row in completion_obj
        ):
            raise ProgressValidationError("Progress field 'completion' must be a list of boolean lists")

        overrides_obj = data.get("overrides")
        if not isinstance(overrides_obj, list) or not all(
            isinstance(row, list) for row in overrides_obj
        ):
            raise ProgressValidationError("Progress field 'overrides' must be a list of lists")
        overrides = tuple(
            tuple(_parse_override(item, ex, st) for st, item in enumerate(row))
            for ex, row in enumerate(overrides_obj)
        )

        saved_at_obj = data.get("saved_at")
        try:
            saved_at = datetime.fromisoformat(str(saved_at_obj))
        except ValueError as exc:
            raise ProgressValidationError("Progress field 'saved_at' must be an ISO timestamp") from exc

        return cls(
            cursor=(int(cursor_obj[0]), int(cursor_obj[1])),
            completion=tuple(tuple(row) for row in completion_obj),
            overrides=overrides,
            saved_at=saved_at,
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_override(item: object, exercise_index: int, set_index: int) -> WorkoutSet:
    where = f"Override {exercise_index + 1}.{set_index + 1}"
    if not isinstance(item, dict):
        raise ProgressValidationError(f"{where}: must be an object")
    reps = item.get("reps")
    weight = item.get("weight")
    rest_sec = item.get("rest_sec")
    if not _is_int(reps) or not _is_int(rest_sec):
        raise ProgressValidationError(f"{where}: reps and rest_sec must be integers")
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise ProgressValidationError(f"{where}: weight must be a number")
    return WorkoutSet(reps=reps, weight=float(weight), rest_sec=rest_sec)


def to_snapshot(state: TrackingState, saved_at: datetime) -> ProgressSnapshot:
    return ProgressSnapshot(
        cursor=state.cursor,
        completion=state.completion,
        overrides=state.overrides,
        saved_at=saved_at,
    )


def validate_snapshot(template: WorkoutTemplate, snapshot: ProgressSnapshot) -> None:
    """Raise ``ProgressValidationError`` unless ``snapshot`` fits ``template`` exactly."""
    shape = template.shape
    if len(snapshot.completion) != len(shape):
        raise ProgressValidationError(
            f"Snapshot has {len(snapshot.completion)} completion rows for {len(shape)} exercises"
        )
    if len(snapshot.overrides) != len(shape):
        raise ProgressValidationError(
            f"Snapshot has {len(snapshot.overrides)} override rows for {len(shape)} exercises"
        )
    for index, expected in enumerate(shape):
        if len(snapshot.completion[index]) != expected:
            raise ProgressValidationError(
                f"Exercise {index + 1}: {len(snapshot.completion[index])} completion cells "
                f"for {expected} sets"
            )
        if len(snapshot.overrides[index]) != expected:
            raise ProgressValidationError(
                f"Exercise {index + 1}: {len(snapshot.overrides[index])} overrides for {expected} sets"
            )
    exercise_index, set_index = snapshot.cursor
    if not (0 <= exercise_index < len(shape) and 0 <= set_index < shape[exercise_index]):
        raise ProgressValidationError(f"Cursor {snapshot.cursor} is outside the workout")


def rehydrate(
    template: WorkoutTemplate,
    snapshot: ProgressSnapshot,
    started_at: datetime | None = None,
) -> TrackingState:
    validate_snapshot(template, snapshot)
    return TrackingState(
        template=template,
        completion=snapshot.completion,
        overrides=snapshot.overrides,
        exercise_statuses=compute_statuses(len(template.exercises), snapshot.completion),
        view="tracking",
        cursor=snapshot.cursor,
        started_at=started_at,
    )


def to_history_record(
    state: TrackingState,
    *,
    now: datetime,
    status: HistoryStatus | None = None,
) -> HistoryRecord:
    if status is None:
        status = "completed" if state.is_completed else "in_progress"
    started_at = state.started_at or now
    duration_sec = max(0, int((now - started_at).total_seconds()))

    exercises = tuple(
        HistoryExercise(
            exercise_id=exercise.exercise_id,
            name=exercise.name,
            sets=tuple(
                HistorySet(
                    reps=values.reps,
                    weight=values.weight,
                    rest_sec=values.rest_sec,
                    completed=done,
                )
                for values, done in zip(state.overrides[index], state.completion[index])
            ),
        )
        for index, exercise in enumerate(state.template.exercises)
    )

    return HistoryRecord(
        name=state.template.name,
        status=status,
        started_at=started_at,
        completed_at=(state.completed_at or now) if status == "completed" else None,
        duration_sec=duration_sec,
        exercises=exercises,
    )


def snapshot_from_history(record: HistoryRecord, saved_at: datetime) -> ProgressSnapshot:
    """Snapshot whose cursor is the first incomplete set in template order."""
    completion = tuple(tuple(item.completed for item in ex.sets) for ex in record.exercises)
    overrides = tuple(
        tuple(WorkoutSet(reps=item.reps, weight=item.weight, rest_sec=item.rest_sec) for item in ex.sets)
        for ex in record.exercises
    )

    cursor: tuple[int, int] | None = None
    for exercise_index, row in enumerate(completion):
        set_index = first_incomplete_set(row)
        if set_index is not None:
            cursor = (exercise_index, set_index)
            break
    if cursor is None:
        last = len(completion) - 1
        cursor = (max(0, last), max(0, len(completion[last]) - 1) if completion else 0)

    return ProgressSnapshot(
        cursor=cursor,
        completion=completion,
        overrides=overrides,
        saved_at=saved_at,
    )


def state_from_history(
    template: WorkoutTemplate,
    record: HistoryRecord,
    saved_at: datetime,
) -> TrackingState:
    if record.is_completed:
        raise ProgressValidationError(f"Session '{record.name}' is already completed")
    return rehydrate(
        template,
        snapshot_from_history(record, saved_at),
        started_at=record.started_at,
    )
