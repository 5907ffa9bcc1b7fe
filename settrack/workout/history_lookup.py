"""Last-known set values for an exercise, read from completed sessions."""

from __future__ import annotations

from loguru import logger

from settrack.core.errors import HistoryLookupError
from settrack.workout.history import HistoryExercise, HistoryRecord
from settrack.workout.model import WorkoutSet
from settrack.workout.session_store import SessionQuery, SessionRepository


def _match_exercise(
    record: HistoryRecord,
    exercise_id: str,
    exercise_name: str | None,
) -> HistoryExercise | None:
    for exercise in record.exercises:
        if exercise.exercise_id == exercise_id:
            return exercise
    if exercise_name:
        for exercise in record.exercises:
            if exercise.name == exercise_name:
                return exercise
    return None


class SessionHistoryLookup:
    def __init__(self, repository: SessionRepository, scan_limit: int = 20) -> None:
        self._repository = repository
        self._scan_limit = scan_limit

    async def find_last_completed_values_for_exercise(
        self,
        exercise_id: str,
        exercise_name: str | None = None,
    ) -> WorkoutSet | None:
        try:
            sessions = await self._repository.query(
                SessionQuery(status="completed", limit=self._scan_limit)
            )
        except Exception as exc:
            raise HistoryLookupError(f"Unable to read past sessions: {exc}") from exc

        for session in sessions:
            exercise = _match_exercise(session.history, exercise_id, exercise_name)
            if exercise is None:
                continue
            last = exercise.last_completed_set()
            if last is None:
                continue
            logger.debug(
                "History match for {} in session {}: {} x {}",
                exercise_name or exercise_id,
                session.session_id,
                last.reps,
                last.weight,
            )
            return WorkoutSet(reps=last.reps, weight=last.weight, rest_sec=last.rest_sec)
        return None
