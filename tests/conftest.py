from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from settrack.config.settings import Settings
from settrack.core.errors import PersistenceError, SessionNotFoundError
from settrack.workout.model import Exercise, WorkoutSet, WorkoutTemplate
from settrack.workout.session_store import SessionQuery, SessionRecord


class MemorySessionRepository:
    def __init__(self) -> None:
        self.records: dict[str, SessionRecord] = {}
        self.calls: list[str] = []
        self.fail_writes = False
        self.fail_queries = False

    async def upsert(self, record: SessionRecord) -> SessionRecord:
        self.calls.append("upsert")
        if self.fail_writes:
            raise PersistenceError("backend unavailable")
        if record.session_id is None:
            return await self.create(record)
        if record.session_id not in self.records:
            raise SessionNotFoundError(record.session_id)
        self.records[record.session_id] = record
        return record

    async def create(self, record: SessionRecord) -> SessionRecord:
        self.calls.append("create")
        if self.fail_writes:
            raise PersistenceError("backend unavailable")
        stored = replace(record, session_id=uuid4().hex)
        assert stored.session_id is not None
        self.records[stored.session_id] = stored
        return stored

    async def query(self, query: SessionQuery) -> list[SessionRecord]:
        self.calls.append("query")
        if self.fail_queries:
            raise PersistenceError("backend unavailable")
        matching = [record for record in self.records.values() if query.matches(record)]
        matching.sort(
            key=lambda r: r.history.completed_at or r.history.started_at, reverse=True
        )
        return matching[: query.limit]


class FakeHistoryLookup:
    def __init__(self, values: WorkoutSet | None = None, error: Exception | None = None) -> None:
        self.values = values
        self.error = error
        self.requests: list[tuple[str, str | None]] = []

    async def find_last_completed_values_for_exercise(
        self, exercise_id: str, exercise_name: str | None = None
    ) -> WorkoutSet | None:
        self.requests.append((exercise_id, exercise_name))
        if self.error is not None:
            raise self.error
        return self.values


class StepClock:
    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(minutes=1)) -> None:
        self.now = start or datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


def make_template(
    shape: tuple[int, ...] = (2,),
    reps: int = 10,
    weight: float = 50.0,
    rest_sec: int = 90,
    name: str = "Test Workout",
) -> WorkoutTemplate:
    return WorkoutTemplate(
        name=name,
        exercises=tuple(
            Exercise(
                exercise_id=f"ex-{index}",
                name=f"Exercise {index}",
                sets=tuple(WorkoutSet(reps, weight, rest_sec + set_index) for set_index in range(count)),
            )
            for index, count in enumerate(shape)
        ),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path, autosave_warn_after=2)


@pytest.fixture
def repository() -> MemorySessionRepository:
    return MemorySessionRepository()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()
