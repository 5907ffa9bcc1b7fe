"""Tracking engine: drives one workout session from template to history record."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Mapping

from loguru import logger

from settrack.config.settings import Settings, get_settings
from settrack.core.errors import ProgressValidationError, SessionNotFoundError
from settrack.core.inputs import clamp_reps, clamp_weight, coerce_reps, coerce_weight
from settrack.core.prefill import (
    HistoryLookup,
    PrefillTarget,
    apply_history_values,
    carry_forward,
    history_target,
    needs_history_prefill,
)
from settrack.core.state import TrackingState, first_incomplete_set
from settrack.workout.codec import (
    ProgressSnapshot,
    rehydrate,
    state_from_history,
    to_history_record,
    to_snapshot,
)
from settrack.workout.history import HistoryRecord
from settrack.workout.model import WorkoutTemplate
from settrack.workout.session_store import SessionQuery, SessionRecord, SessionRepository

Clock = Callable[[], datetime]
StateListener = Callable[[TrackingState], None]
BackgroundStep = Callable[[], Awaitable[Any]]


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class TrackingEngine:
    """Single writer for a session's ``TrackingState``.

    Every operation applies synchronously to the latest state and notifies
    listeners. Repository and history calls run as background tasks on the
    running event loop; ``drain()`` waits for them. Steps requested while no
    loop is running are kept and started by the next ``drain()``.
    """

    def __init__(
        self,
        repository: SessionRepository,
        history: HistoryLookup | None = None,
        *,
        clock: Clock | None = None,
        settings: Settings | None = None,
        session_id: str | None = None,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock or _utc_now
        self._settings = settings or get_settings()
        self._session_id = session_id
        self._state: TrackingState | None = None
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._deferred: list[BackgroundStep] = []
        self._persist_lock = asyncio.Lock()
        self._autosave_failures = 0

    @property
    def state(self) -> TrackingState:
        if self._state is None:
            raise RuntimeError("Engine has no workout loaded; call initialize() first")
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def autosave_failures(self) -> int:
        return self._autosave_failures

    @property
    def duration_sec(self) -> int:
        state = self.state
        if state.started_at is None:
            return 0
        end = state.completed_at or self._clock()
        return max(0, int((end - state.started_at).total_seconds()))

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)
        if self._state is not None:
            listener(self._state)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, state: TrackingState) -> TrackingState:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        return state

    # -- loading ---------------------------------------------------------

    def initialize(
        self,
        template: WorkoutTemplate,
        saved_progress: ProgressSnapshot | Mapping[str, Any] | None = None,
        *,
        started_at: datetime | None = None,
    ) -> TrackingState:
        started = started_at or self._clock()
        if saved_progress is not None:
            try:
                snapshot = (
                    saved_progress
                    if isinstance(saved_progress, ProgressSnapshot)
                    else ProgressSnapshot.from_dict(dict(saved_progress))
                )
                state = rehydrate(template, snapshot, started_at=started)
            except ProgressValidationError as exc:
                logger.warning(
                    "Saved progress for '{}' rejected, starting fresh: {}", template.name, exc
                )
            else:
                logger.info(
                    "Resumed '{}' at exercise {} set {}",
                    template.name,
                    state.exercise_index,
                    state.set_index,
                )
                return self._emit(state)

        logger.info("Starting '{}' ({} sets)", template.name, template.total_sets)
        return self._emit(TrackingState.fresh(template, started_at=started))

    def resume_from_history(self, template: WorkoutTemplate, record: HistoryRecord) -> TrackingState:
        try:
            state = state_from_history(template, record, saved_at=self._clock())
        except ProgressValidationError as exc:
            logger.warning("Cannot resume '{}' from history, starting fresh: {}", template.name, exc)
            return self.initialize(template)
        logger.info(
            "Resumed '{}' from history at exercise {} set {}",
            template.name,
            state.exercise_index,
            state.set_index,
        )
        return self._emit(state)

    def resume_session(self, template: WorkoutTemplate, session: SessionRecord) -> TrackingState:
        """Continue a stored in-progress session, keeping its identity for later saves."""
        self._session_id = session.session_id
        if session.progress is not None:
            return self.initialize(
                template, session.progress, started_at=session.history.started_at
            )
        return self.resume_from_history(template, session.history)

    # -- navigation ------------------------------------------------------

    def select_exercise(self, exercise_index: int) -> TrackingState:
        state = self.state
        exercise_count = len(state.template.exercises)
        if not 0 <= exercise_index < exercise_count:
            raise IndexError(
                f"Exercise index {exercise_index} out of range for {exercise_count} exercises"
            )
        if state.is_completed:
            return state

        row = state.completion[exercise_index]
        set_index = first_incomplete_set(row)
        if set_index is None:
            set_index = len(row) - 1

        state = self._emit(
            replace(
                state,
                view="tracking",
                cursor=(exercise_index, set_index),
                selected_set_index=None,
            )
        )
        logger.debug(
            "Selected exercise {} ({}), set {}",
            exercise_index,
            state.current_exercise.name,
            set_index,
        )

        if self._history is not None and needs_history_prefill(state, exercise_index, set_index):
            self._schedule(partial(self._prefill_from_history, history_target(state)))
        return state

    def return_to_selection(self) -> TrackingState:
        return self._emit(replace(self.state, view="selection", selected_set_index=None))

    def select_set(self, set_index: int) -> TrackingState:
        state = self.state
        if not state.has_cell(state.exercise_index, set_index):
            return state
        selected = None if state.selected_set_index == set_index else set_index
        return self._emit(replace(state, selected_set_index=selected))

    # -- edits -----------------------------------------------------------

    def edit_weight(
        self,
        value: object,
        set_index: int | None = None,
        *,
        exercise_index: int | None = None,
    ) -> TrackingState:
        state = self.state
        ex = state.exercise_index if exercise_index is None else exercise_index
        st = state.set_index if set_index is None else set_index
        if state.is_completed or not state.has_cell(ex, st):
            return state
        current = state.overrides[ex][st]
        weight = coerce_weight(value, current.weight)
        if weight == current.weight:
            return state
        return self._emit(state.with_override(ex, st, replace(current, weight=weight)))

    def edit_reps(
        self,
        value: object,
        set_index: int | None = None,
        *,
        exercise_index: int | None = None,
    ) -> TrackingState:
        state = self.state
        ex = state.exercise_index if exercise_index is None else exercise_index
        st = state.set_index if set_index is None else set_index
        if state.is_completed or not state.has_cell(ex, st):
            return state
        current = state.overrides[ex][st]
        reps = coerce_reps(value, current.reps)
        if reps == current.reps:
            return state
        return self._emit(state.with_override(ex, st, replace(current, reps=reps)))

    def adjust_weight(self, delta: float) -> TrackingState:
        state = self.state
        if state.is_completed:
            return state
        current = state.current_set
        weight = round(clamp_weight(current.weight + delta), 3)
        return self._emit(
            state.with_override(state.exercise_index, state.set_index, replace(current, weight=weight))
        )

    def adjust_reps(self, delta: int) -> TrackingState:
        state = self.state
        if state.is_completed:
            return state
        current = state.current_set
        reps = clamp_reps(current.reps + delta)
        return self._emit(
            state.with_override(state.exercise_index, state.set_index, replace(current, reps=reps))
        )

    def clear_error(self) -> TrackingState:
        return self._emit(replace(self.state, error=None))

    # -- completion ------------------------------------------------------

    def complete_set(self) -> TrackingState:
        state = self.state
        exercise_index, set_index = state.cursor
        if state.is_completed or not state.has_cell(exercise_index, set_index):
            return state

        state = state.with_completed_cell(exercise_index, set_index)
        row = state.completion[exercise_index]
        next_set = first_incomplete_set(row, set_index + 1)
        if next_set is None:
            next_set = first_incomplete_set(row)

        if next_set is not None:
            state = carry_forward(state, exercise_index, set_index, next_set)
            state = self._emit(
                replace(state, cursor=(exercise_index, next_set), selected_set_index=None)
            )
            self._schedule(self.save_progress)
            return state

        if state.are_all_exercises_completed:
            logger.info("All sets of '{}' completed, finishing workout", state.template.name)
            state = self._emit(state)
            self._schedule(self.complete_workout)
            return state

        logger.debug("Exercise {} finished, back to selection", exercise_index)
        state = self._emit(replace(state, view="selection", selected_set_index=None))
        self._schedule(self.save_progress)
        return state

    async def save_progress(self) -> bool:
        """Checkpoint the in-progress session. Failures are logged, never surfaced."""
        async with self._persist_lock:
            state = self.state
            if state.is_completed:
                return False
            now = self._clock()
            record = SessionRecord(
                session_id=self._session_id,
                history=to_history_record(state, now=now, status="in_progress"),
                progress=to_snapshot(state, saved_at=now),
            )
            try:
                stored = await self._store(record)
            except Exception as exc:
                self._autosave_failures += 1
                if self._autosave_failures >= self._settings.autosave_warn_after:
                    logger.error(
                        "Autosave of '{}' failed {} times in a row: {}",
                        state.template.name,
                        self._autosave_failures,
                        exc,
                    )
                else:
                    logger.warning("Autosave of '{}' failed: {}", state.template.name, exc)
                return False

            self._autosave_failures = 0
            self._session_id = stored.session_id
            logger.info(
                "Progress saved for '{}' ({}/{} sets)",
                state.template.name,
                state.total_completed_sets_count,
                state.total_sets_count,
            )
            return True

    async def complete_workout(self) -> bool:
        """Store the finished session. On failure ``error`` is set and the call may be retried."""
        async with self._persist_lock:
            state = self.state
            if state.is_completed:
                return True
            now = self._clock()
            state = self._emit(replace(state, is_loading=True, error=None))
            finished = replace(state, is_completed=True, completed_at=now)
            record = SessionRecord(
                session_id=self._session_id,
                history=to_history_record(finished, now=now, status="completed"),
                progress=None,
            )
            try:
                stored = await self._store(record)
            except Exception as exc:
                logger.error("Saving completed workout '{}' failed: {}", state.template.name, exc)
                self._emit(
                    replace(self.state, is_loading=False, error=f"Error saving workout: {exc}")
                )
                return False

            self._session_id = stored.session_id
            self._emit(
                replace(
                    self.state,
                    is_loading=False,
                    is_completed=True,
                    completed_at=now,
                    error=None,
                )
            )
            logger.info(
                "Workout '{}' completed: {} reps, {:.1f} kg lifted",
                record.history.name,
                record.history.total_reps,
                record.history.total_weight_lifted,
            )
            return True

    def history_record(self) -> HistoryRecord:
        return to_history_record(self.state, now=self.state.completed_at or self._clock())

    # -- background work -------------------------------------------------

    @property
    def pending_steps(self) -> int:
        """Background steps requested without a running loop, not yet started."""
        return len(self._deferred)

    async def drain(self) -> None:
        """Start deferred steps, then wait until every prefill and checkpoint has finished."""
        while self._deferred or self._tasks:
            deferred, self._deferred = self._deferred, []
            for step in deferred:
                self._schedule(step)
            if self._tasks:
                await asyncio.gather(*list(self._tasks))

    def _schedule(self, step: BackgroundStep) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deferred.append(step)
            logger.warning(
                "No running event loop; {} deferred until drain()",
                getattr(step, "__name__", "background step"),
            )
            return None
        task = loop.create_task(step())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _prefill_from_history(self, target: PrefillTarget) -> None:
        assert self._history is not None
        exercise = self.state.template.exercises[target.exercise_index]
        try:
            values = await self._history.find_last_completed_values_for_exercise(
                exercise.exercise_id, exercise.name
            )
        except Exception as exc:
            logger.warning("History prefill for '{}' unavailable: {}", exercise.name, exc)
            return
        if values is None:
            logger.debug("No history for '{}', keeping template values", exercise.name)
            return

        updated = apply_history_values(self.state, target, values)
        if updated is None:
            logger.debug("Discarding stale history prefill for '{}'", exercise.name)
            return
        logger.debug(
            "Prefilled '{}' set {} from history: {} x {}",
            exercise.name,
            target.set_index,
            values.reps,
            values.weight,
        )
        self._emit(updated)

    async def _store(self, record: SessionRecord) -> SessionRecord:
        if record.session_id is None:
            record = replace(record, session_id=await self._find_open_session(record.history))
        if record.session_id is None:
            return await self._repository.create(record)
        try:
            return await self._repository.upsert(record)
        except SessionNotFoundError:
            logger.warning("Session {} no longer exists, creating a new one", record.session_id)
            return await self._repository.create(replace(record, session_id=None))

    async def _find_open_session(self, history: HistoryRecord) -> str | None:
        window = timedelta(hours=self._settings.session_match_window_hours)
        matches = await self._repository.query(
            SessionQuery(
                name=history.name,
                status="in_progress",
                started_after=history.started_at - window,
                started_before=self._clock(),
                limit=1,
            )
        )
        return matches[0].session_id if matches else None
