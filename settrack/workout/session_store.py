"""Local persistence for in-progress and completed workout sessions."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
from uuid import uuid4

from loguru import logger

from settrack.config.settings import get_settings
from settrack.core.errors import PersistenceError, SessionNotFoundError
from settrack.workout.codec import ProgressSnapshot
from settrack.workout.history import HistoryRecord, HistoryStatus


def _default_sessions_path() -> Path:
    return get_settings().sessions_path


@dataclass(frozen=True)
class SessionRecord:
    session_id: str | None
    history: HistoryRecord
    progress: ProgressSnapshot | None = None
    updated_at_utc: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "history": self.history.to_dict(),
            "progress": self.progress.to_dict() if self.progress is not None else None,
            "updated_at_utc": self.updated_at_utc,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        if not isinstance(data, dict):
            raise ValueError("Session record must be an object")
        progress = data.get("progress")
        return cls(
            session_id=data.get("session_id"),
            history=HistoryRecord.from_dict(data["history"]),
            progress=ProgressSnapshot.from_dict(progress) if progress is not None else None,
            updated_at_utc=data.get("updated_at_utc"),
        )


@dataclass(frozen=True)
class SessionQuery:
    name: str | None = None
    status: HistoryStatus | None = None
    started_after: datetime | None = None
    started_before: datetime | None = None
    limit: int = 20

    def matches(self, record: SessionRecord) -> bool:
        history = record.history
        if self.name is not None and history.name != self.name:
            return False
        if self.status is not None and history.status != self.status:
            return False
        if self.started_after is not None and history.started_at < self.started_after:
            return False
        if self.started_before is not None and history.started_at > self.started_before:
            return False
        return True


class SessionRepository(Protocol):
    async def upsert(self, record: SessionRecord) -> SessionRecord:
        """Store ``record``; raises ``SessionNotFoundError`` for an unknown ``session_id``."""

    async def create(self, record: SessionRecord) -> SessionRecord:
        """Store ``record`` under a new identity."""

    async def query(self, query: SessionQuery) -> list[SessionRecord]:
        """Matching records, most recent first."""


def now_utc_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _recency_key(record: SessionRecord) -> datetime:
    history = record.history
    return history.completed_at or history.started_at


def append_session(record: SessionRecord, path: Path | None = None) -> None:
    target = path or _default_sessions_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(record.to_dict(), ensure_ascii=True) + "\n")


def load_sessions(path: Path | None = None) -> dict[str, SessionRecord]:
    """Latest revision of every stored session, keyed by identity."""
    target = path or _default_sessions_path()
    if not target.exists():
        return {}

    out: dict[str, SessionRecord] = {}
    for line_no, raw in enumerate(target.read_text(encoding="utf-8").splitlines(), start=1):
        if not raw.strip():
            continue
        try:
            record = SessionRecord.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Skipping unreadable session line {} in {}: {}", line_no, target, exc)
            continue
        if record.session_id:
            out[record.session_id] = record
    return out


def load_recent_sessions(limit: int = 20, path: Path | None = None) -> list[SessionRecord]:
    records = sorted(load_sessions(path).values(), key=_recency_key, reverse=True)
    return records[:limit]


class JsonlSessionRepository:
    """Append-only JSONL store; the last revision written for an identity wins."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _default_sessions_path()

    @property
    def path(self) -> Path:
        return self._path

    async def upsert(self, record: SessionRecord) -> SessionRecord:
        if record.session_id is None:
            return await self.create(record)
        return await asyncio.to_thread(self._update_sync, record)

    async def create(self, record: SessionRecord) -> SessionRecord:
        stored = replace(record, session_id=uuid4().hex, updated_at_utc=now_utc_iso())
        await asyncio.to_thread(self._append, stored)
        logger.debug("Created session {} ({})", stored.session_id, stored.history.name)
        return stored

    async def query(self, query: SessionQuery) -> list[SessionRecord]:
        records = await asyncio.to_thread(load_sessions, self._path)
        matching = [record for record in records.values() if query.matches(record)]
        matching.sort(key=_recency_key, reverse=True)
        return matching[: query.limit]

    def _update_sync(self, record: SessionRecord) -> SessionRecord:
        assert record.session_id is not None
        if record.session_id not in load_sessions(self._path):
            raise SessionNotFoundError(record.session_id)
        stored = replace(record, updated_at_utc=now_utc_iso())
        self._append(stored)
        return stored

    def _append(self, record: SessionRecord) -> None:
        try:
            append_session(record, self._path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write {self._path}: {exc}") from exc
