"""Finalized workout session records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

HistoryStatus = Literal["in_progress", "completed"]


@dataclass(frozen=True)
class HistorySet:
    reps: int
    weight: float
    rest_sec: int
    completed: bool = False

    @property
    def volume(self) -> float:
        return self.reps * self.weight if self.completed else 0.0


@dataclass(frozen=True)
class HistoryExercise:
    exercise_id: str
    name: str
    sets: tuple[HistorySet, ...]

    @property
    def completed_sets(self) -> int:
        return sum(1 for item in self.sets if item.completed)

    @property
    def volume(self) -> float:
        return sum(item.volume for item in self.sets)

    @property
    def max_weight(self) -> float:
        return max((item.weight for item in self.sets if item.completed), default=0.0)

    def last_completed_set(self) -> HistorySet | None:
        for item in reversed(self.sets):
            if item.completed:
                return item
        return None


@dataclass(frozen=True)
class HistoryRecord:
    name: str
    status: HistoryStatus
    started_at: datetime
    completed_at: datetime | None
    duration_sec: int
    exercises: tuple[HistoryExercise, ...]
    total_sets: int = field(init=False)
    total_reps: int = field(init=False)
    total_weight_lifted: float = field(init=False)

    def __post_init__(self) -> None:
        # Reps and volume count completed sets only.
        object.__setattr__(self, "total_sets", sum(len(ex.sets) for ex in self.exercises))
        object.__setattr__(
            self,
            "total_reps",
            sum(item.reps for ex in self.exercises for item in ex.sets if item.completed),
        )
        object.__setattr__(self, "total_weight_lifted", sum(ex.volume for ex in self.exercises))

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def completion_fraction(self) -> float:
        if self.total_sets == 0:
            return 0.0
        done = sum(ex.completed_sets for ex in self.exercises)
        return done / self.total_sets

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_sec": self.duration_sec,
            "exercises": [
                {
                    "exercise_id": ex.exercise_id,
                    "name": ex.name,
                    "sets": [
                        {
                            "reps": item.reps,
                            "weight": item.weight,
                            "rest_sec": item.rest_sec,
                            "completed": item.completed,
                        }
                        for item in ex.sets
                    ],
                }
                for ex in self.exercises
            ],
            "total_sets": self.total_sets,
            "total_reps": self.total_reps,
            "total_weight_lifted": self.total_weight_lifted,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryRecord:
        if not isinstance(data, dict):
            raise ValueError("History record must be an object")
        completed_at = data.get("completed_at")
        status = data.get("status")
        if status not in ("in_progress", "completed"):
            raise ValueError(f"Unknown history status '{status}'")
        return cls(
            name=str(data["name"]),
            status=status,
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            duration_sec=int(data.get("duration_sec", 0)),
            exercises=tuple(
                HistoryExercise(
                    exercise_id=str(ex["exercise_id"]),
                    name=str(ex["name"]),
                    sets=tuple(
                        HistorySet(
                            reps=int(item["reps"]),
                            weight=float(item["weight"]),
                            rest_sec=int(item.get("rest_sec", 0)),
                            completed=bool(item.get("completed", False)),
                        )
                        for item in ex["sets"]
                    ),
                )
                for ex in data["exercises"]
            ),
        )
