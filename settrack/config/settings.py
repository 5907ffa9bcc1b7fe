"""Runtime settings, overridable through ``SETTRACK_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SETTRACK_", extra="ignore")

    data_dir: Path = Path.home() / ".settrack"
    log_level: Annotated[str, Field(default="INFO")]

    history_scan_limit: Annotated[int, Field(default=20, ge=1, le=100)]
    session_match_window_hours: Annotated[float, Field(default=1.0, ge=0)]
    autosave_warn_after: Annotated[int, Field(default=3, ge=1)]

    weight_step: Annotated[float, Field(default=2.5, gt=0)]
    reps_step: Annotated[int, Field(default=1, ge=1)]

    @property
    def sessions_path(self) -> Path:
        return self.data_dir / "sessions.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
