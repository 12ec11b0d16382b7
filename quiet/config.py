from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field


class DebugFlag(Protocol):
    """Anything that can be read as a bool; consulted at the moment a trace would be emitted."""

    def __bool__(self) -> bool: ...


@dataclass(slots=True)
class DebugToggle:
    """In-process diagnostic switch, injected into the scheduler and state containers."""

    enabled: bool = False

    def __bool__(self) -> bool:
        return self.enabled


class Settings(BaseModel):
    redis_url: str = "redis://localhost:6379/0"
    debug: bool = False
    # Seconds between frames when the built-in frame loop drives the scheduler.
    frame_interval: float = Field(default=1 / 60, gt=0)
    frame_loop_autostart: bool = False
    log_level: str = "INFO"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(*, env_file: Path | None = None) -> Settings:
    """Build settings from the environment.

    If `env_file` exists it is loaded first; real environment variables win.
    """

    if env_file is not None and env_file.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_file, override=False)

    defaults = Settings()
    return Settings(
        redis_url=os.environ.get("QUIET_REDIS_URL", defaults.redis_url),
        debug=_env_flag("QUIET_DEBUG", defaults.debug),
        frame_interval=float(os.environ.get("QUIET_FRAME_INTERVAL", defaults.frame_interval)),
        frame_loop_autostart=_env_flag("QUIET_FRAME_LOOP_AUTOSTART", defaults.frame_loop_autostart),
        log_level=os.environ.get("QUIET_LOG_LEVEL", defaults.log_level).upper(),
    )
