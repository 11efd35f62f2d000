"""Environment helpers for resolving repository-local .env files."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_REPO_ROOT = Path(__file__).resolve().parents[3]

LOG_LEVEL_ENV = "STACKED_DECODER_LOG_LEVEL"


@lru_cache(maxsize=1)
def load_repo_dotenv() -> bool:
    """Load the .env file at the repository root once."""

    env_path = _REPO_ROOT / ".env"
    if not env_path.exists():
        return False
    load_dotenv(env_path, override=False)
    return True


def resolve_log_level(explicit: str | None = None, default: int = logging.INFO) -> int:
    """Map a level name (argument first, then environment) to a logging level."""

    name = explicit or os.environ.get(LOG_LEVEL_ENV)
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


__all__ = ["LOG_LEVEL_ENV", "load_repo_dotenv", "resolve_log_level"]
