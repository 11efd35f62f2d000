"""Utility helpers for logging and environment loading."""

from .env import load_repo_dotenv, resolve_log_level
from .logging import configure_logging

__all__ = [
    "configure_logging",
    "load_repo_dotenv",
    "resolve_log_level",
]
