"""Logging setup shared by the session and the CLI."""

from __future__ import annotations

import logging
from logging import Logger
from typing import Iterable, Optional, TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Marks handlers installed here so reconfiguring replaces them instead of stacking.
_HANDLER_TAG = "_stacked_decoder_handler"


def configure_logging(
    level: int = logging.INFO,
    *,
    name: str = "stacked protocol decoder",
    propagate: bool = False,
    extra_loggers: Optional[Iterable[str]] = None,
    stream: Optional[TextIO] = None,
) -> Logger:
    """Configure and return the engine logger, optionally binding extra loggers.

    Parameters
    ----------
    level: int
        Logging verbosity.
    name: str
        Logger namespace; the engine logs under ``"<name>.dispatch"``,
        ``"<name>.session"`` and ``"<name>.registry"``.
    stream:
        Destination of the handler, stderr by default so that decoded output
        written to stdout stays clean.
    """

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    setattr(handler, _HANDLER_TAG, True)

    def _attach(target: Logger) -> None:
        for existing in list(target.handlers):
            if getattr(existing, _HANDLER_TAG, False):
                target.removeHandler(existing)
        target.addHandler(handler)
        target.setLevel(level)
        target.propagate = propagate

    logger = logging.getLogger(name)
    _attach(logger)

    for logger_name in extra_loggers or ():
        _attach(logging.getLogger(logger_name))

    return logger


__all__ = ["LOG_FORMAT", "configure_logging"]
