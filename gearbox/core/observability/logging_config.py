"""
Logging configuration for gearbox, applied once at CLI startup.

Modules log through ``logging.getLogger(__name__)``. The console level
comes from the first of: ``--debug``/``--verbose``/``--quiet``, then
GEARBOX_LOG_LEVEL, then WARNING.

Builds can be long and noisy, so GEARBOX_LOG_FILE sends a detailed copy
to a file, at GEARBOX_LOG_FILE_LEVEL if set.
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV = "GEARBOX_LOG_LEVEL"
FILE_ENV = "GEARBOX_LOG_FILE"
FILE_LEVEL_ENV = "GEARBOX_LOG_FILE_LEVEL"

# Thread names matter: builds run on a worker pool
_DETAIL = "%(asctime)s %(levelname)-5s %(threadName)s %(name)s:%(lineno)d: %(message)s"

# (most verbose level it applies to, format, datefmt)
_CONSOLE_FORMATS = (
    (logging.DEBUG, _DETAIL, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with gearbox's console (and file) output.

    Args:
        level: Console level name; unknown names fall back to WARNING.
        log_file: Defaults to ``$GEARBOX_LOG_FILE``.
        log_file_level: Defaults to ``$GEARBOX_LOG_FILE_LEVEL``, then ``level``.
    """
    console_level = _parse_level(level)
    log_file = log_file or os.environ.get(FILE_ENV)
    log_file_level = log_file_level or os.environ.get(FILE_LEVEL_ENV)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    root.addHandler(console)
    root.setLevel(console_level)

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_DETAIL, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)
        root.setLevel(min(console_level, file_level))

    logging.raiseExceptions = False


def _console_formatter(level: int) -> logging.Formatter:
    for most_verbose, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= most_verbose:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter("%(message)s")


def _parse_level(level: str | None) -> int:
    numeric = getattr(logging, level.upper(), None) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
