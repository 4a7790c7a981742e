"""
Logging configuration for the vmstrap commands.

The `vmstrap` group configures logging from its flags; the standalone
`vm-install` and `setup-dotfiles-ssh` commands configure it from the
environment. Modules log through ``logging.getLogger(__name__)``.

Levels are resolved in precedence order:
    CLI flag  >  VMSTRAP_LOG_LEVEL env var  >  WARNING (default)

Optional file output via VMSTRAP_LOG_FILE / VMSTRAP_LOG_FILE_LEVEL env vars.

Operator-facing progress lines are printed by the console, not logged;
logging carries diagnostics (argv, exit codes, timings).
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "VMSTRAP_LOG_LEVEL"
ENV_LOG_FILE = "VMSTRAP_LOG_FILE"
ENV_LOG_FILE_LEVEL = "VMSTRAP_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

# WARNING level: minimal, no noise
_FMT_MINIMAL = "%(message)s"

# INFO level: timestamped with module context
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG level: full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output: always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> str:
    """Pick the console level from CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LOG_LEVEL, "WARNING")


def _console_handler(level: int) -> logging.Handler:
    """stderr handler; the format grows more detailed as the level drops."""
    if level <= logging.DEBUG:
        formatter = logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG)
    elif level <= logging.INFO:
        formatter = logging.Formatter(_FMT_VERBOSE, datefmt=_DATEFMT_VERBOSE)
    else:
        formatter = logging.Formatter(_FMT_MINIMAL)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Route vmstrap diagnostics to stderr and, optionally, a log file.

    Replaces any handlers already on the root logger, so calling it
    again does not duplicate output. The root level is the lower of
    the console and file levels.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def setup_logging_from_env(level: str | None = None) -> None:
    """Configure logging using the VMSTRAP_* environment variables."""
    setup_logging(
        level=level or resolve_level(),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
    )


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
