"""
Subprocess runner — execute external commands on the real host.

The SINGLE PLACE where ``subprocess.run`` is called. Commands are
always passed as an argument list, never through a shell.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from collections.abc import Sequence

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.models.command import CommandResult

logger = logging.getLogger(__name__)


def _text(value: str | bytes | None) -> str:
    """TimeoutExpired may carry bytes even in text mode."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class SubprocessRunner(CommandRunner):
    """Run commands with ``subprocess.run`` and capture the outcome."""

    @property
    def name(self) -> str:
        return "subprocess"

    def which(self, executable: str) -> str | None:
        return shutil.which(executable)

    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        cwd: str | None = None,
        capture: bool = True,
        merge_stderr: bool = False,
    ) -> CommandResult:
        argv = list(argv)
        logger.debug("Executing: %s (cwd=%s, timeout=%s)", " ".join(argv), cwd, timeout)
        start = time.monotonic()

        if capture:
            stdout = subprocess.PIPE
            stderr = subprocess.STDOUT if merge_stderr else subprocess.PIPE
        else:
            stdout = stderr = None

        try:
            proc = subprocess.run(
                argv,
                cwd=cwd,
                stdout=stdout,
                stderr=stderr,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            logger.debug("Timed out after %ss: %s", timeout, argv[0])
            return CommandResult(
                argv=argv,
                timed_out=True,
                stdout=_text(e.stdout),
                stderr=_text(e.stderr),
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        except OSError as e:
            logger.debug("Could not execute %s: %s", argv[0], e)
            return CommandResult(argv=argv, error=str(e))

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("Exit %d after %dms: %s", proc.returncode, elapsed_ms, argv[0])
        return CommandResult(
            argv=argv,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=elapsed_ms,
        )
