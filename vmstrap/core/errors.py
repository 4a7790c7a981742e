"""
Error taxonomy — every fatal condition of a bootstrap run.

Every failure is terminal for the run. The CLI layer catches
``BootstrapError``, prints the message, and exits with ``exit_code``.
Recovery is always "fix the underlying condition and re-run".
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vmstrap.core.models.command import CommandResult


class BootstrapError(Exception):
    """Base class for all vmstrap failures."""

    exit_code: int = 1


class UnsupportedPlatformError(BootstrapError):
    """The host OS or package manager is not one we know how to drive."""


class CommandFailure(BootstrapError):
    """An external command returned a non-accepted exit code or timed out."""

    def __init__(self, message: str, result: CommandResult | None = None):
        super().__init__(message)
        self.result = result


class InstallError(BootstrapError):
    """Package installation or post-install verification failed."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class OperatorAbort(BootstrapError):
    """The operator explicitly chose to exit from an interactive prompt."""

    exit_code = 0


class InvalidInputError(BootstrapError):
    """The operator gave an answer the prompt does not accept."""


class ConnectivityFailure(BootstrapError):
    """The SSH probe did not observe the success marker within the timeout."""


class CloneFailure(BootstrapError):
    """Cloning the dotfiles repository failed."""


class FileWriteError(BootstrapError):
    """A configuration file could not be written."""
