"""
Runner base — the protocol contract between services and external tools.

Services never call ``subprocess`` directly; they go through a
CommandRunner. This keeps every side effect behind one seam so the
whole bootstrap can be driven by a fake in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from vmstrap.core.errors import CommandFailure
from vmstrap.core.models.command import CommandResult, CommandSpec


class CommandRunner(ABC):
    """Abstract base class for command runners.

    ``run`` NEVER raises for a failing command — the failure is captured
    in the CommandResult. ``check`` is the raising convenience wrapper.

    To create a new runner:
        1. Subclass CommandRunner
        2. Implement name, which, run
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'subprocess', 'fake')."""

    @abstractmethod
    def which(self, executable: str) -> str | None:
        """Resolve ``executable`` on the command search path.

        Returns the full path, or None when it is not installed.
        Should be fast and never raise.
        """

    @abstractmethod
    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        cwd: str | None = None,
        capture: bool = True,
        merge_stderr: bool = False,
    ) -> CommandResult:
        """Run a command and return its result.

        Args:
            argv: Executable followed by its arguments.
            timeout: Seconds before the command is killed.
            cwd: Working directory.
            capture: Capture output. When False the command shares the
                terminal (progress output, password prompts).
            merge_stderr: Fold stderr into stdout.
        """

    def check(
        self,
        command: CommandSpec | Sequence[str],
        **kwargs,
    ) -> CommandResult:
        """Run a command and raise CommandFailure unless it succeeded.

        A CommandSpec's ``ok_returncodes`` decide success; a plain argv
        must exit 0.
        """
        if isinstance(command, CommandSpec):
            argv, ok_codes = command.argv, command.ok_returncodes
        else:
            argv, ok_codes = list(command), (0,)

        result = self.run(argv, **kwargs)
        if not result.accepted(ok_codes):
            raise CommandFailure(result.describe(), result)
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
