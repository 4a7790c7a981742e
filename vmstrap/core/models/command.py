"""
CommandSpec and CommandResult models — the execution contract.

A CommandSpec is a structured command descriptor (executable plus
argument list). A CommandResult is the receipt a runner hands back.
Runners NEVER raise on a failed command — the failure is captured in
the result and callers decide whether it is fatal.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class CommandSpec(BaseModel):
    """A command to run, never interpolated through a shell.

    ``wrapper`` holds the privilege-escalation prefix (``("sudo",)``)
    when the invoking user is not root; it is empty otherwise.
    """

    model_config = ConfigDict(frozen=True)

    executable: str
    args: tuple[str, ...] = ()
    wrapper: tuple[str, ...] = ()
    ok_returncodes: tuple[int, ...] = (0,)

    @property
    def argv(self) -> list[str]:
        return [*self.wrapper, self.executable, *self.args]

    def with_args(self, *extra: str) -> CommandSpec:
        """Return a copy with ``extra`` appended to the argument list."""
        return self.model_copy(update={"args": (*self.args, *extra)})

    def __str__(self) -> str:
        return " ".join(self.argv)


class CommandResult(BaseModel):
    """Result of one external command invocation."""

    argv: list[str]
    returncode: int | None = None

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    error: str | None = None         # runner-level failure (exec error)

    @property
    def ok(self) -> bool:
        """Whether the command exited 0."""
        return self.accepted((0,))

    def accepted(self, ok_returncodes: tuple[int, ...]) -> bool:
        """Whether the exit code is one of ``ok_returncodes``."""
        if self.timed_out or self.error is not None:
            return False
        return self.returncode in ok_returncodes

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def describe(self) -> str:
        """One-line human summary of why the command did not succeed."""
        cmd = " ".join(self.argv)
        if self.timed_out:
            return f"'{cmd}' timed out"
        if self.error:
            return f"'{cmd}' could not run: {self.error}"
        detail = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else ""
        suffix = f": {detail}" if detail else ""
        return f"'{cmd}' exited with code {self.returncode}{suffix}"
