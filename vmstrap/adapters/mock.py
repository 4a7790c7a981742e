"""
Fake runner — universal test double for command execution.

Simulates the host without touching it: which executables are on
PATH, what each command returns, and optional side effects (e.g. an
ssh-keygen stand-in writing key files). Every call is recorded.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.models.command import CommandResult

Handler = Callable[[list[str], str | None], CommandResult | None]


@dataclass
class FakeCall:
    argv: list[str]
    cwd: str | None = None
    timeout: float | None = None
    capture: bool = True


@dataclass
class _Response:
    prefix: tuple[str, ...]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    handler: Handler | None = None


class FakeRunner(CommandRunner):
    """Scriptable runner for tests.

    By default every command exits 0 with no output. Responses are
    matched by argv prefix; the longest matching prefix wins, and among
    equal prefixes the most recently registered one.
    """

    def __init__(self, available: Iterable[str] = ()):
        self._paths: dict[str, str] = {}
        self._responses: list[_Response] = []
        self._call_log: list[FakeCall] = []
        self.set_available(*available)

    @property
    def name(self) -> str:
        return "fake"

    @property
    def call_log(self) -> list[FakeCall]:
        """All calls this runner has received."""
        return self._call_log

    @property
    def calls(self) -> list[list[str]]:
        return [call.argv for call in self._call_log]

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def ran(self, *prefix: str) -> bool:
        """Whether any recorded call starts with ``prefix``."""
        return any(tuple(argv[: len(prefix)]) == prefix for argv in self.calls)

    # ── PATH simulation ─────────────────────────────────────────

    def set_available(self, *executables: str) -> None:
        for exe in executables:
            self._paths[exe] = f"/usr/bin/{exe}"

    def set_unavailable(self, *executables: str) -> None:
        for exe in executables:
            self._paths.pop(exe, None)

    def which(self, executable: str) -> str | None:
        return self._paths.get(executable)

    # ── Responses ───────────────────────────────────────────────

    def set_response(
        self,
        prefix: Sequence[str],
        *,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
    ) -> None:
        """Configure what commands starting with ``prefix`` return."""
        self._responses.append(
            _Response(tuple(prefix), returncode, stdout, stderr, timed_out)
        )

    def set_failure(self, prefix: Sequence[str], stderr: str = "fake failure") -> None:
        self.set_response(prefix, returncode=1, stderr=stderr)

    def on(self, prefix: Sequence[str], handler: Handler) -> None:
        """Run ``handler(argv, cwd)`` for matching commands.

        The handler may perform side effects and return a CommandResult,
        or return None to fall back to a plain success.
        """
        self._responses.append(_Response(tuple(prefix), handler=handler))

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
        self._call_log.append(FakeCall(argv=argv, cwd=cwd, timeout=timeout, capture=capture))

        response = self._match(argv)
        if response is None:
            return CommandResult(argv=argv, returncode=0)

        if response.handler is not None:
            result = response.handler(argv, cwd)
            return result if result is not None else CommandResult(argv=argv, returncode=0)

        if response.timed_out:
            return CommandResult(argv=argv, timed_out=True, stdout=response.stdout)

        stdout, stderr = response.stdout, response.stderr
        if merge_stderr:
            stdout, stderr = "\n".join(p for p in (stdout, stderr) if p), ""
        return CommandResult(
            argv=argv,
            returncode=response.returncode,
            stdout=stdout,
            stderr=stderr,
        )

    def _match(self, argv: list[str]) -> _Response | None:
        best: _Response | None = None
        for response in self._responses:
            n = len(response.prefix)
            if tuple(argv[:n]) != response.prefix:
                continue
            if best is None or n >= len(best.prefix):
                best = response
        return best

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
