"""
Console — the operator interaction seam.

Services print progress and ask questions only through a Console.
The CLI passes a click-backed console; tests pass a ScriptedConsole
with queued answers. The same session code runs unchanged under both.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable


class Console(ABC):
    """Line-oriented operator I/O."""

    @abstractmethod
    def echo(self, text: str = "") -> None:
        """Print a plain line."""

    @abstractmethod
    def info(self, message: str) -> None: ...

    @abstractmethod
    def success(self, message: str) -> None: ...

    @abstractmethod
    def warn(self, message: str) -> None: ...

    @abstractmethod
    def error(self, message: str) -> None: ...

    @abstractmethod
    def prompt(self, text: str, default: str | None = None) -> str:
        """Read one line. Empty input yields ``default`` (or "")."""

    @abstractmethod
    def confirm(self, text: str, default: bool = False) -> bool:
        """Ask a yes/no question."""

    def pause(self, text: str) -> None:
        """Block until the operator presses Enter."""
        self.prompt(text, default="")

    def banner(self, width: int = 78) -> None:
        self.echo("=" * width)


class ScriptedConsole(Console):
    """Console fed from a queue of answers, recording everything shown.

    Prompts consume answers in order; running out of answers is a test
    bug and raises RuntimeError naming the unanswered prompt.
    """

    def __init__(self, answers: Iterable[str] = ()):
        self._answers: deque[str] = deque(answers)
        self.lines: list[str] = []
        self.prompts: list[str] = []

    @property
    def transcript(self) -> str:
        return "\n".join(self.lines)

    @property
    def remaining_answers(self) -> int:
        return len(self._answers)

    def echo(self, text: str = "") -> None:
        self.lines.append(text)

    def info(self, message: str) -> None:
        self.lines.append(f"[INFO] {message}")

    def success(self, message: str) -> None:
        self.lines.append(f"[SUCCESS] {message}")

    def warn(self, message: str) -> None:
        self.lines.append(f"[WARN] {message}")

    def error(self, message: str) -> None:
        self.lines.append(f"[ERROR] {message}")

    def prompt(self, text: str, default: str | None = None) -> str:
        self.prompts.append(text)
        if not self._answers:
            raise RuntimeError(f"No scripted answer for prompt: {text!r}")
        answer = self._answers.popleft().strip()
        if not answer and default is not None:
            return default
        return answer

    def confirm(self, text: str, default: bool = False) -> bool:
        answer = self.prompt(text, default="y" if default else "n")
        return answer.lower() in ("y", "yes")
