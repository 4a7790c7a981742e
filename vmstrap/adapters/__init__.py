"""Adapters — bindings to external tools.

Public re-exports for convenient access.
"""

from vmstrap.adapters.base import CommandRunner
from vmstrap.adapters.mock import FakeRunner
from vmstrap.adapters.shell.command import SubprocessRunner

__all__ = [
    "CommandRunner",
    "FakeRunner",
    "SubprocessRunner",
]
