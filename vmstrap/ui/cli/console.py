"""
Click-backed console for interactive runs.
"""

from __future__ import annotations

import click

from vmstrap.core.console import Console


class ClickConsole(Console):
    """Coloured ``[TAG]`` lines on stdout, prompts via click."""

    def echo(self, text: str = "") -> None:
        click.echo(text)

    def _tagged(self, tag: str, color: str, message: str, err: bool = False) -> None:
        click.secho(f"[{tag}]", fg=color, bold=True, nl=False, err=err)
        click.echo(f" {message}", err=err)

    def info(self, message: str) -> None:
        self._tagged("INFO", "blue", message)

    def success(self, message: str) -> None:
        self._tagged("SUCCESS", "green", message)

    def warn(self, message: str) -> None:
        self._tagged("WARN", "yellow", message)

    def error(self, message: str) -> None:
        self._tagged("ERROR", "red", message, err=True)

    def prompt(self, text: str, default: str | None = None) -> str:
        value = click.prompt(
            text,
            default=default if default is not None else "",
            show_default=bool(default),
        )
        return value.strip()

    def confirm(self, text: str, default: bool = False) -> bool:
        return click.confirm(text, default=default)
