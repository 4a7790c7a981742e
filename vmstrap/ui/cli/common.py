"""
Shared CLI plumbing — runtime wiring and error exit.

Commands work both standalone (``vm-install``) and under the
``vmstrap`` group. Under the group, logging and the config path are
already in ``ctx.obj``; standalone, they come from the environment.
Tests inject a runner and home directory through ``obj``.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn

import click

from vmstrap.adapters.base import CommandRunner
from vmstrap.adapters.shell.command import SubprocessRunner
from vmstrap.core.config.loader import Settings, load_settings
from vmstrap.core.console import Console
from vmstrap.core.errors import BootstrapError, OperatorAbort
from vmstrap.core.observability.logging_config import setup_logging_from_env

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _obj(ctx: click.Context) -> dict:
    return ctx.obj if isinstance(ctx.obj, dict) else {}


def load_cli_settings(ctx: click.Context) -> Settings:
    """Configure logging (standalone only) and load settings."""
    obj = _obj(ctx)
    if not obj.get("logging_configured"):
        setup_logging_from_env()
    return load_settings(obj.get("config_path"))


def get_runner(ctx: click.Context) -> CommandRunner:
    return _obj(ctx).get("runner") or SubprocessRunner()


def get_home(ctx: click.Context) -> Path | None:
    return _obj(ctx).get("home")


def exit_on_error(console: Console, err: BootstrapError) -> NoReturn:
    """Report a fatal error and exit with its code."""
    if isinstance(err, OperatorAbort):
        console.info(str(err))
    else:
        console.error(str(err))
    sys.exit(err.exit_code)
