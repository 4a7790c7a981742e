"""
vmstrap — CLI entrypoint.

Usage:
    python -m vmstrap.main --help
    python -m vmstrap.main install
    python -m vmstrap.main deploy-key

The same commands are installed standalone as ``vm-install`` and
``setup-dotfiles-ssh``.
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from vmstrap import __version__
from vmstrap.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    resolve_level,
    setup_logging,
)
from vmstrap.ui.cli.common import CONTEXT_SETTINGS


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="vmstrap")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: $VMSTRAP_CONFIG or ~/.config/vmstrap/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """vmstrap — bootstrap a fresh VM or container."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
    )
    ctx.obj["logging_configured"] = True


# ── Register sub-commands from vmstrap/ui/cli/ ────────────────────

from vmstrap.ui.cli.deploy_key import deploy_key  # noqa: E402
from vmstrap.ui.cli.vm_install import vm_install  # noqa: E402

cli.add_command(vm_install)
cli.add_command(deploy_key)


if __name__ == "__main__":
    cli()
