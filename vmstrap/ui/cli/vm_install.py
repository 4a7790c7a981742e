"""
CLI command: vm-install.

Thin wrapper over ``vmstrap.core.use_cases.vm_install``.
"""

from __future__ import annotations

import sys

import click

from vmstrap.core.errors import BootstrapError
from vmstrap.ui.cli.common import (
    CONTEXT_SETTINGS,
    exit_on_error,
    get_home,
    get_runner,
    load_cli_settings,
)
from vmstrap.ui.cli.console import ClickConsole


@click.command("install", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def vm_install(ctx: click.Context) -> None:
    """Install baseline CLI tools and write zsh/tmux configuration.

    Detects the package manager (apt-get, pacman, dnf, yum or brew),
    installs git, neovim, tmux, zsh, curl, tree, htop, fzf and an SSH
    client, then overwrites ~/.zshrc and ~/.tmux.conf.
    """
    from vmstrap.core.use_cases.vm_install import run_vm_install

    console = ClickConsole()
    try:
        settings = load_cli_settings(ctx)
        run_vm_install(
            get_runner(ctx),
            console,
            settings,
            home=get_home(ctx),
            interactive=sys.stdin.isatty(),
        )
    except BootstrapError as e:
        exit_on_error(console, e)
