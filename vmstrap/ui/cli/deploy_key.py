"""
CLI command: setup-dotfiles-ssh.

Thin wrapper over ``vmstrap.core.use_cases.deploy_key``.
"""

from __future__ import annotations

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


@click.command("deploy-key", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def deploy_key(ctx: click.Context) -> None:
    """Set up a read-only deploy key for a private dotfiles repository.

    \b
    1. Generates ~/.ssh/dotfiles_deploy_key (Ed25519, no passphrase)
    2. Adds a 'github-dotfiles' Host alias to ~/.ssh/config
    3. Waits while you add the public key to the repository's Deploy keys
    4. Tests the connection, then offers to clone and run the repo's setup

    \b
    To remove the key later:
        rm ~/.ssh/dotfiles_deploy_key ~/.ssh/dotfiles_deploy_key.pub
    and delete the 'Host github-dotfiles' block from ~/.ssh/config.
    """
    from vmstrap.core.use_cases.deploy_key import run_deploy_key

    console = ClickConsole()
    try:
        settings = load_cli_settings(ctx)
        run_deploy_key(get_runner(ctx), console, settings, home=get_home(ctx))
    except BootstrapError as e:
        exit_on_error(console, e)
