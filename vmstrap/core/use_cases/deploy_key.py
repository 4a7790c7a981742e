"""
Deploy-key use case — run one provisioning session.
"""

from __future__ import annotations

from pathlib import Path

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.config.loader import Settings
from vmstrap.core.console import Console
from vmstrap.core.services.provisioner import DeployKeyProvisioner, ProvisionOutcome


def run_deploy_key(
    runner: CommandRunner,
    console: Console,
    settings: Settings | None = None,
    *,
    home: Path | None = None,
) -> ProvisionOutcome:
    """Provision the dotfiles deploy key interactively.

    Raises:
        BootstrapError: Any fatal step, or the operator choosing to exit
            (``OperatorAbort``, exit code 0).
    """
    settings = settings or Settings()
    provisioner = DeployKeyProvisioner(
        runner,
        console,
        home=home,
        settings=settings.deploy_key,
    )
    return provisioner.run()
