"""
Package installer — refresh metadata, install everything, verify.

The install command runs ONCE over the full package list so the
package manager resolves dependencies jointly. Any failure is fatal;
there is no partial-state recovery. Re-running the whole bootstrap is
the recovery path.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.console import Console
from vmstrap.core.data.platforms import ESSENTIAL_BINARIES, OPTIONAL_BINARIES
from vmstrap.core.errors import CommandFailure, InstallError
from vmstrap.core.models.host import InstalledSet, InstallPlan

logger = logging.getLogger(__name__)


def install(
    plan: InstallPlan,
    runner: CommandRunner,
    console: Console,
) -> InstalledSet:
    """Run the update and install commands, then verify binaries.

    Package manager output streams straight to the terminal.

    Raises:
        InstallError: Either command failed, or an essential binary is
            missing from PATH afterwards.
    """
    console.info("Installing packages...")

    try:
        logger.info("Refreshing package metadata: %s", plan.update_command)
        runner.check(plan.update_command, capture=False)

        install_spec = plan.install_spec
        logger.info("Installing %d packages: %s", len(plan.package_names), install_spec)
        runner.check(install_spec, capture=False)
    except CommandFailure as e:
        raise InstallError(f"Package installation failed: {e}") from e

    installed = verify(runner, console)
    console.success("Package installation complete")
    return installed


def verify(
    runner: CommandRunner,
    console: Console,
    essential: Sequence[str] = ESSENTIAL_BINARIES,
    optional: Sequence[str] = OPTIONAL_BINARIES,
) -> InstalledSet:
    """Check each expected executable is now resolvable on PATH.

    Missing essentials are fatal; missing optionals are warnings.
    """
    present: dict[str, str] = {}
    missing_essential: list[str] = []
    missing_optional: list[str] = []

    for binary in essential:
        path = runner.which(binary)
        if path:
            present[binary] = path
        else:
            missing_essential.append(binary)

    for binary in optional:
        path = runner.which(binary)
        if path:
            present[binary] = path
        else:
            missing_optional.append(binary)
            console.warn(f"Optional tool not found on PATH: {binary}")

    logger.debug("Verified binaries: present=%s missing_optional=%s",
                 sorted(present), missing_optional)

    if missing_essential:
        raise InstallError(
            "Essential tools missing after install: " + ", ".join(missing_essential),
            missing=missing_essential,
        )

    return InstalledSet(present=present, missing_optional=missing_optional)


def set_default_shell(
    runner: CommandRunner,
    console: Console,
    current_shell: str | None = None,
) -> bool:
    """Make zsh the login shell. Failure is only a warning.

    Returns:
        True if ``chsh`` ran and succeeded.
    """
    zsh = runner.which("zsh")
    if not zsh:
        return False

    current_shell = current_shell if current_shell is not None else os.environ.get("SHELL", "")
    if current_shell == zsh:
        logger.debug("Login shell is already %s", zsh)
        return False

    console.info("Setting zsh as default shell...")
    result = runner.run(["chsh", "-s", zsh], capture=False)
    if not result.ok:
        logger.debug("chsh failed: %s", result.describe())
        console.warn("Could not change default shell")
        return False
    return True
