"""
VM install use case — probe, install, configure the shell.

Strictly top-to-bottom: Prober → Installer → Config Writer → default
shell. Any BootstrapError aborts the run; nothing is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.config.loader import Settings
from vmstrap.core.console import Console
from vmstrap.core.models.host import HostProfile, InstalledSet, InstallPlan
from vmstrap.core.services.host_probe import build_plan, probe
from vmstrap.core.services.installer import install, set_default_shell
from vmstrap.core.services.shell_config import write_configs

logger = logging.getLogger(__name__)


@dataclass
class VmInstallResult:
    """What a completed vm-install run did."""

    profile: HostProfile
    plan: InstallPlan
    installed: InstalledSet
    config_files: list[Path] = field(default_factory=list)
    shell_changed: bool = False

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "host": self.profile.model_dump(mode="json"),
            "packages": list(self.plan.package_names),
            "installed": sorted(self.installed.present),
            "missing_optional": self.installed.missing_optional,
            "config_files": [str(p) for p in self.config_files],
            "shell_changed": self.shell_changed,
        }


def confirm_start(console: Console, interactive: bool) -> None:
    """Give an operator at a terminal the chance to cancel."""
    if interactive:
        console.pause("Press Enter to continue or Ctrl+C to cancel...")
    else:
        console.info("Running automatically (piped mode)")


def run_vm_install(
    runner: CommandRunner,
    console: Console,
    settings: Settings | None = None,
    *,
    home: Path | None = None,
    interactive: bool = False,
    system: str | None = None,
    euid: int | None = None,
) -> VmInstallResult:
    """Bootstrap this machine.

    Args:
        runner: Command runner (real or fake).
        console: Operator console.
        settings: Loaded settings (defaults when None).
        home: Home directory receiving the shell configs.
        interactive: Wait for Enter before touching the host.
        system, euid: Prober overrides for tests.

    Raises:
        BootstrapError: Any fatal step.
    """
    settings = settings or Settings()

    console.info("Starting VM setup...")
    confirm_start(console, interactive)

    console.info("Detecting operating system...")
    profile = probe(runner, system=system, euid=euid)
    console.success(f"Detected OS: {profile.os_family.value}")

    plan = build_plan(profile, settings.extra_packages)
    installed = install(plan, runner, console)

    console.info("Writing shell configuration...")
    written = write_configs(home)
    for path in written:
        console.success(f"Wrote {path}")

    shell_changed = False
    if settings.change_default_shell:
        shell_changed = set_default_shell(runner, console)

    console.success("VM setup complete!")
    console.echo()
    console.info("Next steps:")
    console.echo("  • Run 'zsh' to start using zsh")
    console.echo("  • Run 'tmux' to start terminal multiplexer")
    console.echo("  • Use aliases: ll, gs, vim (→nvim), etc.")

    logger.info("vm-install finished: %d packages, shell_changed=%s",
                len(plan.package_names), shell_changed)
    return VmInstallResult(
        profile=profile,
        plan=plan,
        installed=installed,
        config_files=written,
        shell_changed=shell_changed,
    )
