"""
Environment prober — what kind of host are we on?

Detection READS system state but never WRITES. The result is a
HostProfile, turned into an InstallPlan by a static table lookup.

Linux package managers are tried in a fixed order (apt-get, pacman,
dnf, yum); the first one on PATH wins. macOS requires Homebrew.
"""

from __future__ import annotations

import logging
import os
import platform
from collections.abc import Iterable

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.data.platforms import (
    HOMEBREW_URL,
    LINUX_DETECTION_ORDER,
    MACOS_PACKAGE_MANAGER,
    PLATFORM_TABLE,
)
from vmstrap.core.errors import UnsupportedPlatformError
from vmstrap.core.models.command import CommandSpec
from vmstrap.core.models.host import HostProfile, InstallPlan, OsFamily, PrivilegeMode

logger = logging.getLogger(__name__)

SUDO_WRAPPER: tuple[str, ...] = ("sudo",)


def detect_privilege(euid: int | None = None) -> PrivilegeMode:
    """Root runs commands directly; anyone else goes through sudo."""
    if euid is None:
        geteuid = getattr(os, "geteuid", None)
        euid = geteuid() if geteuid else -1
    return PrivilegeMode.ROOT if euid == 0 else PrivilegeMode.SUDO


def probe(
    runner: CommandRunner,
    *,
    system: str | None = None,
    euid: int | None = None,
) -> HostProfile:
    """Detect OS family, package manager, and privilege mode.

    Args:
        runner: Used only for PATH lookups.
        system: ``platform.system()`` override (tests).
        euid: Effective uid override (tests).

    Raises:
        UnsupportedPlatformError: Unknown OS, no known Linux package
            manager, or macOS without Homebrew.
    """
    system = system if system is not None else platform.system()
    privilege = detect_privilege(euid)
    logger.debug("Probing host: system=%s privilege=%s", system, privilege.value)

    if system == "Linux":
        for manager, family in LINUX_DETECTION_ORDER:
            if runner.which(manager):
                logger.info("Detected %s via %s", family, manager)
                return HostProfile(
                    os_family=OsFamily(family),
                    privilege_mode=privilege,
                    package_manager=manager,
                )
        raise UnsupportedPlatformError("Unsupported Linux distribution")

    if system == "Darwin":
        if not runner.which(MACOS_PACKAGE_MANAGER):
            raise UnsupportedPlatformError(
                f"Homebrew not found. Install from {HOMEBREW_URL}"
            )
        return HostProfile(
            os_family=OsFamily.MACOS,
            privilege_mode=privilege,
            package_manager=MACOS_PACKAGE_MANAGER,
        )

    raise UnsupportedPlatformError(f"Unsupported operating system: {system or 'unknown'}")


def _platform_row(profile: HostProfile) -> dict:
    row = PLATFORM_TABLE.get(profile.os_family.value)
    if row is None:
        raise UnsupportedPlatformError(
            f"No install plan for platform: {profile.os_family.value}"
        )
    return row


def _wrapper(profile: HostProfile, row: dict) -> tuple[str, ...]:
    if row["privileged"] and profile.privilege_mode is PrivilegeMode.SUDO:
        return SUDO_WRAPPER
    return ()


def build_plan(profile: HostProfile, extra_packages: Iterable[str] = ()) -> InstallPlan:
    """Turn a HostProfile into its InstallPlan.

    ``extra_packages`` are appended after the table's packages,
    de-duplicated with order preserved.
    """
    row = _platform_row(profile)
    wrapper = _wrapper(profile, row)
    manager = row["package_manager"]

    packages = list(dict.fromkeys([*row["packages"], *extra_packages]))

    return InstallPlan(
        update_command=CommandSpec(
            executable=manager,
            args=tuple(row["update"]),
            wrapper=wrapper,
            ok_returncodes=tuple(row["update_ok"]),
        ),
        install_command=CommandSpec(
            executable=manager,
            args=tuple(row["install"]),
            wrapper=wrapper,
        ),
        package_names=tuple(packages),
    )


def ssh_tools_plan(profile: HostProfile) -> InstallPlan:
    """A plan installing only the platform's SSH client package."""
    row = _platform_row(profile)
    return build_plan(profile).model_copy(
        update={"package_names": (row["ssh_package"],)}
    )
