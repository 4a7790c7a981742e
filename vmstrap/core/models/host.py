"""
Host models — what the prober learned about the machine, and the plan
derived from it.

Both are computed once per run and are read-only afterwards.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vmstrap.core.models.command import CommandSpec


class OsFamily(str, Enum):
    DEBIAN = "linux-debian"
    ARCH = "linux-arch"
    FEDORA = "linux-fedora"
    RHEL = "linux-rhel"
    MACOS = "macos"
    UNSUPPORTED = "unsupported"


class PrivilegeMode(str, Enum):
    ROOT = "root"
    SUDO = "sudo"


class HostProfile(BaseModel):
    """Operating system family, privilege mode, and package manager."""

    model_config = ConfigDict(frozen=True)

    os_family: OsFamily
    privilege_mode: PrivilegeMode
    package_manager: str = ""

    @model_validator(mode="after")
    def _manager_matches_family(self) -> HostProfile:
        if self.os_family is OsFamily.UNSUPPORTED and self.package_manager:
            raise ValueError("an unsupported host cannot have a package manager")
        if self.os_family is not OsFamily.UNSUPPORTED and not self.package_manager:
            raise ValueError(f"{self.os_family.value} requires a package manager")
        return self

    @property
    def is_root(self) -> bool:
        return self.privilege_mode is PrivilegeMode.ROOT


class InstallPlan(BaseModel):
    """Refresh command, install command, and the packages to install."""

    model_config = ConfigDict(frozen=True)

    update_command: CommandSpec
    install_command: CommandSpec
    package_names: tuple[str, ...]

    @property
    def install_spec(self) -> CommandSpec:
        """Install command over the full package list, as one invocation."""
        return self.install_command.with_args(*self.package_names)


class InstalledSet(BaseModel):
    """Outcome of post-install verification."""

    present: dict[str, str]              # binary name -> resolved path
    missing_optional: list[str] = Field(default_factory=list)

    def has(self, binary: str) -> bool:
        return binary in self.present
