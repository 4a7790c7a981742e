"""
Domain models — Pydantic types for vmstrap.

All models are re-exported here for convenient access:

    from vmstrap.core.models import HostProfile, InstallPlan, SshAlias, CommandResult
"""

from vmstrap.core.models.command import CommandResult, CommandSpec
from vmstrap.core.models.deploy_key import (
    CloneRequest,
    DeployKeyMaterial,
    SetupEntry,
    SetupKind,
    SshAlias,
)
from vmstrap.core.models.host import (
    HostProfile,
    InstalledSet,
    InstallPlan,
    OsFamily,
    PrivilegeMode,
)

__all__ = [
    # command.py
    "CommandResult",
    "CommandSpec",
    # deploy_key.py
    "CloneRequest",
    "DeployKeyMaterial",
    "SetupEntry",
    "SetupKind",
    "SshAlias",
    # host.py
    "HostProfile",
    "InstallPlan",
    "InstalledSet",
    "OsFamily",
    "PrivilegeMode",
]
