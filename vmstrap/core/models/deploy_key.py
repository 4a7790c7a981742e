"""
Deploy-key models — key material, the SSH alias, and clone requests.

DeployKeyMaterial and SshAlias describe durable filesystem state that
survives across runs. CloneRequest is collected interactively.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

ALIAS_NAME = "github-dotfiles"
ALIAS_MARKER = "# Dotfiles deploy key configuration"
KEY_NAME = "dotfiles_deploy_key"


class DeployKeyMaterial(BaseModel):
    """Paths of the deploy key pair inside ``~/.ssh``."""

    model_config = ConfigDict(frozen=True)

    private_key_path: Path
    public_key_path: Path
    key_comment: str = ""

    @classmethod
    def in_dir(cls, ssh_dir: Path, comment: str = "") -> DeployKeyMaterial:
        private = ssh_dir / KEY_NAME
        return cls(
            private_key_path=private,
            public_key_path=private.with_name(f"{KEY_NAME}.pub"),
            key_comment=comment,
        )

    def exists(self) -> bool:
        """Both halves of the pair are on disk."""
        return self.private_key_path.is_file() and self.public_key_path.is_file()

    def partial(self) -> bool:
        """Exactly one half of the pair is on disk."""
        return self.private_key_path.is_file() != self.public_key_path.is_file()

    def public_key(self) -> str:
        return self.public_key_path.read_text(encoding="utf-8").strip()


class SshAlias(BaseModel):
    """A ``Host`` block in the SSH client config routing to the deploy key."""

    model_config = ConfigDict(frozen=True)

    alias_name: str = ALIAS_NAME
    host: str = "github.com"
    remote_user: str = "git"
    identity_file: str = f"~/.ssh/{KEY_NAME}"

    def render(self) -> str:
        """The config block, preceded by its marker comment."""
        return (
            f"{ALIAS_MARKER}\n"
            f"Host {self.alias_name}\n"
            f"    HostName {self.host}\n"
            f"    User {self.remote_user}\n"
            f"    IdentityFile {self.identity_file}\n"
            f"    IdentitiesOnly yes\n"
        )


class CloneRequest(BaseModel):
    """Which repository to clone, and where."""

    model_config = ConfigDict(frozen=True)

    remote_owner: str
    remote_repo: str = "dotfiles"
    destination_path: Path

    @property
    def remote_spec(self) -> str:
        return f"{self.remote_owner}/{self.remote_repo}.git"

    def url(self, alias: str = ALIAS_NAME) -> str:
        """Clone URL routed through the SSH alias."""
        return f"{alias}:{self.remote_spec}"


class SetupKind(str, Enum):
    INSTALL_SH = "install.sh"
    SETUP_SH = "setup.sh"
    MAKEFILE = "Makefile"


class SetupEntry(BaseModel):
    """A setup entry point found in a cloned repository."""

    model_config = ConfigDict(frozen=True)

    kind: SetupKind
    path: Path

    @property
    def argv(self) -> list[str]:
        if self.kind is SetupKind.MAKEFILE:
            return ["make", "install"]
        return ["bash", self.kind.value]
