"""
Deploy key management — generate, remove, and test the dotfiles key.

Design:
  - One Ed25519 key pair at ``~/.ssh/dotfiles_deploy_key``
  - Empty passphrase: the key is used unattended by scripts and cron
  - Comment embeds hostname and date, so the key is traceable from
    the repository's deploy-key list
  - Connectivity is judged by GitHub's greeting, not by exit code:
    ``ssh -T`` exits non-zero even when authentication succeeds
"""

from __future__ import annotations

import logging
import socket
from datetime import date
from pathlib import Path

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.console import Console
from vmstrap.core.errors import FileWriteError, UnsupportedPlatformError
from vmstrap.core.models.deploy_key import DeployKeyMaterial
from vmstrap.core.services.host_probe import probe, ssh_tools_plan

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "successfully authenticated"
DEFAULT_CONNECT_TIMEOUT = 10
_HOSTNAME_FILE = Path("/etc/hostname")


def ensure_ssh_dir(ssh_dir: Path) -> Path:
    """Create ``ssh_dir`` if needed and restrict it to the owner.

    Raises:
        FileWriteError: The directory could not be created or restricted.
    """
    try:
        ssh_dir.mkdir(parents=True, exist_ok=True)
        ssh_dir.chmod(0o700)
    except OSError as e:
        raise FileWriteError(f"Cannot prepare {ssh_dir}: {e}") from e
    return ssh_dir


def host_name() -> str:
    """Hostname, falling back to /etc/hostname, then ``vm``."""
    try:
        name = socket.gethostname().strip()
    except OSError:
        name = ""
    if name:
        return name
    try:
        name = _HOSTNAME_FILE.read_text(encoding="utf-8").strip()
    except OSError:
        name = ""
    return name or "vm"


def key_comment(hostname: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"dotfiles-deploy-{hostname}-{today:%Y%m%d}"


def remove_key(material: DeployKeyMaterial) -> None:
    """Delete both halves of the key pair (missing files are fine)."""
    material.private_key_path.unlink(missing_ok=True)
    material.public_key_path.unlink(missing_ok=True)
    logger.info("Removed deploy key %s", material.private_key_path)


def ensure_keygen(runner: CommandRunner, console: Console) -> None:
    """Install the platform's SSH client package if ssh-keygen is missing.

    Raises:
        UnsupportedPlatformError: No known package manager to install with.
        CommandFailure: The package manager failed.
    """
    if runner.which("ssh-keygen"):
        return

    console.error("ssh-keygen not found. Installing SSH tools...")
    try:
        plan = ssh_tools_plan(probe(runner))
    except UnsupportedPlatformError as e:
        raise UnsupportedPlatformError(
            "Cannot install SSH tools automatically. "
            "Please install the openssh/ssh-client package."
        ) from e

    runner.check(plan.update_command, capture=False)
    runner.check(plan.install_spec, capture=False)


def generate_key(runner: CommandRunner, material: DeployKeyMaterial) -> DeployKeyMaterial:
    """Create the key pair with an empty passphrase and fix its modes.

    Raises:
        CommandFailure: ssh-keygen failed.
    """
    runner.check([
        "ssh-keygen",
        "-t", "ed25519",
        "-C", material.key_comment,
        "-f", str(material.private_key_path),
        "-N", "",
    ])
    material.private_key_path.chmod(0o600)
    material.public_key_path.chmod(0o644)
    logger.info("Generated deploy key %s (%s)", material.private_key_path, material.key_comment)
    return material


def probe_connection(
    runner: CommandRunner,
    alias_name: str,
    timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> bool:
    """Authenticate against ``alias_name`` without opening a shell.

    Success means the host's reply contains the success marker; the
    exit status is ignored.
    """
    result = runner.run(
        ["ssh", "-T", "-o", "StrictHostKeyChecking=accept-new", alias_name],
        timeout=timeout,
        merge_stderr=True,
    )
    ok = SUCCESS_MARKER in result.output
    logger.debug(
        "Connectivity probe %s: ok=%s exit=%s timed_out=%s",
        alias_name, ok, result.returncode, result.timed_out,
    )
    return ok
