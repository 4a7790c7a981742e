"""
Dotfiles repository — clone through the deploy-key alias and find the
repository's setup entry point.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.errors import CloneFailure
from vmstrap.core.models.command import CommandResult
from vmstrap.core.models.deploy_key import ALIAS_NAME, CloneRequest, SetupEntry, SetupKind

logger = logging.getLogger(__name__)

# Priority order: the first one present wins.
SETUP_PRIORITY: tuple[SetupKind, ...] = (
    SetupKind.INSTALL_SH,
    SetupKind.SETUP_SH,
    SetupKind.MAKEFILE,
)


def expand_path(raw: str) -> Path:
    """Expand ``~`` and environment variables in an operator-typed path."""
    return Path(os.path.expandvars(raw.strip())).expanduser()


def clone(runner: CommandRunner, request: CloneRequest, alias: str = ALIAS_NAME) -> Path:
    """``git clone <alias>:<owner>/<repo>.git <dest>``.

    Raises:
        CloneFailure: git reported failure.
    """
    dest = request.destination_path
    result = runner.run(["git", "clone", request.url(alias), str(dest)], capture=False)
    if not result.ok:
        raise CloneFailure(f"Failed to clone {request.remote_spec}: {result.describe()}")
    logger.info("Cloned %s into %s", request.remote_spec, dest)
    return dest


def detect_setup_entry(repo_dir: Path) -> SetupEntry | None:
    for kind in SETUP_PRIORITY:
        candidate = repo_dir / kind.value
        if candidate.is_file():
            return SetupEntry(kind=kind, path=candidate)
    return None


def run_setup_entry(runner: CommandRunner, entry: SetupEntry) -> CommandResult:
    """Run the entry point inside its repository with the terminal attached."""
    logger.info("Running %s in %s", " ".join(entry.argv), entry.path.parent)
    return runner.run(entry.argv, cwd=str(entry.path.parent), capture=False)
