"""
SSH client config — idempotent upsert of the deploy-key ``Host`` alias.

Any prior block for the alias (and its marker comment) is removed
before the fresh block is appended, so the file holds exactly one
entry no matter how many times the provisioner runs. The previous
file is copied to ``config.backup`` before every mutation.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from vmstrap.core.errors import FileWriteError
from vmstrap.core.models.deploy_key import ALIAS_MARKER, SshAlias

logger = logging.getLogger(__name__)

CONFIG_NAME = "config"
BACKUP_NAME = "config.backup"


def _host_patterns(line: str) -> list[str] | None:
    """Patterns of a ``Host`` line, or None for any other line."""
    parts = line.split()
    if not parts or parts[0].lower() != "host":
        return None
    return parts[1:]


def _starts_block(line: str) -> bool:
    parts = line.split()
    return bool(parts) and parts[0].lower() in ("host", "match")


def strip_alias_blocks(text: str, alias_name: str) -> str:
    """Remove every ``Host <alias_name>`` block and marker comment.

    A block ends at the first blank line (consumed), the next
    ``Host``/``Match`` line (kept), or end of file.
    """
    out: list[str] = []
    skipping = False

    for line in text.splitlines(keepends=True):
        stripped = line.strip()

        if skipping:
            if not stripped:
                skipping = False
                continue
            if not _starts_block(stripped):
                continue
            skipping = False

        if stripped == ALIAS_MARKER:
            continue
        if _host_patterns(stripped) == [alias_name]:
            skipping = True
            continue
        out.append(line)

    return "".join(out)


def count_alias_blocks(text: str, alias_name: str) -> int:
    return sum(
        1 for line in text.splitlines() if _host_patterns(line.strip()) == [alias_name]
    )


def upsert_alias(ssh_dir: Path, alias: SshAlias) -> Path | None:
    """Write ``alias`` into ``ssh_dir/config``, replacing any prior entry.

    Returns:
        The backup path when a config existed beforehand, else None.

    Raises:
        FileWriteError: The config or its backup could not be written.
    """
    config = ssh_dir / CONFIG_NAME
    backup: Path | None = None
    existing = ""

    try:
        if config.is_file():
            backup = ssh_dir / BACKUP_NAME
            shutil.copy2(config, backup)
            logger.debug("Backed up %s to %s", config, backup)
            existing = config.read_text(encoding="utf-8")

        remaining = strip_alias_blocks(existing, alias.alias_name).rstrip()
        separator = "\n\n" if remaining else ""
        config.write_text(f"{remaining}{separator}{alias.render()}", encoding="utf-8")
        config.chmod(0o644)
    except OSError as e:
        raise FileWriteError(f"Cannot update {config}: {e}") from e

    logger.info("Configured SSH alias %s -> %s", alias.alias_name, alias.host)
    return backup
