"""
Shell config writer — bootstrap, not merge.

Overwrites ``~/.zshrc`` and ``~/.tmux.conf`` with the embedded
templates. Running twice produces byte-identical files; prior manual
edits are lost and no backup is kept.
"""

from __future__ import annotations

import logging
from pathlib import Path

from vmstrap.core.data.shell_templates import SHELL_CONFIG_FILES
from vmstrap.core.errors import FileWriteError

logger = logging.getLogger(__name__)


def write_configs(home: Path | None = None) -> list[Path]:
    """Write every shell configuration file under ``home``.

    Returns:
        The paths written, in order.

    Raises:
        FileWriteError: A file could not be written.
    """
    home = home or Path.home()
    written: list[Path] = []
    for relative, content in SHELL_CONFIG_FILES.items():
        target = home / relative
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FileWriteError(f"Cannot write {target}: {e}") from e
        logger.debug("Wrote %s (%d bytes)", target, len(content))
        written.append(target)
    return written
