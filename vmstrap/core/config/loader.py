"""
Configuration loader — reads the optional vmstrap config file.

Reads YAML, validates against Pydantic schemas, and returns typed
settings. The file is optional: with no file every default applies,
so a bare ``vm-install`` on a fresh machine needs no setup.

Lookup order:
    explicit path (--config)  >  $VMSTRAP_CONFIG  >  ~/.config/vmstrap/config.yml
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vmstrap.core.errors import BootstrapError

logger = logging.getLogger(__name__)

ENV_CONFIG = "VMSTRAP_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/vmstrap/config.yml")


class ConfigError(BootstrapError):
    """Raised when the configuration file is unreadable or invalid."""


class DeployKeySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    connect_timeout: int = Field(default=10, ge=1, le=300)
    default_repo: str = "dotfiles"
    default_destination: str = "~/dotfiles"


class Settings(BaseModel):
    """Everything a run can be tuned with."""

    model_config = ConfigDict(extra="forbid")

    extra_packages: list[str] = Field(default_factory=list)
    change_default_shell: bool = True
    deploy_key: DeployKeySettings = Field(default_factory=DeployKeySettings)


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Resolve which config file applies, or None to use defaults.

    An explicit path or the env var must point at an existing file;
    the default location is used only when present.
    """
    if explicit is not None:
        return explicit

    env_path = os.environ.get(ENV_CONFIG)
    if env_path:
        return Path(env_path).expanduser()

    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.is_file() else None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit config path. If None, the env var and the default
            location are consulted.

    Returns:
        Validated Settings (all defaults when no file applies).

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    path = find_config_file(path)
    if path is None:
        logger.debug("No config file; using defaults")
        return Settings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config from %s", path)
    return settings
