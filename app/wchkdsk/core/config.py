"""Supervisor configuration.

Settings are read from ~/.config/wchkdsk/config.toml. Every field has a
default, so a missing file is equivalent to an empty one.

Example:
    force_by_default = false
    timeout_seconds = 600
    niceness = 19

    [programs]
    fat = "fsck.vfat"
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wchkdsk.core.errors import ConfigError, ConfigParseError
from wchkdsk.core.paths import get_config_path
from wchkdsk.models.filesystem import FilesystemType
from wchkdsk.models.status import MAX_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class CheckerConfig(BaseModel):
    """Configuration for checker runs.

    Attributes:
        force_by_default: Skip the dirty probe when neither -a nor -y is given.
        timeout_seconds: Default time limit for an invocation (0 = none).
        niceness: Scheduling priority increment applied to the checker.
        programs: Per-filesystem override of the checker executable.
    """

    model_config = ConfigDict(extra="forbid")

    force_by_default: Annotated[
        bool,
        Field(description="Run the checker without probing the dirty flag"),
    ] = False
    timeout_seconds: Annotated[
        int,
        Field(
            ge=0,
            le=MAX_TIMEOUT_SECONDS,
            description="Default time limit in seconds (0 = unlimited)",
        ),
    ] = 0
    niceness: Annotated[
        int,
        Field(ge=0, le=19, description="nice(2) increment for the checker (0-19)"),
    ] = 19
    programs: Annotated[
        dict[FilesystemType, str],
        Field(description="Checker executable per filesystem type"),
    ] = {}

    def program_for(self, fstype: FilesystemType) -> str | None:
        """Return the configured program override for a filesystem type."""
        return self.programs.get(fstype) or None


def load_config(path: Path | None = None) -> CheckerConfig:
    """Load the supervisor configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated CheckerConfig. Defaults are returned if the file is absent.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file cannot be read or the content doesn't match
            the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return CheckerConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {config_path}: {e}") from e

    try:
        return CheckerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e
