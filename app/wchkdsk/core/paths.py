"""XDG-compliant path management for wchkdsk.

Configuration lives in ~/.config/wchkdsk/ unless XDG_CONFIG_HOME is set.
"""

import os
from pathlib import Path

APP_NAME = "wchkdsk"


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/wchkdsk/ (or XDG_CONFIG_HOME/wchkdsk/).
    """
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_config_path() -> Path:
    """Get the default config file path.

    Returns:
        Path to ~/.config/wchkdsk/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_theme_path() -> Path:
    """Get the user theme file path.

    Returns:
        Path to ~/.config/wchkdsk/theme.toml.
    """
    return get_config_dir() / "theme.toml"
