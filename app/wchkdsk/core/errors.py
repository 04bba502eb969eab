"""Exception hierarchy for wchkdsk."""


class WchkdskError(Exception):
    """Base exception for wchkdsk errors."""


class DeviceError(WchkdskError):
    """Raised when the target device cannot be inspected."""


class BootSectorReadError(DeviceError):
    """Raised when the boot sector cannot be read in full."""


class ConfigError(WchkdskError):
    """Raised when the configuration content is invalid."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file is not valid TOML."""
