"""Configuration error type."""


class ConfigError(Exception):
    """Raised when a configuration file, override, or value cannot be used."""
