"""Custom exceptions for configuration management."""


class ConfigError(Exception):
    """Raised when tool settings or project asset patterns cannot be processed."""
