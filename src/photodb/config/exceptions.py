"""Configuration errors for photodb."""


class ConfigError(Exception):
    """Raised when the config file, an environment override or a CLI override is invalid."""
