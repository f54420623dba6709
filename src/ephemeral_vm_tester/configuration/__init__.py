"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import (
    ENV_CONNECT_TIMEOUT,
    ENV_REMOTE_USER,
    ENV_SSH_PORT,
    ConfigurationError,
    load_settings,
)
from .runtime_settings import RunnerSettings

__all__ = [
    "RunnerSettings",
    "ConfigurationError",
    "load_settings",
    "ENV_REMOTE_USER",
    "ENV_CONNECT_TIMEOUT",
    "ENV_SSH_PORT",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
