"""Runner settings loader service."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import RunnerSettings

ENV_REMOTE_USER = "VM_USER"
ENV_CONNECT_TIMEOUT = "SSH_TIMEOUT"
ENV_SSH_PORT = "VM_SSH_PORT"


class ConfigurationError(Exception):
    """Raised when runner settings are invalid."""


def load_settings(
    config_path: Path | str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> RunnerSettings:
    """Load runner settings from defaults, an optional YAML file and the environment.

    Precedence, lowest first: built-in defaults, the ``runner`` section of the
    configuration file, then ``VM_USER``, ``SSH_TIMEOUT`` and ``VM_SSH_PORT``.
    Command-line flags are applied afterwards by the caller through
    ``RunnerSettings.with_overrides``.
    """
    settings = RunnerSettings()
    if config_path is not None:
        settings = _apply_file_settings(settings, Path(config_path))
    return _apply_environment(settings, os.environ if environ is None else environ)


def _apply_file_settings(settings: RunnerSettings, path: Path) -> RunnerSettings:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    section = parsed.get("runner")
    if section is None:
        return settings
    if not isinstance(section, Mapping):
        raise ConfigurationError("Configuration section 'runner' must be a mapping.")

    return RunnerSettings(
        remote_user=_require_non_empty_string(
            section.get("remote_user", settings.remote_user), "runner.remote_user"
        ),
        ssh_port=_require_port(section.get("ssh_port", settings.ssh_port), "runner.ssh_port"),
        connect_timeout_seconds=_require_positive_int(
            section.get("connect_timeout_seconds", settings.connect_timeout_seconds),
            "runner.connect_timeout_seconds",
        ),
        poll_interval_seconds=_require_positive_number(
            section.get("poll_interval_seconds", settings.poll_interval_seconds),
            "runner.poll_interval_seconds",
        ),
        handshake_timeout_seconds=_require_positive_int(
            section.get("handshake_timeout_seconds", settings.handshake_timeout_seconds),
            "runner.handshake_timeout_seconds",
        ),
        stop_grace_seconds=_require_positive_int(
            section.get("stop_grace_seconds", settings.stop_grace_seconds),
            "runner.stop_grace_seconds",
        ),
        image_store_command=_require_non_empty_string(
            section.get("image_store_command", settings.image_store_command),
            "runner.image_store_command",
        ),
    )


def _apply_environment(settings: RunnerSettings, environ: Mapping[str, str]) -> RunnerSettings:
    remote_user = environ.get(ENV_REMOTE_USER)
    timeout = environ.get(ENV_CONNECT_TIMEOUT)
    port = environ.get(ENV_SSH_PORT)
    return settings.with_overrides(
        remote_user=(
            _require_non_empty_string(remote_user, ENV_REMOTE_USER) if remote_user else None
        ),
        connect_timeout_seconds=(
            _require_positive_int(_parse_int(timeout, ENV_CONNECT_TIMEOUT), ENV_CONNECT_TIMEOUT)
            if timeout
            else None
        ),
        ssh_port=_require_port(_parse_int(port, ENV_SSH_PORT), ENV_SSH_PORT) if port else None,
    )


def _parse_int(raw: str, field_name: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{field_name} must be an integer, got '{raw}'.") from exc


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _require_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return value


def _require_positive_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(f"{field_name} must be a number.")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return float(value)


def _require_port(value: Any, field_name: str) -> int:
    port = _require_positive_int(value, field_name)
    if port > 65535:
        raise ConfigurationError(f"{field_name} must be a valid TCP port.")
    return port
