"""Composition of the shell command lines executed inside the guest."""

from __future__ import annotations

import re
import shlex
from collections.abc import Mapping, Sequence

_ENV_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_environment_assignment(raw: str) -> tuple[str, str]:
    """Split a ``KEY=VALUE`` assignment and validate the variable name."""
    name, separator, value = raw.partition("=")
    if not separator:
        raise ValueError(f"Environment assignment must look like KEY=VALUE, got '{raw}'.")
    if not _ENV_NAME.match(name):
        raise ValueError(f"Invalid environment variable name: '{name}'.")
    return name, value


def home_path(name: str) -> str:
    """Guest path for ``name`` inside the remote user's home directory."""
    return f"~/{shlex.quote(name)}"


def build_environment_prefix(environment: Mapping[str, str]) -> str:
    return "".join(
        f"export {name}={shlex.quote(value)}; " for name, value in environment.items()
    )


def build_inline_command(
    command: str,
    arguments: Sequence[str] = (),
    environment: Mapping[str, str] | None = None,
) -> str:
    """Prefix an inline shell command with exports and append quoted arguments."""
    line = build_environment_prefix(environment or {}) + command
    if arguments:
        line += " " + shlex.join(arguments)
    return line


def build_script_command(
    script_name: str,
    arguments: Sequence[str] = (),
    environment: Mapping[str, str] | None = None,
) -> str:
    """Mark a staged script executable and run it with exports and arguments."""
    remote_script = home_path(script_name)
    return build_inline_command(
        f"chmod +x {remote_script} && {remote_script}",
        arguments,
        environment,
    )
