"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass, replace

DEFAULT_REMOTE_USER = "admin"
DEFAULT_SSH_PORT = 22
DEFAULT_CONNECT_TIMEOUT_SECONDS = 120
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_HANDSHAKE_TIMEOUT_SECONDS = 5
DEFAULT_STOP_GRACE_SECONDS = 30
DEFAULT_IMAGE_STORE_COMMAND = "tart"


@dataclass(frozen=True)
class RunnerSettings:  # pylint: disable=too-many-instance-attributes
    """Runner-wide settings shared by every phase of a test run."""

    remote_user: str = DEFAULT_REMOTE_USER
    ssh_port: int = DEFAULT_SSH_PORT
    connect_timeout_seconds: int = DEFAULT_CONNECT_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    handshake_timeout_seconds: int = DEFAULT_HANDSHAKE_TIMEOUT_SECONDS
    stop_grace_seconds: int = DEFAULT_STOP_GRACE_SECONDS
    image_store_command: str = DEFAULT_IMAGE_STORE_COMMAND

    def with_overrides(
        self,
        *,
        remote_user: str | None = None,
        ssh_port: int | None = None,
        connect_timeout_seconds: int | None = None,
    ) -> RunnerSettings:
        """Return a copy with explicitly supplied values replacing the current ones."""
        changes: dict[str, object] = {}
        if remote_user is not None:
            changes["remote_user"] = remote_user
        if ssh_port is not None:
            changes["ssh_port"] = ssh_port
        if connect_timeout_seconds is not None:
            changes["connect_timeout_seconds"] = connect_timeout_seconds
        return replace(self, **changes)
