"""Remote shell and file-copy transport backed by OpenSSH."""

from __future__ import annotations

import logging
import math
import shlex
import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from ephemeral_vm_tester.command_execution import (
    CommandRunner,
    CommandTimeoutError,
    run_captured_command,
)
from ephemeral_vm_tester.errors import HarnessError, TransferError

from .remote_commands import home_path
from .transport_contracts import GuestEndpoint

_LOGGER = logging.getLogger(__name__)

_DEFAULT_CONNECT_TIMEOUT_SECONDS = 5
_SSH_ERROR_STATUS = 255

StreamingRunner = Callable[[Sequence[str]], int]


class TransportUnavailableError(HarnessError):
    """Raised when the ssh or scp executables are missing."""


def _run_streaming_command(command: Sequence[str]) -> int:
    _LOGGER.debug("running: %s", shlex.join(command))
    return subprocess.run(list(command), check=False).returncode


class SSHTransport:
    """Reaches a guest through ``ssh`` and ``scp`` with host-key checking disabled."""

    def __init__(
        self,
        *,
        port: int = 22,
        run_command: CommandRunner | None = None,
        run_streaming: StreamingRunner | None = None,
        which: Callable[[str], str | None] | None = None,
    ) -> None:
        self._port = port
        self._run_command = run_command or run_captured_command
        self._run_streaming = run_streaming or _run_streaming_command
        self._which = which or shutil.which

    def ensure_available(self) -> None:
        missing = [tool for tool in ("ssh", "scp") if self._which(tool) is None]
        if missing:
            raise TransportUnavailableError(f"Required tools not found: {', '.join(missing)}")

    def check_ready(self, endpoint: GuestEndpoint, *, timeout: float) -> bool:
        """Try a no-op remote command; True once the guest accepts SSH logins.

        The whole attempt, not only the TCP connect, is bounded by ``timeout``.
        """
        connect_timeout = max(1, math.ceil(timeout))
        command = (
            "ssh",
            *self._options(connect_timeout),
            "-p",
            str(self._port),
            str(endpoint),
            "exit 0",
        )
        try:
            result = self._run_command(command, timeout)
        except CommandTimeoutError:
            return False
        except FileNotFoundError as exc:
            raise TransportUnavailableError("ssh executable not found") from exc
        return result.succeeded

    def copy_to_guest(self, endpoint: GuestEndpoint, local_path: Path, remote_name: str) -> None:
        """Copy a file or directory recursively to ``~/remote_name`` in the guest."""
        if not local_path.exists():
            raise TransferError(f"Local path not found: {local_path}")
        command = (
            "scp",
            *self._options(),
            "-P",
            str(self._port),
            "-r",
            str(local_path),
            f"{endpoint}:{home_path(remote_name)}",
        )
        try:
            result = self._run_command(command, None)
        except FileNotFoundError as exc:
            raise TransportUnavailableError("scp executable not found") from exc
        if not result.succeeded:
            raise TransferError(
                f"Copying {local_path} to ~/{remote_name} failed with exit code "
                f"{result.returncode}: {result.stderr.strip()}"
            )

    def execute(self, endpoint: GuestEndpoint, remote_command: str) -> int:
        """Run ``remote_command`` in the guest, streaming its output, and return its status."""
        command = (
            "ssh",
            *self._options(),
            "-p",
            str(self._port),
            str(endpoint),
            remote_command,
        )
        try:
            status = self._run_streaming(command)
        except FileNotFoundError as exc:
            raise TransportUnavailableError("ssh executable not found") from exc
        if status == _SSH_ERROR_STATUS:
            # ssh uses 255 for its own failures; a test exiting 255 looks the same.
            _LOGGER.warning(
                "ssh exited with status %s; the connection to %s may have dropped",
                status,
                endpoint,
            )
        return status

    @staticmethod
    def _options(connect_timeout: int = _DEFAULT_CONNECT_TIMEOUT_SECONDS) -> tuple[str, ...]:
        return (
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
            "-o",
            "LogLevel=ERROR",
            "-o",
            f"ConnectTimeout={connect_timeout}",
        )
