"""Subprocess helpers shared by the command-line adapters."""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletedCommand:
    """Exit status and captured output of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


CommandRunner = Callable[[Sequence[str], float | None], CompletedCommand]


class CommandTimeoutError(Exception):
    """Raised when an external command does not finish within its timeout."""


def run_captured_command(command: Sequence[str], timeout: float | None) -> CompletedCommand:
    """Run one command, capture its output and return the completed result.

    Raises:
      FileNotFoundError: If the executable does not exist.
      CommandTimeoutError: If the command outlives ``timeout``.
    """
    _LOGGER.debug("running: %s", shlex.join(command))
    try:
        completed = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(
            f"Command timed out after {timeout}s: {shlex.join(command)}"
        ) from exc
    return CompletedCommand(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
