"""Image store adapter backed by the ``tart`` command line."""

from __future__ import annotations

import ipaddress
import logging
import shlex
import shutil
import subprocess
from collections.abc import Callable, Sequence

from ephemeral_vm_tester.command_execution import (
    CommandRunner,
    CommandTimeoutError,
    CompletedCommand,
    run_captured_command,
)
from ephemeral_vm_tester.errors import CloneError, HarnessError, ImageStoreUnavailableError

from .store_contracts import ImageRecord, VMProcess

_LOGGER = logging.getLogger(__name__)

_LIST_TIMEOUT_SECONDS = 60.0
_STOP_TIMEOUT_SECONDS = 60.0

ProcessFactory = Callable[[Sequence[str]], VMProcess]


class ImageStoreCommandError(HarnessError):
    """Raised when a stop or delete request is rejected by the image store."""


def _start_background_process(command: Sequence[str]) -> VMProcess:
    # New session: a Ctrl-C on the caller's terminal must not reach the VM directly.
    return subprocess.Popen(  # pylint: disable=consider-using-with
        list(command),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


class TartImageStore:
    """ImageStore implementation that shells out to ``tart``."""

    def __init__(
        self,
        command: str = "tart",
        *,
        run_command: CommandRunner | None = None,
        start_process: ProcessFactory | None = None,
        which: Callable[[str], str | None] | None = None,
    ) -> None:
        self._command = command
        self._run_command = run_command or run_captured_command
        self._start_process = start_process or _start_background_process
        self._which = which or shutil.which

    def ensure_available(self) -> None:
        if self._which(self._command) is None:
            raise ImageStoreUnavailableError(
                f"{self._command} is not installed. "
                "Install with: brew install cirruslabs/cli/tart"
            )

    def list_images(self) -> tuple[ImageRecord, ...]:
        result = self._invoke(("list",), _LIST_TIMEOUT_SECONDS)
        if not result.succeeded:
            raise ImageStoreUnavailableError(
                f"'{self._command} list' failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        return parse_image_listing(result.stdout)

    def exists(self, name: str) -> bool:
        return any(image.name == name for image in self.list_images())

    def clone(self, source: str, target: str) -> None:
        try:
            result = self._invoke(("clone", source, target), None)
        except ImageStoreUnavailableError as exc:
            raise CloneError(str(exc)) from exc
        if not result.succeeded:
            raise CloneError(
                f"Cloning '{source}' to '{target}' failed with exit code "
                f"{result.returncode}: {result.stderr.strip()}"
            )

    def start(self, name: str) -> VMProcess:
        command = (self._command, "run", name, "--no-graphics")
        _LOGGER.debug("starting: %s", shlex.join(command))
        try:
            return self._start_process(command)
        except OSError as exc:
            raise ImageStoreUnavailableError(f"Failed to start VM '{name}': {exc}") from exc

    def resolve_address(self, name: str, *, timeout: float) -> str | None:
        """Return the guest's IP address, or None while it is not yet known."""
        try:
            result = self._invoke(("ip", name), timeout)
        except CommandTimeoutError:
            return None
        if not result.succeeded:
            return None
        return parse_address(result.stdout)

    def stop(self, name: str) -> None:
        result = self._invoke(("stop", name), _STOP_TIMEOUT_SECONDS)
        if not result.succeeded:
            raise ImageStoreCommandError(
                f"Stopping '{name}' failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}"
            )

    def delete(self, name: str) -> None:
        result = self._invoke(("delete", name), _STOP_TIMEOUT_SECONDS)
        if not result.succeeded:
            raise ImageStoreCommandError(
                f"Deleting '{name}' failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}"
            )

    def _invoke(self, arguments: tuple[str, ...], timeout: float | None) -> CompletedCommand:
        command = (self._command, *arguments)
        try:
            return self._run_command(command, timeout)
        except FileNotFoundError as exc:
            raise ImageStoreUnavailableError(
                f"Image store command not found: {self._command}"
            ) from exc
        except CommandTimeoutError as exc:
            if arguments[0] == "ip":
                raise
            raise ImageStoreCommandError(str(exc)) from exc


def parse_image_listing(output: str) -> tuple[ImageRecord, ...]:
    """Parse the table printed by ``tart list``.

    The header row decides which column holds the name, so both the current
    ``Source Name ... State`` layout and a bare one-name-per-line listing work.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return ()
    header = lines[0].split()
    lowered = [column.lower() for column in header]
    if "name" not in lowered:
        return tuple(ImageRecord(name=line.split()[0]) for line in lines)

    name_index = lowered.index("name")
    source_index = lowered.index("source") if "source" in lowered else None
    has_state = lowered[-1] == "state"
    records = []
    for line in lines[1:]:
        columns = line.split()
        if len(columns) <= name_index:
            continue
        records.append(
            ImageRecord(
                name=columns[name_index],
                source=columns[source_index] if source_index is not None else None,
                state=columns[-1] if has_state and len(columns) == len(header) else None,
            )
        )
    return tuple(records)


def parse_address(output: str) -> str | None:
    """Return the first line of ``tart ip`` output when it is a valid IP address."""
    candidate = output.strip().splitlines()[0].strip() if output.strip() else ""
    if not candidate:
        return None
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return None
    return candidate
