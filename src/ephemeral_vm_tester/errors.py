"""Failure taxonomy shared by the image store, transport and run execution."""

from __future__ import annotations


class HarnessError(Exception):
    """Raised when the test harness itself fails, as opposed to the test under run."""


class ImageStoreUnavailableError(HarnessError):
    """Raised when the image store executable cannot be found or queried."""


class ImageNotFoundError(HarnessError):
    """Raised when the requested base image is not registered in the image store."""

    def __init__(self, image_name: str, available: tuple[str, ...] = ()) -> None:
        self.image_name = image_name
        self.available = available
        message = f"Base image '{image_name}' not found"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message)


class CloneError(HarnessError):
    """Raised when a test instance cannot be cloned from its base image."""


class BootTimeoutError(HarnessError):
    """Raised when the guest exposes no reachable SSH endpoint before the deadline."""

    def __init__(
        self, instance_name: str, timeout_seconds: float, last_address: str | None
    ) -> None:
        self.instance_name = instance_name
        self.timeout_seconds = timeout_seconds
        self.last_address = last_address
        super().__init__(
            f"Timeout waiting for SSH on '{instance_name}' after {timeout_seconds:g}s "
            f"(last address: {last_address or 'unknown'})"
        )


class TransferError(HarnessError):
    """Raised when staging a local path into the guest fails."""


class RunInterruptedError(HarnessError):
    """Raised when a termination signal arrives while a run is in progress."""

    def __init__(self, signum: int) -> None:
        self.signum = signum
        super().__init__(f"Run interrupted by signal {signum}")


class RemoteExecutionError(Exception):
    """Raised on request when the remote test command exits with a non-zero status."""

    def __init__(self, exit_status: int, instance_name: str) -> None:
        self.exit_status = exit_status
        self.instance_name = instance_name
        super().__init__(f"Tests failed with exit code {exit_status} on '{instance_name}'")
