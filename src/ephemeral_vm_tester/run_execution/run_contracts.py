"""Run execution entities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ephemeral_vm_tester.configuration.runtime_settings import RunnerSettings
from ephemeral_vm_tester.errors import RemoteExecutionError
from ephemeral_vm_tester.remote_access.transport_contracts import GuestEndpoint


@dataclass(frozen=True)
class TestInvocation:  # pylint: disable=too-many-instance-attributes
    """Input contract for one test run inside an ephemeral instance."""

    __test__ = False

    target: str
    arguments: tuple[str, ...] = ()
    environment: Mapping[str, str] = field(default_factory=dict)
    stage_paths: tuple[Path, ...] = ()
    instance_name: str | None = None
    retain_instance: bool = False
    remote_user: str | None = None
    connect_timeout_seconds: int | None = None

    @property
    def target_path(self) -> Path | None:
        """Local script to upload, or None when the target is an inline command."""
        candidate = Path(self.target)
        try:
            return candidate if candidate.is_file() else None
        except OSError:
            return None


@dataclass(frozen=True)
class RunResult:
    """Outcome of one completed test run."""

    exit_status: int
    instance_name: str
    retained: bool = False

    @property
    def passed(self) -> bool:
        return self.exit_status == 0

    def raise_for_status(self) -> None:
        """Raise RemoteExecutionError when the remote command reported a failure."""
        if not self.passed:
            raise RemoteExecutionError(self.exit_status, self.instance_name)


@dataclass
class RunContext:
    """Invocation-scoped state handed from one phase to the next."""

    base_image: str
    instance_name: str
    invocation: TestInvocation
    settings: RunnerSettings
    endpoint: GuestEndpoint | None = None

    @property
    def remote_user(self) -> str:
        return self.invocation.remote_user or self.settings.remote_user

    @property
    def connect_timeout_seconds(self) -> float:
        if self.invocation.connect_timeout_seconds is not None:
            return self.invocation.connect_timeout_seconds
        return self.settings.connect_timeout_seconds

    def require_endpoint(self) -> GuestEndpoint:
        if self.endpoint is None:
            raise RuntimeError(f"Instance '{self.instance_name}' has no resolved address yet.")
        return self.endpoint
