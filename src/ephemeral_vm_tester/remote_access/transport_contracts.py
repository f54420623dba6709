"""Remote transport entities and protocol."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class GuestEndpoint:
    """Login identity and network address of a running guest."""

    user: str
    address: str

    def __str__(self) -> str:
        return f"{self.user}@{self.address}"


class RemoteTransport(Protocol):
    """Remote-shell and file-copy channel into a guest."""

    def ensure_available(self) -> None: ...

    def check_ready(self, endpoint: GuestEndpoint, *, timeout: float) -> bool: ...

    def copy_to_guest(
        self, endpoint: GuestEndpoint, local_path: Path, remote_name: str
    ) -> None: ...

    def execute(self, endpoint: GuestEndpoint, remote_command: str) -> int: ...
