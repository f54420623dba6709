"""Image store entities and protocols."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ImageRecord:
    """One VM image as listed by the image store."""

    name: str
    source: str | None = None
    state: str | None = None


class VMProcess(Protocol):
    """Handle of a VM running in the background."""

    def poll(self) -> int | None: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...

    def wait(self, timeout: float | None = None) -> int: ...


class ImageStore(Protocol):
    """Narrow boundary over the hypervisor and its image registry."""

    def ensure_available(self) -> None: ...

    def list_images(self) -> tuple[ImageRecord, ...]: ...

    def exists(self, name: str) -> bool: ...

    def clone(self, source: str, target: str) -> None: ...

    def start(self, name: str) -> VMProcess: ...

    def resolve_address(self, name: str, *, timeout: float) -> str | None: ...

    def stop(self, name: str) -> None: ...

    def delete(self, name: str) -> None: ...
