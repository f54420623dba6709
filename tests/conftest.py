"""Shared in-memory image store, transport and clock used across test packages."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from ephemeral_vm_tester.errors import CloneError, TransferError
from ephemeral_vm_tester.image_store.store_contracts import ImageRecord
from ephemeral_vm_tester.remote_access.transport_contracts import GuestEndpoint


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeProcess:
    pid = 4242

    def __init__(self) -> None:
        self.returncode: int | None = None
        self.terminated = False

    def poll(self) -> int | None:
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15

    def kill(self) -> None:
        self.returncode = -9

    def wait(self, timeout: float | None = None) -> int:
        return self.returncode if self.returncode is not None else 0


class FakeImageStore:
    """Image store that keeps instances in memory and records every call."""

    def __init__(self, clock: FakeClock, images: tuple[str, ...] = ("macos-nix-base",)) -> None:
        self.clock = clock
        self.images: dict[str, ImageRecord] = {
            name: ImageRecord(name=name, source="local", state="stopped") for name in images
        }
        self.events: list[tuple[str, str]] = []
        self.processes: dict[str, FakeProcess] = {}
        self.address: str | None = "192.168.64.10"
        self.address_after_attempts = 0
        self.resolve_cost_seconds = 0.0
        self.resolve_attempts = 0
        self.fail_clone = False
        self.fail_delete = False
        self.on_resolve: Callable[[], None] | None = None

    def ensure_available(self) -> None:
        self.events.append(("ensure_available", ""))

    def list_images(self) -> tuple[ImageRecord, ...]:
        return tuple(self.images.values())

    def exists(self, name: str) -> bool:
        return name in self.images

    def clone(self, source: str, target: str) -> None:
        self.events.append(("clone", target))
        if self.fail_clone:
            raise CloneError(f"Cloning '{source}' to '{target}' failed")
        self.images[target] = ImageRecord(name=target, source="local", state="stopped")

    def start(self, name: str) -> FakeProcess:
        self.events.append(("start", name))
        process = FakeProcess()
        self.processes[name] = process
        return process

    def resolve_address(self, name: str, *, timeout: float) -> str | None:
        self.resolve_attempts += 1
        self.clock.advance(min(self.resolve_cost_seconds, timeout))
        if self.on_resolve is not None:
            self.on_resolve()
        if self.resolve_attempts <= self.address_after_attempts:
            return None
        return self.address

    def stop(self, name: str) -> None:
        self.events.append(("stop", name))

    def delete(self, name: str) -> None:
        self.events.append(("delete", name))
        if self.fail_delete:
            raise RuntimeError(f"delete of {name} rejected")
        self.images.pop(name, None)

    def instance_names(self, base_image: str) -> list[str]:
        return [name for name in self.images if name != base_image]


class FakeTransport:
    """Transport that records copies and remote commands instead of using SSH."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.handshake_cost_seconds = 0.0
        self.handshakes: list[GuestEndpoint] = []
        self.ready_after_attempts = 0
        self.copies: list[tuple[Path, str]] = []
        self.commands: list[str] = []
        self.exit_status = 0
        self.on_execute: Callable[[str], int] | None = None

    def ensure_available(self) -> None:
        return None

    def check_ready(self, endpoint: GuestEndpoint, *, timeout: float) -> bool:
        self.handshakes.append(endpoint)
        if self.clock is not None:
            # A stalled sshd holds the attempt until its timeout fires.
            self.clock.advance(min(self.handshake_cost_seconds, timeout))
        return len(self.handshakes) > self.ready_after_attempts

    def copy_to_guest(self, endpoint: GuestEndpoint, local_path: Path, remote_name: str) -> None:
        if not local_path.exists():
            raise TransferError(f"Local path not found: {local_path}")
        self.copies.append((local_path, remote_name))

    def execute(self, endpoint: GuestEndpoint, remote_command: str) -> int:
        self.commands.append(remote_command)
        if self.on_execute is not None:
            return self.on_execute(remote_command)
        return self.exit_status


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def image_store(fake_clock: FakeClock) -> FakeImageStore:
    return FakeImageStore(fake_clock)


@pytest.fixture
def transport(fake_clock: FakeClock) -> FakeTransport:
    return FakeTransport(fake_clock)
