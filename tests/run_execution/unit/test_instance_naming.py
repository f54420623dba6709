"""Tests for test instance naming."""

from __future__ import annotations

import os

from ephemeral_vm_tester.run_execution import instance_naming
from ephemeral_vm_tester.run_execution.instance_naming import (
    generate_instance_name,
    resolve_instance_name,
)


def test_generated_name_contains_base_image_and_process_id() -> None:
    name = generate_instance_name("nixos-nix-base")

    assert name.startswith("nixos-nix-base-test-")
    assert f"-{os.getpid()}-" in name


def test_generated_names_are_unique_within_one_clock_tick(monkeypatch) -> None:
    monkeypatch.setattr(instance_naming.time, "time_ns", lambda: 1_700_000_000_000_000_000)

    names = {generate_instance_name("macos-nix-base") for _ in range(500)}

    assert len(names) == 500


def test_generated_names_differ_between_processes(monkeypatch) -> None:
    monkeypatch.setattr(instance_naming.time, "time_ns", lambda: 42)
    monkeypatch.setattr(instance_naming.os, "getpid", lambda: 100)
    first = generate_instance_name("base")
    monkeypatch.setattr(instance_naming.os, "getpid", lambda: 101)
    second = generate_instance_name("base")

    assert first.split("-")[3] != second.split("-")[3]


def test_requested_name_is_used_verbatim() -> None:
    assert resolve_instance_name("base", "  my-debug-vm ") == "my-debug-vm"
    assert resolve_instance_name("base", "").startswith("base-test-")
    assert resolve_instance_name("base", None).startswith("base-test-")
