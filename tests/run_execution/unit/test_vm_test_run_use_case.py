"""Tests for the ephemeral VM test run use-case service."""

from __future__ import annotations

from pathlib import Path

import pytest
from ephemeral_vm_tester.configuration.runtime_settings import RunnerSettings
from ephemeral_vm_tester.errors import (
    BootTimeoutError,
    CloneError,
    ImageNotFoundError,
    TransferError,
)
from ephemeral_vm_tester.run_execution.run_contracts import TestInvocation
from ephemeral_vm_tester.run_execution.vm_test_run_use_case import run_vm_test

BASE_IMAGE = "macos-nix-base"


def _run(image_store, transport, fake_clock, invocation: TestInvocation, **settings_overrides):
    return run_vm_test(
        BASE_IMAGE,
        invocation,
        image_store=image_store,
        transport=transport,
        settings=RunnerSettings(**settings_overrides),
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )


def test_successful_run_creates_one_instance_and_removes_it(
    image_store, transport, fake_clock
) -> None:
    result = _run(image_store, transport, fake_clock, TestInvocation(target="nix flake check"))

    clones = [name for event, name in image_store.events if event == "clone"]
    assert result.exit_status == 0
    assert result.passed is True
    assert clones == [result.instance_name]
    assert image_store.instance_names(BASE_IMAGE) == []
    assert image_store.processes[result.instance_name].terminated is True


def test_phases_run_in_order_and_cleanup_stops_before_delete(
    image_store, transport, fake_clock
) -> None:
    result = _run(image_store, transport, fake_clock, TestInvocation(target="true"))

    lifecycle = [event for event, _ in image_store.events if event != "ensure_available"]
    assert lifecycle == ["clone", "start", "delete"]
    assert transport.commands == ["true"]
    assert result.retained is False


def test_missing_base_image_fails_before_any_instance_is_created(
    image_store, transport, fake_clock
) -> None:
    before = set(image_store.images)

    with pytest.raises(ImageNotFoundError) as excinfo:
        run_vm_test(
            "does-not-exist",
            TestInvocation(target="true"),
            image_store=image_store,
            transport=transport,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    assert excinfo.value.available == (BASE_IMAGE,)
    assert set(image_store.images) == before
    assert not any(event == "clone" for event, _ in image_store.events)


def test_empty_base_image_name_is_rejected(image_store, transport, fake_clock) -> None:
    with pytest.raises(ImageNotFoundError):
        run_vm_test(
            "  ",
            TestInvocation(target="true"),
            image_store=image_store,
            transport=transport,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )


def test_clone_failure_needs_no_cleanup(image_store, transport, fake_clock) -> None:
    image_store.fail_clone = True

    with pytest.raises(CloneError):
        _run(image_store, transport, fake_clock, TestInvocation(target="true"))

    events = [event for event, _ in image_store.events]
    assert "start" not in events
    assert "delete" not in events


def test_boot_timeout_still_removes_instance(image_store, transport, fake_clock) -> None:
    image_store.address = None

    with pytest.raises(BootTimeoutError):
        _run(
            image_store,
            transport,
            fake_clock,
            TestInvocation(target="true", connect_timeout_seconds=10),
        )

    assert image_store.instance_names(BASE_IMAGE) == []
    assert transport.commands == []


def test_failing_command_is_reported_not_raised(image_store, transport, fake_clock) -> None:
    transport.exit_status = 3

    result = _run(image_store, transport, fake_clock, TestInvocation(target="exit 3"))

    assert result.exit_status == 3
    assert result.passed is False
    assert image_store.instance_names(BASE_IMAGE) == []


def test_retained_instance_is_stopped_but_not_deleted(image_store, transport, fake_clock) -> None:
    transport.exit_status = 1

    result = _run(
        image_store,
        transport,
        fake_clock,
        TestInvocation(target="false", instance_name="debug-vm", retain_instance=True),
    )

    assert result.exit_status == 1
    assert result.retained is True
    assert image_store.instance_names(BASE_IMAGE) == ["debug-vm"]
    assert image_store.processes["debug-vm"].terminated is True


def test_staging_copies_paths_in_order_under_their_base_names(
    image_store, transport, fake_clock, tmp_path: Path
) -> None:
    project = tmp_path / "nix-modules"
    project.mkdir()
    notes = tmp_path / "notes.txt"
    notes.write_text("hello", encoding="utf-8")

    _run(
        image_store,
        transport,
        fake_clock,
        TestInvocation(target="ls", stage_paths=(project, notes)),
    )

    assert transport.copies == [(project, "nix-modules"), (notes, "notes.txt")]


def test_staging_failure_stops_remaining_copies_and_cleans_up(
    image_store, transport, fake_clock, tmp_path: Path
) -> None:
    first = tmp_path / "first"
    first.mkdir()
    missing = tmp_path / "missing"
    third = tmp_path / "third.txt"
    third.write_text("x", encoding="utf-8")

    with pytest.raises(TransferError):
        _run(
            image_store,
            transport,
            fake_clock,
            TestInvocation(target="true", stage_paths=(first, missing, third)),
        )

    assert transport.copies == [(first, "first")]
    assert transport.commands == []
    assert image_store.instance_names(BASE_IMAGE) == []


def test_local_script_target_is_uploaded_and_executed_with_env_and_args(
    image_store, transport, fake_clock, tmp_path: Path
) -> None:
    script = tmp_path / "darwin-test.sh"
    script.write_text("#!/usr/bin/env bash\nexit 0\n", encoding="utf-8")

    _run(
        image_store,
        transport,
        fake_clock,
        TestInvocation(
            target=str(script),
            arguments=("--fast", "two words"),
            environment={"NIX_CONFIG": "experimental-features = nix-command flakes"},
        ),
    )

    assert transport.copies == [(script, "darwin-test.sh")]
    assert transport.commands == [
        "export NIX_CONFIG='experimental-features = nix-command flakes'; "
        "chmod +x ~/darwin-test.sh && ~/darwin-test.sh --fast 'two words'"
    ]


def test_inline_command_target_gets_env_prefix_and_args(
    image_store, transport, fake_clock
) -> None:
    _run(
        image_store,
        transport,
        fake_clock,
        TestInvocation(
            target="cd nix-modules && nix flake check",
            arguments=("--no-build",),
            environment={"CI": "1"},
        ),
    )

    assert transport.commands == ["export CI=1; cd nix-modules && nix flake check --no-build"]


def test_invocation_remote_user_overrides_settings(image_store, transport, fake_clock) -> None:
    _run(
        image_store,
        transport,
        fake_clock,
        TestInvocation(target="true", remote_user="nixos"),
        remote_user="admin",
    )

    assert transport.handshakes[-1].user == "nixos"
    assert transport.handshakes[-1].address == "192.168.64.10"


def test_keyboard_interrupt_during_execution_still_cleans_up(
    image_store, transport, fake_clock
) -> None:
    def _interrupt(_command: str) -> int:
        raise KeyboardInterrupt

    transport.on_execute = _interrupt

    with pytest.raises(KeyboardInterrupt):
        _run(image_store, transport, fake_clock, TestInvocation(target="sleep 600"))

    assert image_store.instance_names(BASE_IMAGE) == []


def test_delete_failure_does_not_override_the_verdict(image_store, transport, fake_clock) -> None:
    image_store.fail_delete = True
    transport.exit_status = 2

    result = _run(image_store, transport, fake_clock, TestInvocation(target="exit 2"))

    assert result.exit_status == 2
