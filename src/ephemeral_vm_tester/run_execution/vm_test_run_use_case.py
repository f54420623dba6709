"""Ephemeral VM test run use-case service."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from pathlib import Path

from ephemeral_vm_tester.configuration.runtime_settings import RunnerSettings
from ephemeral_vm_tester.errors import ImageNotFoundError
from ephemeral_vm_tester.image_store.store_contracts import ImageStore
from ephemeral_vm_tester.remote_access.remote_commands import (
    build_inline_command,
    build_script_command,
)
from ephemeral_vm_tester.remote_access.transport_contracts import GuestEndpoint, RemoteTransport
from ephemeral_vm_tester.run_reporting import log_step, log_success

from .instance_lease import InstanceLease
from .instance_naming import resolve_instance_name
from .readiness_polling import Clock, Sleep, wait_for_ssh
from .run_contracts import RunContext, RunResult, TestInvocation
from .signal_scopes import termination_signals_raised

_LOGGER = logging.getLogger(__name__)


def run_vm_test(
    base_image: str,
    invocation: TestInvocation,
    *,
    image_store: ImageStore,
    transport: RemoteTransport,
    settings: RunnerSettings | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = time.sleep,
) -> RunResult:
    """Run one test inside a fresh clone of ``base_image`` and tear the clone down.

    Phases run strictly in order: prerequisites, clone, start, readiness,
    staging, execution. Any failure skips the remaining phases; the instance is
    stopped and (unless retained) deleted on every exit path.

    Raises:
      ImageNotFoundError: The base image is not registered; nothing is created.
      CloneError: The instance could not be created.
      BootTimeoutError: No SSH endpoint became reachable in time.
      TransferError: Staging a path or the test script failed.
      RunInterruptedError: A termination signal arrived during the run.
    """
    resolved_settings = settings or RunnerSettings()
    _check_prerequisites(base_image, image_store, transport)
    context = RunContext(
        base_image=base_image,
        instance_name=resolve_instance_name(base_image, invocation.instance_name),
        invocation=invocation,
        settings=resolved_settings,
    )
    _LOGGER.info("Test VM name: %s", context.instance_name)

    with termination_signals_raised():
        with InstanceLease(
            image_store,
            context.instance_name,
            retain=invocation.retain_instance,
            stop_grace_seconds=resolved_settings.stop_grace_seconds,
            removal_hint=f"{resolved_settings.image_store_command} delete {context.instance_name}",
        ) as lease:
            lease.clone(base_image)
            lease.start()
            context.endpoint = wait_for_ssh(
                image_store,
                transport,
                context.instance_name,
                context.remote_user,
                timeout_seconds=context.connect_timeout_seconds,
                poll_interval_seconds=resolved_settings.poll_interval_seconds,
                handshake_timeout_seconds=resolved_settings.handshake_timeout_seconds,
                clock=clock,
                sleep=sleep,
            )
            stage_paths(transport, context.require_endpoint(), invocation.stage_paths)
            exit_status = execute_target(transport, context)

    return RunResult(
        exit_status=exit_status,
        instance_name=context.instance_name,
        retained=invocation.retain_instance,
    )


def stage_paths(
    transport: RemoteTransport, endpoint: GuestEndpoint, paths: Sequence[Path]
) -> None:
    """Copy each path, in order, to the guest home directory under its base name."""
    if not paths:
        return
    log_step(_LOGGER, "Copying files to VM...")
    for path in paths:
        remote_name = _remote_name(path)
        _LOGGER.info("Copying %s -> ~/%s", path, remote_name)
        transport.copy_to_guest(endpoint, path, remote_name)
    log_success(_LOGGER, "Files copied")


def execute_target(transport: RemoteTransport, context: RunContext) -> int:
    """Run the invocation's script or inline command and return its exit status."""
    endpoint = context.require_endpoint()
    invocation = context.invocation
    log_step(_LOGGER, "Running tests...")
    script = invocation.target_path
    if script is not None:
        transport.copy_to_guest(endpoint, script, script.name)
        remote_command = build_script_command(
            script.name, invocation.arguments, invocation.environment
        )
    else:
        remote_command = build_inline_command(
            invocation.target, invocation.arguments, invocation.environment
        )
    _LOGGER.debug("remote command: %s", remote_command)
    exit_status = transport.execute(endpoint, remote_command)
    if exit_status == 0:
        log_success(_LOGGER, "Tests passed")
    else:
        _LOGGER.error("Tests failed with exit code %s", exit_status)
    return exit_status


def _check_prerequisites(
    base_image: str, image_store: ImageStore, transport: RemoteTransport
) -> None:
    log_step(_LOGGER, "Checking prerequisites...")
    if not base_image.strip():
        raise ImageNotFoundError(base_image)
    image_store.ensure_available()
    transport.ensure_available()
    available = tuple(image.name for image in image_store.list_images())
    if base_image not in available:
        raise ImageNotFoundError(base_image, available)
    log_success(_LOGGER, "Prerequisites satisfied")


def _remote_name(path: Path) -> str:
    # Path(".").name is empty; use the resolved directory name instead.
    return path.name or path.resolve().name
