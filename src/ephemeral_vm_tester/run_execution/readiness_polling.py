"""Deadline-bounded wait for a guest to accept SSH connections."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ephemeral_vm_tester.errors import BootTimeoutError
from ephemeral_vm_tester.image_store.store_contracts import ImageStore
from ephemeral_vm_tester.remote_access.transport_contracts import GuestEndpoint, RemoteTransport
from ephemeral_vm_tester.run_reporting import log_step, log_success

_LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], None]


def wait_for_ssh(
    image_store: ImageStore,
    transport: RemoteTransport,
    instance_name: str,
    remote_user: str,
    *,
    timeout_seconds: float,
    poll_interval_seconds: float,
    handshake_timeout_seconds: float,
    clock: Clock,
    sleep: Sleep,
) -> GuestEndpoint:
    """Poll until the instance has an address that answers an SSH handshake.

    Every wait is clipped to the time left before the deadline, so the poll
    never overruns ``timeout_seconds`` by more than one interval.

    Returns:
      The endpoint that accepted the handshake.

    Raises:
      BootTimeoutError: If the deadline passes first.
    """
    log_step(
        _LOGGER, "Waiting for SSH to become available (timeout: %ss)...", f"{timeout_seconds:g}"
    )
    started = clock()
    deadline = started + timeout_seconds
    last_address: str | None = None

    def _remaining() -> float:
        remaining = deadline - clock()
        if remaining <= 0:
            raise BootTimeoutError(instance_name, timeout_seconds, last_address)
        return remaining

    while True:
        address = image_store.resolve_address(
            instance_name, timeout=min(handshake_timeout_seconds, _remaining())
        )
        if address:
            last_address = address
            endpoint = GuestEndpoint(user=remote_user, address=address)
            ready = transport.check_ready(
                endpoint, timeout=min(handshake_timeout_seconds, _remaining())
            )
            if ready:
                log_success(
                    _LOGGER, "SSH available at %s (took %ds)", endpoint, int(clock() - started)
                )
                return endpoint
        _LOGGER.debug(
            "Waiting... (%ds elapsed, IP: %s)", int(clock() - started), address or "unknown"
        )
        sleep(min(poll_interval_seconds, _remaining()))
