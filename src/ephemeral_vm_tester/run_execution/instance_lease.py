"""Ownership of one test instance from clone to guaranteed teardown."""

from __future__ import annotations

import logging
import subprocess
from types import TracebackType

from ephemeral_vm_tester.errors import CloneError
from ephemeral_vm_tester.image_store.store_contracts import ImageStore, VMProcess
from ephemeral_vm_tester.run_reporting import log_step, log_success

from .signal_scopes import signals_ignored

_LOGGER = logging.getLogger(__name__)


class InstanceLease:
    """Context manager that owns a cloned instance and always releases it.

    ``release`` is idempotent: it stops the VM process, then deletes the
    instance unless retention was requested. Neither step raises; a failed
    stop does not skip the delete.
    """

    def __init__(
        self,
        image_store: ImageStore,
        instance_name: str,
        *,
        retain: bool = False,
        stop_grace_seconds: float = 30,
        removal_hint: str | None = None,
    ) -> None:
        self._image_store = image_store
        self._instance_name = instance_name
        self._retain = retain
        self._stop_grace_seconds = stop_grace_seconds
        self._removal_hint = removal_hint
        self._process: VMProcess | None = None
        self._clone_attempted = False
        self._clone_confirmed = False
        self._released = False

    @property
    def instance_name(self) -> str:
        return self._instance_name

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self) -> InstanceLease:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()

    def clone(self, base_image: str) -> None:
        log_step(_LOGGER, "Cloning base image '%s' -> '%s'...", base_image, self._instance_name)
        # Set before the call: an interrupt mid-clone can leave a partial instance.
        self._clone_attempted = True
        try:
            self._image_store.clone(base_image, self._instance_name)
        except CloneError:
            self._clone_attempted = False
            raise
        self._clone_confirmed = True
        log_success(_LOGGER, "VM cloned")

    def start(self) -> None:
        log_step(_LOGGER, "Starting VM '%s'...", self._instance_name)
        self._process = self._image_store.start(self._instance_name)
        _LOGGER.info("VM started with PID %s", getattr(self._process, "pid", "unknown"))

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        if not self._clone_attempted:
            return
        with signals_ignored():
            _LOGGER.info("Cleaning up...")
            self._stop()
            self._destroy()

    def _stop(self) -> None:
        process = self._process
        if process is None and not self._clone_confirmed:
            return
        log_step(_LOGGER, "Stopping VM...")
        if process is not None and process.poll() is None:
            try:
                process.terminate()
                try:
                    process.wait(timeout=self._stop_grace_seconds)
                except subprocess.TimeoutExpired:
                    _LOGGER.warning(
                        "VM did not exit after %ss, killing it", self._stop_grace_seconds
                    )
                    process.kill()
                    process.wait(timeout=self._stop_grace_seconds)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                _LOGGER.warning("Stopping VM process failed: %s", exc)
            else:
                log_success(_LOGGER, "VM stopped")
                return
        try:
            self._image_store.stop(self._instance_name)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            _LOGGER.debug("Image store stop for '%s' failed: %s", self._instance_name, exc)

    def _destroy(self) -> None:
        if self._retain:
            hint = self._removal_hint or f"delete '{self._instance_name}'"
            _LOGGER.warning("Keeping VM '%s' (use '%s' to remove)", self._instance_name, hint)
            return
        log_step(_LOGGER, "Destroying VM '%s'...", self._instance_name)
        try:
            self._image_store.delete(self._instance_name)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            if not self._clone_confirmed:
                _LOGGER.debug(
                    "Interrupted clone '%s' left nothing to delete: %s", self._instance_name, exc
                )
                return
            _LOGGER.error("Deleting VM '%s' failed: %s", self._instance_name, exc)
            return
        log_success(_LOGGER, "VM destroyed")
