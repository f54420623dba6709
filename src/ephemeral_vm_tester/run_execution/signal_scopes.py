"""Signal handling scopes for runs and their cleanup."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ephemeral_vm_tester.errors import RunInterruptedError


def _termination_signals() -> tuple[signal.Signals, ...]:
    names = ("SIGTERM", "SIGHUP")
    return tuple(getattr(signal, name) for name in names if hasattr(signal, name))


def _in_main_thread() -> bool:
    return threading.current_thread() is threading.main_thread()


@contextmanager
def termination_signals_raised() -> Iterator[None]:
    """Turn SIGTERM/SIGHUP into RunInterruptedError for the duration of the block.

    Handlers can only be installed from the main thread; elsewhere this is a no-op.
    """
    if not _in_main_thread():
        yield
        return

    def _raise_interrupted(signum, _frame) -> None:
        raise RunInterruptedError(signum)

    previous = {sig: signal.signal(sig, _raise_interrupted) for sig in _termination_signals()}
    try:
        yield
    finally:
        _restore(previous)


@contextmanager
def signals_ignored() -> Iterator[None]:
    """Ignore SIGINT and termination signals so a cleanup block runs to completion."""
    if not _in_main_thread():
        yield
        return

    signals = (signal.SIGINT, *_termination_signals())
    previous = {sig: signal.signal(sig, signal.SIG_IGN) for sig in signals}
    try:
        yield
    finally:
        _restore(previous)


def _restore(previous) -> None:
    for sig, handler in previous.items():
        if handler is not None:
            signal.signal(sig, handler)
