"""Unique names for test instances."""

from __future__ import annotations

import itertools
import os
import time

_SEQUENCE = itertools.count()


def generate_instance_name(base_image: str) -> str:
    """Return ``<base>-test-<nanoseconds>-<pid>-<sequence>``.

    The pid separates concurrent processes and the sequence separates calls
    made within one clock tick of the same process.
    """
    return f"{base_image}-test-{time.time_ns()}-{os.getpid()}-{next(_SEQUENCE)}"


def resolve_instance_name(base_image: str, requested: str | None) -> str:
    if requested is not None and requested.strip():
        return requested.strip()
    return generate_instance_name(base_image)
