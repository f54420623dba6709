"""Run reporting exports."""

from .progress_log import (
    PACKAGE_LOGGER_NAME,
    STEP_LEVEL,
    SUCCESS_LEVEL,
    ClickProgressHandler,
    configure_progress_logging,
    log_step,
    log_success,
)

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "STEP_LEVEL",
    "SUCCESS_LEVEL",
    "ClickProgressHandler",
    "configure_progress_logging",
    "log_step",
    "log_success",
]
