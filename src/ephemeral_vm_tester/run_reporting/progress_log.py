"""Phase-oriented progress logging rendered through click."""

from __future__ import annotations

import logging
from typing import Any

import click

PACKAGE_LOGGER_NAME = "ephemeral_vm_tester"

STEP_LEVEL = 22
SUCCESS_LEVEL = 25
logging.addLevelName(STEP_LEVEL, "STEP")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

_LABEL_STYLES: dict[int, tuple[str, str]] = {
    logging.DEBUG: ("DEBUG", "white"),
    logging.INFO: ("INFO", "blue"),
    STEP_LEVEL: ("STEP", "cyan"),
    SUCCESS_LEVEL: ("SUCCESS", "green"),
    logging.WARNING: ("WARN", "yellow"),
    logging.ERROR: ("ERROR", "red"),
    logging.CRITICAL: ("ERROR", "red"),
}


def log_step(logger: logging.Logger, message: str, *args: Any) -> None:
    logger.log(STEP_LEVEL, message, *args)


def log_success(logger: logging.Logger, message: str, *args: Any) -> None:
    logger.log(SUCCESS_LEVEL, message, *args)


class ClickProgressHandler(logging.Handler):
    """Write records to stderr as ``[LABEL] message`` with a coloured label."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            label, colour = _LABEL_STYLES.get(record.levelno, (record.levelname, "white"))
            click.echo(f"{click.style(f'[{label}]', fg=colour)} {self.format(record)}", err=True)
        except Exception:  # pylint: disable=broad-exception-caught
            self.handleError(record)


def configure_progress_logging(*, verbose: bool = False) -> logging.Logger:
    """Attach a single progress handler to the package logger.

    Repeated calls replace the handler, so the CLI may be invoked many times in
    one process (tests, embedding) without duplicating output.
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, ClickProgressHandler):
            logger.removeHandler(handler)
    handler = ClickProgressHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
