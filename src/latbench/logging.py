"""Logging setup for latbench.

Every module logs through its own child of the ``latbench`` logger,
obtained with :func:`get_logger` (``latbench.bench.runner``,
``latbench.workloads.sources``, ...).  Nothing is configured on import:
library callers that never call :func:`setup_logging` get whatever the
root logger does.  The CLI configures logging once per command from its
``-v``/``-q``/``--log-file`` options.

Console lines are short (level and message).  The optional log file
records everything at DEBUG with timestamps and the emitting module,
which is where per-iteration failures and timeouts end up.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "latbench"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return the ``latbench.<name>`` logger."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Map the ``-v``/``-q`` flags to a console level; ``-v`` wins."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def reset_logging() -> None:
    """Detach and close every handler on the ``latbench`` logger."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Install the console handler and, optionally, a DEBUG file handler.

    Calling it again replaces the handlers from the previous call, so
    repeated CLI invocations in one process do not duplicate output.

    Args:
        verbose: Show DEBUG records on the console.
        quiet: Only show warnings and errors on the console.
        log_file: Also write every record to this file; parent
            directories are created.

    Returns:
        The ``latbench`` logger.
    """
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(console_level(verbose=verbose, quiet=quiet))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    logger.debug(
        "Logging to console at %s%s",
        logging.getLevelName(console.level),
        f" and to {log_file}" if log_file is not None else "",
    )
    return logger
