"""Logging setup for the teshuffle commands."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logger(
    name: str = "teshuffle",
    log_file: Optional[str] = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the package logger for a command.

    Module loggers (``teshuffle.enrich.shuffle`` etc.) propagate to it.
    Python warnings (e.g. from scipy) are routed to the log as well.

    Args:
        name: Logger name
        log_file: Optional path to a copy of the log
        verbose: DEBUG level, with the module name in each line

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(DEBUG_FORMAT if verbose else LOG_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.captureWarnings(True)
    warnings_logger = logging.getLogger("py.warnings")
    warnings_logger.handlers = list(logger.handlers)

    return logger


def log_options(logger: logging.Logger, options: dict) -> None:
    """Log the options of a run, one per line, unset ones skipped."""
    logger.info("Run options:")
    for key, value in options.items():
        if value is None or value == [] or value is False:
            continue
        if isinstance(value, list):
            value = ",".join(str(v) for v in value)
        logger.info(f"  {key} = {value}")
