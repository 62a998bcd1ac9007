"""
Logging Configuration
loguru sinks for the claims ledger, with uvicorn's stdlib logging routed
through loguru so the server and the ledger share one output.
Source: https://loguru.readthedocs.io/en/stable/overview.html#entirely-compatible-with-standard-logging
"""

import inspect
import logging
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# stdlib loggers whose records are forwarded to loguru
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class StdlibInterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records to loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _forward_stdlib_logging(level: str) -> None:
    handler = StdlibInterceptHandler()
    for name in FORWARDED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [handler]
        stdlib_logger.setLevel(level)
        stdlib_logger.propagate = False


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional rotating log file
        json_logs: Serialize records as JSON (production)
    """
    level = level.upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stderr, format="{message}", level=level, serialize=True)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="50 MB",
            retention="30 days",
            compression="zip",
            format=FILE_FORMAT,
            level=level,
            serialize=json_logs,
        )

    _forward_stdlib_logging(level)
    logger.info(f"Logging configured: level={level}, json_logs={json_logs}, file={log_file}")


def get_logger(name: str = __name__):  # type: ignore[no-untyped-def]
    """
    Logger bound to a module name.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Claim created")
    """
    return logger.bind(name=name)
