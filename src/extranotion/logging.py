"""Logging configuration for the extranotion CLI.

Library modules log through the standard library. The CLI routes those
records (and httpx's) into loguru, which writes to stderr so that stdout
stays free for command output.
"""

import logging
import sys

from loguru import logger

_LIBRARY_LOGGERS = ["extranotion", "httpx", "httpcore"]


def configure_logging(log_level: str = "INFO") -> None:
    """Configure loguru for the CLI.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
            "{exception}"
        ),
        colorize=True,
        backtrace=log_level == "DEBUG",
        diagnose=False,
    )

    _intercept_standard_logging(log_level)


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the logged message originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _intercept_standard_logging(log_level: str) -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=log_level, force=True)

    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(log_level)
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False
