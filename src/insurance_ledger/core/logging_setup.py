"""Logging configuration using loguru, colored console or structured JSON."""

from __future__ import annotations

import logging
import sys

from loguru import logger

from insurance_ledger.core.config import LoggingConfig


class _InterceptHandler(logging.Handler):
    """Route standard-library log records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno  # type: ignore[assignment]

        # Walk past logging internals so loguru reports the real caller.
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


_PRETTY_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def setup_logging(cfg: LoggingConfig) -> None:
    """Configure loguru sinks from the ``logging`` config section."""
    logger.remove()

    if cfg.format == "structured":
        logger.add(sys.stderr, level=cfg.level, serialize=True, colorize=False)
    else:
        logger.add(sys.stderr, level=cfg.level, format=_PRETTY_FORMAT, colorize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    logger.debug("Logging configured (level={}, format={})", cfg.level, cfg.format)
