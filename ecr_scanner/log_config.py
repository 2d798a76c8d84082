"""Logging setup: stdlib loggers rendered as json, logfmt or text via structlog."""

import logging
import sys

import structlog

from ecr_scanner.consts import LOG_FORMATS

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def parse_level(name: str) -> int | None:
    """Map a level name to a logging level, or None if unknown."""
    return LOG_LEVELS.get(name.strip().lower())


def build_formatter(log_format: str) -> logging.Formatter:
    """Build a formatter for the given format name.

    Unknown formats fall back to plain text.
    """
    log_format = log_format.strip().lower()

    processors: list = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    elif log_format == "logfmt":
        processors += [structlog.processors.format_exc_info, structlog.processors.LogfmtRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            # Reserved keys below overwrite same-named extras
            structlog.stdlib.ExtraAdder(),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
        processors=processors,
    )


def configure_logging(log_format: str = "logfmt", log_level: str = "info") -> None:
    """Install a single stderr handler on the root logger.

    Call before any log message is emitted. An unknown level logs a warning
    and falls back to INFO.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(build_formatter(log_format))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)

    level = parse_level(log_level)
    root.setLevel(level if level is not None else logging.INFO)

    if level is None:
        logger.warning("unknown log level, defaulting to INFO level", extra={"log_level": log_level})
    if log_format.strip().lower() not in LOG_FORMATS:
        logger.warning("unknown log format, defaulting to text", extra={"log_format": log_format})

    logger.debug("logging initialized")
