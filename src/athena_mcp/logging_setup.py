"""Explicit logging configuration for both entry points.

The tool server speaks JSON-RPC over stdout, so nothing may ever be written
there. setup_logging() attaches a stderr handler plus size-bounded rotating
files to the ``athena_mcp`` package logger. It touches neither the root
logger nor any global print/console function.

Run once at startup; the returned AuditLogger is handed to every component
that records audit events.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

from athena_mcp.audit import AuditLogger, RedactionFilter
from athena_mcp.config import Settings

PACKAGE_LOGGER = "athena_mcp"
AUDIT_LOGGER = "athena_mcp.audit"

# The audit trail keeps this many times more rotated files than the others
AUDIT_RETENTION_FACTOR = 10

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _rotating(path: Path, max_bytes: int, backup_count: int, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(RedactionFilter())
    return handler


def setup_logging(settings: Settings, stream: TextIO | None = None) -> AuditLogger:
    """Configure the package loggers and return the audit logger.

    Args:
        settings: Validated settings (level, log directory, rotation knobs).
        stream: Console stream; defaults to sys.stderr.

    Returns:
        The AuditLogger bound to the ``athena_mcp.audit`` logger.
    """
    level = _LEVELS[settings.log_level]
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    audit_logger = logging.getLogger(AUDIT_LOGGER)

    # Idempotent: a second call replaces the handlers instead of stacking them
    for logger in (package_logger, audit_logger):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    package_logger.setLevel(level)
    package_logger.propagate = False

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(logging.Formatter(_FORMAT))
    console.addFilter(RedactionFilter())
    package_logger.addHandler(console)

    # Audit entries are INFO; they must be kept regardless of LOG_LEVEL
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False

    log_dir = Path(settings.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        package_logger.warning(
            "Cannot create log directory %s (%s); logging to stderr only", log_dir, exc
        )
        audit_logger.addHandler(console)
        return AuditLogger(audit_logger)

    max_bytes = settings.log_max_bytes
    backups = settings.log_backup_count
    package_logger.addHandler(_rotating(log_dir / "combined.log", max_bytes, backups, level))
    package_logger.addHandler(
        _rotating(log_dir / "error.log", max_bytes, backups, logging.ERROR)
    )
    audit_logger.addHandler(
        _rotating(
            log_dir / "audit.log",
            max_bytes,
            backups * AUDIT_RETENTION_FACTOR,
            logging.INFO,
        )
    )

    package_logger.debug("Logging configured (level=%s, dir=%s)", settings.log_level, log_dir)
    return AuditLogger(audit_logger)
