"""Unified logger for the whole project."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 10

_FORMATTER = logging.Formatter(
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _normalize_level(raw: str) -> int:
    candidate = str(raw or "INFO").strip().upper()
    return {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
    }.get(candidate, logging.INFO)


def _build_logger() -> logging.Logger:
    configured_logger = logging.getLogger("chatrelay")
    if configured_logger.handlers:
        return configured_logger

    configured_logger.setLevel(logging.INFO)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(_FORMATTER)
    configured_logger.addHandler(stream_handler)
    configured_logger.propagate = False
    return configured_logger


logger = _build_logger()


def configure_logger(level: str, log_file: str = "") -> logging.Logger:
    """Apply level and optional rotating file output from settings.

    Called by the host on startup; safe to call more than once.
    """

    resolved_level = _normalize_level(level)
    logger.setLevel(resolved_level)
    for handler in logger.handlers:
        handler.setLevel(resolved_level)

    if not log_file:
        return logger
    log_path = Path(log_file)
    if any(
        isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == log_path.resolve()
        for handler in logger.handlers
    ):
        return logger
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        rotating_handler = RotatingFileHandler(
            log_path,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        rotating_handler.setLevel(resolved_level)
        rotating_handler.setFormatter(_FORMATTER)
        logger.addHandler(rotating_handler)
    except (OSError, PermissionError):
        # 日志目录不可写时仅使用 stderr
        logger.warning("log file not writable, stderr only path=%s", log_file)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under chatrelay namespace."""

    return logger.getChild(name)
