"""Loguru helpers for the worker's stderr and file logging."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_SINK_IDS: dict[str, int] = {}

STDERR_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}"


def log_dir() -> Path:
    return Path.home() / ".instabridge" / "logs"


def configure_stderr_logging(level: str = "INFO") -> None:
    """Route all log output to stderr; stdout carries protocol frames only."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=STDERR_FORMAT, backtrace=False, diagnose=False)


def ensure_rotating_log_file(name: str, level: str = "INFO", directory: Path | None = None) -> Path:
    """Ensure a rotating log sink for the given command name."""
    target_dir = directory or log_dir()
    log_path = target_dir / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    target_dir.mkdir(parents=True, exist_ok=True)
    sink_id = logger.add(
        str(log_path),
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[name] = sink_id
    return log_path
