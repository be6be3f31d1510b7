"""Shared utility functions for the Receipt OCR service."""

import logging
from datetime import UTC, datetime
from pathlib import Path

import colorlog

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Get a logger whose top-level project logger has a colorized console handler."""
    project_logger = logging.getLogger(name.split(".")[0])
    if not project_logger.handlers:
        project_logger.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        formatter = colorlog.ColoredFormatter(
            "%(log_color)s" + LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
        handler.setFormatter(formatter)
        project_logger.addHandler(handler)
        project_logger.propagate = False
    return logging.getLogger(name)


def ensure_dir(path: str | Path) -> None:
    """Ensure a directory exists (like mkdir -p)."""
    Path(path).mkdir(parents=True, exist_ok=True)


def utcnow() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_or_none(value: datetime | None) -> str | None:
    """Render a datetime as an ISO8601 UTC string, passing None through."""
    if value is None:
        return None
    return as_utc(value).isoformat()
