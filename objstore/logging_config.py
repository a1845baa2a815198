"""Structured logging configuration for objstore."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>\n{exception}"
)


class JSONFormatter:
    """JSON formatter for structured logging.

    loguru expects a format callable to return a template, so the JSON line
    is stashed in ``extra`` and the template only references it.
    """

    def __call__(self, record: dict[str, Any]) -> str:
        extra = dict(record["extra"])
        extra.pop("serialized", None)
        log_data = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            "module": record["module"],
            "function": record["function"],
            "line": record["line"],
        }

        if record["exception"] is not None:
            exc_type, exc_value, _ = record["exception"]
            log_data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "value": str(exc_value) if exc_value else None,
            }

        log_data.update(extra)
        record["extra"]["serialized"] = json.dumps(log_data, ensure_ascii=False, default=str)
        return "{extra[serialized]}\n"


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to use JSON formatting (useful for production).
        log_file: Optional path to log file. If None, logs only to stderr.
    """
    logger.remove()
    logger.configure(extra={"name": "objstore"})

    formatter: Any = JSONFormatter() if json_format else _TEXT_FORMAT

    logger.add(
        sys.stderr,
        format=formatter,
        level=level,
        colorize=not json_format,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=formatter,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )


def get_logger(name: str | None = None) -> Any:
    """Get a logger instance.

    Args:
        name: Optional logger name. If None, returns the default logger.

    Returns:
        Logger instance.
    """
    if name:
        return logger.bind(name=name)
    return logger


__all__ = ["JSONFormatter", "setup_logging", "get_logger"]
