"""
Structured JSON Logger for LinguaPlayer.
Every module logs through get_logger() and attaches structured fields via
extra={"data": {...}}.
"""

import logging
import json
import uuid
import os
from typing import Any, Dict, Optional
from pathlib import Path


SERVICE_NAME = "linguaplayer"


def _build_record(formatter: logging.Formatter, record: logging.LogRecord) -> dict:
    log_record = {
        "timestamp": formatter.formatTime(record, formatter.datefmt),
        "level": record.levelname,
        "service": record.name,
        "request_id": getattr(record, "request_id", "N/A"),
        "message": record.getMessage(),
    }
    if hasattr(record, "data"):
        log_record["data"] = record.data
    if record.exc_info:
        log_record["exception"] = formatter.formatException(record.exc_info)
    return log_record


class JsonFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per line.

    Format:
    {
      "timestamp": "2026-10-17 10:30:00,000",
      "level": "INFO",
      "service": "linguaplayer.store",
      "request_id": "req_abc123",
      "message": "Document loaded",
      "data": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(_build_record(self, record), ensure_ascii=False, default=str)


class JsonColoredFormatter(logging.Formatter):
    """JSON formatter with ANSI color codes for console output."""

    COLORS = {
        "DEBUG": "\033[0;35m",  # Magenta
        "INFO": "\033[0;36m",  # Cyan
        "WARNING": "\033[0;33m",  # Yellow
        "ERROR": "\033[0;31m",  # Red
        "CRITICAL": "\033[1;31m",  # Bold Red
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        json_str = json.dumps(
            _build_record(self, record), ensure_ascii=False, default=str
        )
        return f"{color}{json_str}{self.RESET}"


def generate_request_id() -> str:
    """Generate a unique request ID for tracking one load or edit."""
    return f"req_{uuid.uuid4().hex[:8]}"


def get_logger(
    name: str,
    log_file: Optional[str] = None,
    log_level: Optional[str] = None,
    colored: bool = True,
) -> logging.Logger:
    """
    Get or create a configured logger.

    Args:
        name: Logger name (e.g., 'store', 'navigation', 'waveform')
        log_file: Optional path to log file (creates file handler if provided)
        log_level: Log level (DEBUG, INFO, WARNING, ERROR); LOG_LEVEL env otherwise
        colored: Enable colored console output (default: True)

    Returns:
        Configured logger instance
    """
    _configure_parent_logger(colored)
    logger = logging.getLogger(f"{SERVICE_NAME}.{name}")

    if log_level is not None or logger.level == logging.NOTSET:
        if log_level is None:
            log_level = os.getenv("LOG_LEVEL", "INFO")
        logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Records reach the console through the "linguaplayer" parent (and root,
    # so pytest's caplog can see them); child loggers carry no handlers.
    logger.propagate = True

    if log_file:
        attach_file_handler(log_file, log_level)

    return logger


def _configure_parent_logger(colored: bool = True) -> logging.Logger:
    """Attach the single console handler to the "linguaplayer" parent once."""
    parent = logging.getLogger(SERVICE_NAME)
    if any(type(h) is logging.StreamHandler for h in parent.handlers):
        return parent

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JsonColoredFormatter() if colored else JsonFormatter())
    parent.addHandler(console_handler)
    return parent


def attach_file_handler(log_file: str, log_level: Optional[str] = None) -> None:
    """Route every LinguaPlayer logger into a JSON log file as well."""
    parent = logging.getLogger(SERVICE_NAME)
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    for handler in parent.handlers:
        if isinstance(handler, logging.FileHandler) and Path(
            handler.baseFilename
        ) == Path(os.path.abspath(log_file)):
            return

    level = getattr(logging, (log_level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(JsonFormatter())
    file_handler.setLevel(level)
    parent.addHandler(file_handler)


def log_with_request_id(
    logger: logging.Logger,
    message: str,
    level: int = logging.INFO,
    request_id: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Log a message with a request ID and structured data.

    Returns:
        The request ID used (generated if None), for propagation.
    """
    if request_id is None:
        request_id = generate_request_id()

    extra: Dict[str, Any] = {"request_id": request_id}
    if data is not None:
        extra["data"] = data

    logger.log(level, message, extra=extra)
    return request_id
