"""Structured logging with JSON format and correlation ID support.

Provides:
- JSON-formatted log output for structured logging
- Relay request ID via ContextVar, so every line logged while one
  event is in flight carries the same correlation id
- Centralized logger configuration
"""

import json
import logging
from contextvars import ContextVar
from typing import Any

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
bot_id_var: ContextVar[str] = ContextVar("bot_id", default="")


def set_request_id(request_id: str) -> None:
    """Set the relay request ID for the current context.

    Args:
        request_id: Fresh ``req_`` id minted for the event being handled.
    """
    request_id_var.set(request_id)


def get_request_id() -> str:
    """Get the relay request ID for the current context.

    Returns:
        Current request ID, or empty string if not set.
    """
    return request_id_var.get()


def set_bot_id(bot_id: str | None) -> None:
    """Tag subsequent log lines in this context with a bot id."""
    bot_id_var.set(bot_id or "")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON with timestamp, level, logger name,
    message, and the relay request_id / bot_id when known.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        bot_id = bot_id_var.get()
        if bot_id:
            log_data["bot_id"] = bot_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the relay service.

    Sets up a StreamHandler with StructuredFormatter on the root logger.
    Calling it twice does not stack handlers.

    Args:
        level: Logging level (default: logging.INFO).
    """
    for existing in logging.root.handlers:
        if isinstance(existing.formatter, StructuredFormatter):
            logging.root.setLevel(level)
            return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(level)
