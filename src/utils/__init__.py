"""Utility functions for the relay service."""

from src.utils.logging import (
    configure_structured_logging,
    get_request_id,
    set_bot_id,
    set_request_id,
)
from src.utils.observability import setup_logfire

__all__ = [
    "setup_logfire",
    "set_bot_id",
    "set_request_id",
    "get_request_id",
    "configure_structured_logging",
]
