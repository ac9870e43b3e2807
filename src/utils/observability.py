"""Observability configuration with Pydantic Logfire."""

import logging
from typing import Any

from src.config import settings

logger = logging.getLogger(__name__)


def setup_logfire(app: Any | None = None) -> bool:
    """Configure Logfire for the relay service.

    Only activates if LOGFIRE_TOKEN environment variable is set.
    Instruments outbound httpx calls (metering) and, when an app is
    given, the FastAPI request handlers.

    Args:
        app: Optional FastAPI application to instrument.

    Returns:
        True if Logfire was configured.
    """
    if not settings.logfire_token:
        return False

    try:
        import logfire

        logfire.configure(token=settings.logfire_token, service_name="relay")
        logfire.instrument_httpx()
        if app is not None:
            logfire.instrument_fastapi(app)
        return True
    except Exception as e:
        # Observability is optional
        logger.warning("Failed to configure Logfire: %s", str(e))
        return False
