"""Fire-and-forget usage reporting to the metering service.

One unit is reported per event that went through classification. The
report runs after the response is sent, with tenacity retries; a final
failure is logged and dropped.
"""

import logging
from typing import Any

import httpx
import tenacity

logger = logging.getLogger(__name__)


@tenacity.retry(
    stop=tenacity.stop_after_attempt(3),
    wait=tenacity.wait_exponential(multiplier=1, min=1, max=10),
    retry=tenacity.retry_if_exception_type(
        (httpx.TimeoutException, httpx.ConnectError, httpx.HTTPStatusError)
    ),
    retry_error_callback=lambda _: False,  # Don't raise on final failure
    reraise=False,
)
async def post_usage(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> bool:
    """POST one usage record with retry logic.

    Args:
        url: Metering endpoint.
        payload: JSON payload to send.
        headers: Optional headers (e.g. the metering API key).

    Returns:
        True if the record was accepted, False after the final failed attempt.
    """
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.post(url, json=payload, headers=request_headers)
        response.raise_for_status()
        return True


class UsageReporter:
    """Reports billable relay events to the metering collaborator.

    With no URL configured, reports are skipped and logged at debug level.

    Attributes:
        url: Metering endpoint.
        api_key: Sent as a bearer token when set.
    """

    def __init__(self, url: str = "", api_key: str = "") -> None:
        self.url = url
        self.api_key = api_key

    async def report(
        self,
        tenant_id: str,
        bot_id: str | None,
        usage_key: str,
        decision_id: str,
        intent: str,
    ) -> bool:
        if not self.url:
            logger.debug("No metering URL configured, skipping usage for %s", usage_key)
            return False

        payload = {
            "tenantId": tenant_id,
            "botId": bot_id,
            "units": 1,
            "idempotencyKey": usage_key,
            "decisionId": decision_id,
            "intent": intent,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None

        try:
            sent = await post_usage(self.url, payload, headers=headers)
        except Exception as e:
            logger.warning("Usage report for %s failed: %s", usage_key, e)
            return False

        if sent:
            logger.info("Reported usage for decision %s", decision_id)
        else:
            logger.warning("Usage report for %s failed after retries", usage_key)
        return bool(sent)
