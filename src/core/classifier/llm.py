"""Language-model capability used by the intent classifier.

The classifier only needs ``classify(prompt) -> raw text``. Production
uses litellm; tests inject a fake that returns canned JSON.
"""

import asyncio
import logging
from typing import Protocol, runtime_checkable

import tenacity
from litellm import acompletion
from litellm.exceptions import RateLimitError

from src.config import settings
from src.core.errors import ClassificationFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class LLMClient(Protocol):
    """Capability interface for the classification call."""

    async def classify(self, prompt: str) -> str: ...


class LiteLLMClient:
    """LLMClient backed by ``litellm.acompletion``.

    The whole call, retries included, runs under a hard deadline. Only
    rate-limit responses are retried; every other provider error and the
    deadline itself surface as ``ClassificationFailure``.

    Attributes:
        model: litellm model string.
        timeout: Deadline in seconds for one classification.
        max_retries: Extra attempts after a rate-limit response.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.model = model or settings.llm_model
        self._api_key = api_key or settings.provider_api_key or None
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.max_retries = (
            max_retries if max_retries is not None else settings.llm_max_retries
        )

    async def _complete(self, prompt: str) -> str:
        response = None
        async for attempt in tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(self.max_retries + 1),
            wait=tenacity.wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=tenacity.retry_if_exception_type(RateLimitError),
            reraise=True,
        ):
            with attempt:
                response = await acompletion(
                    model=self.model,
                    messages=[{"role": "system", "content": prompt}],
                    temperature=0.1,
                    api_key=self._api_key,
                )
        content = response.choices[0].message.content if response else None
        if not content:
            raise ClassificationFailure("Empty response from provider")
        return content

    async def classify(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(self._complete(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ClassificationFailure(
                f"Provider call exceeded {self.timeout:.1f}s deadline"
            ) from e
        except ClassificationFailure:
            raise
        except Exception as e:
            raise ClassificationFailure(f"Provider error: {e}") from e
