"""
Groq inference client

Thin async wrapper around the OpenAI-compatible chat completions endpoint.
Every response's rate-limit headers are merged into the tracker, including
error responses, and a 429 marks the model as limited.
"""

import logging
from typing import Dict, List, Optional

import httpx

from devcollab.core.config import settings
from devcollab.services.exceptions import (
    InferenceError,
    InferenceRateLimitedError,
    MalformedResponseError,
)
from devcollab.services.rate_limit_tracker import RateLimitTracker

logger = logging.getLogger(__name__)


class GroqInferenceClient:
    """Chat completions in JSON mode"""

    def __init__(
        self,
        tracker: RateLimitTracker,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.tracker = tracker
        self.api_key = api_key if api_key is not None else settings.GROQ_API_KEY
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url or settings.GROQ_BASE_URL,
            timeout=timeout or settings.INFERENCE_TIMEOUT_SECONDS,
        )

    async def aclose(self):
        await self._client.aclose()

    async def complete_json(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return the completion text; the caller parses the JSON"""
        if not self.api_key:
            raise InferenceError("GROQ_API_KEY is not configured", model=model)

        body = {
            "model": model,
            "messages": messages,
            "temperature": settings.INFERENCE_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or settings.INFERENCE_MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }

        try:
            response = await self._client.post(
                "/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Inference request to {model} failed: {str(e)}")
            raise InferenceError(f"Inference request failed: {str(e)}", model=model) from e

        self.tracker.record(model, response.headers)

        if response.status_code == 429:
            self.tracker.mark_limited(model)
            raise InferenceRateLimitedError(
                f"Model {model} is rate limited", model=model, status_code=429
            )

        if response.status_code >= 400:
            logger.error(f"Inference error from {model}: HTTP {response.status_code} {response.text[:200]}")
            raise InferenceError(
                f"Inference returned HTTP {response.status_code}",
                model=model,
                status_code=response.status_code,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"Unexpected completion envelope from {model}", model=model) from e

        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError(f"Empty completion from {model}", model=model)

        return content.strip()
