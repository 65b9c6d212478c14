"""
Cloudflare Workers AI client.

Runs hosted models through the REST endpoint
``{base}/accounts/{account_id}/ai/run/{model}`` and unwraps the
``{"result": ..., "success": true}`` envelope. Both embedding and chat
models go through the same runner; response shapes differ per model.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import httpx

from repochat.config import settings
from repochat.errors import InvalidResponseShape, UpstreamUnavailable

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class WorkersAIClient:
    """
    Model runner for Workers AI with retry on rate limits and server errors.

    Example:
        >>> runner = WorkersAIClient()
        >>> runner.run("@cf/baai/bge-base-en-v1.5", {"text": ["hello"]})
        {'shape': [1, 768], 'data': [[...]]}
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 3,
        initial_retry_delay: float = 1.0,
    ) -> None:
        """
        Initialize the runner.

        Args:
            account_id: Cloudflare account ID (default from settings)
            api_token: Workers AI API token (default from settings)
            base_url: Cloudflare REST API root (default from settings)
            timeout: Request timeout in seconds
            max_retries: Attempts for 429/5xx responses
            initial_retry_delay: First backoff delay in seconds (doubles per retry)
        """
        self.account_id = account_id or settings.cloudflare_account_id
        self.api_token = api_token or settings.cloudflare_api_token_value
        self.base_url = (base_url or settings.workers_ai_base_url).rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay

    def url_for(self, model: str) -> str:
        """REST URL that runs `model`."""
        return f"{self.base_url}/accounts/{self.account_id}/ai/run/{model}"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    def run(self, model: str, inputs: dict[str, Any]) -> Any:
        """
        Run a model synchronously.

        Args:
            model: Workers AI model ID (e.g. "@cf/meta/llama-3.1-8b-instruct")
            inputs: Model-specific input payload

        Returns:
            The unwrapped `result` payload

        Raises:
            UpstreamUnavailable: If the call fails after retries
        """
        url = self.url_for(model)
        retry_delay = self.initial_retry_delay

        with httpx.Client(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = client.post(url, json=inputs, headers=self.headers)
                except httpx.HTTPError as e:
                    raise UpstreamUnavailable(f"Workers AI request to {model} failed: {e}") from e

                if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries - 1:
                    logger.warning(
                        f"Workers AI returned {response.status_code} for {model}, "
                        f"retrying in {retry_delay:.1f}s (attempt {attempt + 1}/{self.max_retries})"
                    )
                    time.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                    continue

                return _unwrap(model, response)

        raise UpstreamUnavailable(f"Workers AI request to {model} failed after retries")

    async def arun(self, model: str, inputs: dict[str, Any]) -> Any:
        """Async version of run()."""
        url = self.url_for(model)
        retry_delay = self.initial_retry_delay

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.post(url, json=inputs, headers=self.headers)
                except httpx.HTTPError as e:
                    raise UpstreamUnavailable(f"Workers AI request to {model} failed: {e}") from e

                if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries - 1:
                    logger.warning(
                        f"Workers AI returned {response.status_code} for {model}, "
                        f"retrying in {retry_delay:.1f}s (attempt {attempt + 1}/{self.max_retries})"
                    )
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2
                    continue

                return _unwrap(model, response)

        raise UpstreamUnavailable(f"Workers AI request to {model} failed after retries")


def _unwrap(model: str, response: httpx.Response) -> Any:
    """Check the HTTP status and strip the Cloudflare response envelope."""
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise UpstreamUnavailable(
            f"Workers AI returned {e.response.status_code} for {model}"
        ) from e

    payload = response.json()
    if isinstance(payload, dict) and "result" in payload:
        if payload.get("success") is False:
            raise UpstreamUnavailable(f"Workers AI reported failure for {model}: {payload.get('errors')}")
        return payload["result"]
    return payload


class WorkersAIChatModel:
    """Chat model backed by a Workers AI text-generation model."""

    def __init__(self, runner: Optional[WorkersAIClient] = None, model: Optional[str] = None) -> None:
        self.runner = runner or WorkersAIClient()
        self.model = model or settings.llm_model

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        """
        Generate a reply for a message list.

        Raises:
            UpstreamUnavailable: If the call fails
            InvalidResponseShape: If the result carries no `response` text
        """
        result = self.runner.run(
            self.model,
            {"messages": messages, "max_tokens": max_tokens, "temperature": temperature},
        )
        if isinstance(result, dict) and isinstance(result.get("response"), str):
            return result["response"]
        raise InvalidResponseShape(f"Chat model {self.model} returned no response text")
