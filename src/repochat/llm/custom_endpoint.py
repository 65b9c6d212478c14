"""
Custom LLM client for OpenAI-compatible inference endpoints.

Provides a simple wrapper for local/custom inference endpoints that implement
the OpenAI chat completions API format.
"""

import logging
import time
from typing import Optional

import requests

from repochat.errors import InvalidResponseShape, UpstreamUnavailable

logger = logging.getLogger(__name__)


class CustomEndpointLLM:
    """Chat model for OpenAI-compatible endpoints."""

    def __init__(
        self,
        endpoint_url: str,
        timeout: int = 120,
        max_retries: int = 3,  # Retry for serverless cold starts
        retry_delay: float = 2.0,  # Initial retry delay in seconds
    ):
        """
        Initialize custom endpoint client.

        Args:
            endpoint_url: Full URL to the /v1/chat/completions endpoint
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts for 502/503/504 errors
            retry_delay: Initial delay between retries (uses exponential backoff)
        """
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        """
        Call the endpoint with a message list.

        Implements retry logic with exponential backoff for serverless endpoints
        that may return 502/503 errors during cold starts.

        Args:
            messages: Chat messages ({"role", "content"} dicts)
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            The generated response text

        Raises:
            UpstreamUnavailable: If the request fails after all retries
            InvalidResponseShape: If the response has no message content
        """
        payload = {
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        last_exception: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = requests.post(
                    self.endpoint_url, json=payload, timeout=self.timeout
                )
                response.raise_for_status()
                result = response.json()
                break

            except requests.HTTPError as e:
                last_exception = e
                # Retry on 502/503/504 for serverless cold starts
                if e.response.status_code in (502, 503, 504) and attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Endpoint returned {e.response.status_code}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise UpstreamUnavailable(f"Chat endpoint failed: {e}") from e

            except (requests.Timeout, requests.ConnectionError) as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Connection error: {str(e)}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise UpstreamUnavailable(f"Chat endpoint unreachable: {e}") from e
        else:
            raise UpstreamUnavailable(f"All retry attempts failed: {last_exception}")

        try:
            return result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidResponseShape("Chat endpoint returned no message content") from e

    def health_check(self, timeout: int = 30) -> tuple[bool, str]:
        """
        Send a one-token prompt to verify the endpoint is responsive.

        Returns:
            (is_healthy, message)
        """
        test_payload = {
            "messages": [{"role": "user", "content": "test"}],
            "temperature": 0.0,
            "max_tokens": 1,
        }

        try:
            response = requests.post(self.endpoint_url, json=test_payload, timeout=timeout)
            response.raise_for_status()
            result = response.json()
        except requests.Timeout:
            error_msg = f"Endpoint timed out after {timeout}s"
        except requests.ConnectionError as e:
            error_msg = f"Connection failed: {e!s}"
        except requests.HTTPError as e:
            error_msg = f"HTTP {e.response.status_code}: {e.response.reason}"
        except ValueError as e:
            error_msg = f"Endpoint returned invalid JSON: {e!s}"
        else:
            if isinstance(result, dict) and result.get("choices"):
                return True, "Endpoint healthy"
            error_msg = "Endpoint returned invalid response structure"

        logger.warning(f"Endpoint health check failed: {error_msg}")
        return False, error_msg
