"""OpenRouter chat completion client with retries."""

import hashlib
import json
import logging
from typing import Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from coachflow.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503)


def is_retryable(error: BaseException) -> bool:
    """Network errors and overloaded-provider responses are retried."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(error, httpx.TransportError)


class LLMClient:
    """Client for an OpenAI-compatible chat completions API."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, timeout: float = 180.0):
        self.api_key = api_key if api_key is not None else settings.OPENROUTER_API_KEY
        self.base_url = base_url or settings.OPENROUTER_BASE_URL
        self.site_url = settings.SITE_URL
        self.site_name = settings.SITE_NAME
        self.timeout = timeout

    def _hash_text(self, text: str) -> str:
        return hashlib.sha256(text.encode()).hexdigest()

    def _build_headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name
        return headers

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(is_retryable),
        reraise=True,
    )
    def chat_completion(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 4000,
        json_mode: bool = False,
    ) -> str:
        """
        Call the chat completions API.

        Args:
            model: Model identifier
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            json_mode: Whether to request JSON output

        Returns:
            Response content as string

        Raises:
            ValueError: If no API key is configured
            httpx.HTTPError: On API errors after retries
        """
        if not self.api_key:
            raise ValueError("OPENROUTER_API_KEY is not configured")

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        request_hash = self._hash_text(json.dumps(payload, sort_keys=True))
        logger.info(f"LLM request to {model}, hash: {request_hash[:16]}")

        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                f"{self.base_url}/chat/completions",
                headers=self._build_headers(),
                json=payload,
            )

            if response.status_code in RETRYABLE_STATUS_CODES:
                logger.warning(f"Retryable error {response.status_code} from LLM provider")
            response.raise_for_status()

            result = response.json()
            content = result["choices"][0]["message"]["content"]

            logger.info(f"LLM response hash: {self._hash_text(content)[:16]}")
            return content
