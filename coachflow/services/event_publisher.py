"""Publishes background-dispatch events to the event bus HTTP API."""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from coachflow.config import settings
from coachflow.exceptions import PublishError

logger = logging.getLogger(__name__)

SPLIT_GENERATE_REQUESTED = "split/generate.requested"


class EventPublisher:
    """Fire-and-forget event publishing; delivery to the worker is the bus's job."""

    def __init__(self, event_key: Optional[str] = None, base_url: Optional[str] = None, timeout: float = 10.0):
        self.event_key = event_key if event_key is not None else (settings.EVENT_KEY or "dev")
        if base_url:
            self.base_url = base_url
        elif settings.EVENT_DEV_MODE and not settings.EVENT_KEY:
            self.base_url = settings.EVENT_DEV_BASE_URL
        else:
            self.base_url = settings.EVENT_API_BASE_URL
        self.timeout = timeout

    def publish(self, name: str, data: Dict[str, Any]) -> None:
        """
        Publish one event.

        Raises:
            PublishError: If the event could not be delivered after retries
        """
        try:
            self._send({"name": name, "data": data})
        except httpx.HTTPError as e:
            raise PublishError(f"Failed to publish {name}: {e}") from e

        logger.info(f"Published event {name}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    def _send(self, event: Dict[str, Any]) -> None:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(f"{self.base_url}/e/{self.event_key}", json=event)
            response.raise_for_status()
