"""Relay of tracked events to PostHog."""

from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import structlog

from coursepulse.config import Settings

log = structlog.get_logger()


class PostHogForwarder:
    """Captures events through the PostHog HTTP API; a no-op without an API key."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        host: str,
        timeout: float = 5.0,
    ):
        self.client = client
        self.api_key = api_key
        self.host = host.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, client: httpx.AsyncClient
    ) -> "PostHogForwarder":
        return cls(
            client,
            api_key=settings.posthog_api_key,
            host=settings.posthog_host,
            timeout=settings.forwarder_timeout,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def capture(
        self,
        event: str,
        distinct_id: str,
        properties: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        if not self.enabled:
            log.debug("posthog.skipped", event_name=event)
            return False

        payload: Dict[str, Any] = {
            "api_key": self.api_key,
            "event": event,
            "distinct_id": distinct_id,
            "properties": properties or {},
        }
        if timestamp is not None:
            payload["timestamp"] = timestamp.isoformat()

        response = await self.client.post(
            f"{self.host}/capture/", json=payload, timeout=self.timeout
        )
        response.raise_for_status()
        return True
