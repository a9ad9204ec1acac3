"""Relay of conversion events to the Meta Conversions API."""

import hashlib
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import structlog

from coursepulse.config import Settings
from coursepulse.schemas import PurchaseConversion

log = structlog.get_logger()

GRAPH_API_URL = "https://graph.facebook.com"


def hash_email(email: str) -> str:
    """SHA-256 hex digest of a trimmed, lowercased email address."""
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ConversionEvent:
    """A server-side event for the conversions API."""

    event_name: str
    event_id: str
    custom_data: Dict[str, Any] = field(default_factory=dict)
    email: Optional[str] = None
    event_time: Optional[int] = None


class MetaConversionsForwarder:
    """
    Sends conversion events to the ad platform.

    The forwarder is disabled, and makes no request, unless the pixel id,
    the access token and the API version are all configured. Raw email
    addresses never leave this class; only their hashes are sent.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        pixel_id: Optional[str],
        access_token: Optional[str],
        api_version: Optional[str],
        site_url: Optional[str] = None,
        timeout: float = 5.0,
    ):
        self.client = client
        self.pixel_id = pixel_id
        self.access_token = access_token
        self.api_version = api_version
        self.site_url = site_url
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, client: httpx.AsyncClient
    ) -> "MetaConversionsForwarder":
        return cls(
            client,
            pixel_id=settings.meta_pixel_id,
            access_token=settings.meta_access_token,
            api_version=settings.meta_api_version,
            site_url=settings.site_url,
            timeout=settings.forwarder_timeout,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.pixel_id and self.access_token and self.api_version)

    @property
    def endpoint(self) -> str:
        return f"{GRAPH_API_URL}/{self.api_version}/{self.pixel_id}/events"

    def build_payload(self, event: ConversionEvent) -> Dict[str, Any]:
        user_data: Dict[str, List[str]] = {}
        if event.email:
            user_data["em"] = [hash_email(event.email)]

        server_event: Dict[str, Any] = {
            "event_name": event.event_name,
            "event_time": event.event_time or int(time.time()),
            "event_id": event.event_id,
            "action_source": "website",
            "user_data": user_data,
            "custom_data": event.custom_data,
        }
        if self.site_url:
            server_event["event_source_url"] = self.site_url
        return {"data": [server_event]}

    async def send(self, event: ConversionEvent) -> bool:
        """Send one event. Returns False when forwarding is not configured."""
        if not self.enabled:
            log.debug("meta_capi.skipped", event_name=event.event_name)
            return False

        response = await self.client.post(
            self.endpoint,
            params={"access_token": self.access_token},
            json=self.build_payload(event),
            timeout=self.timeout,
        )
        response.raise_for_status()
        log.info(
            "meta_capi.sent", event_name=event.event_name, event_id=event.event_id
        )
        return True

    async def send_purchase(self, purchase: PurchaseConversion) -> bool:
        return await self.send(
            ConversionEvent(
                event_name="Purchase",
                event_id=purchase.event_id,
                email=purchase.email,
                custom_data={
                    "value": purchase.value,
                    "currency": purchase.currency.upper(),
                    "content_ids": purchase.content_ids,
                    "content_type": "product",
                },
            )
        )
