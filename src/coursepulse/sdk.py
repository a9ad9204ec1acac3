"""Client for sending telemetry to the ingestion endpoint.

Create one `TrackingClient` per process and hand it to the code that emits
events::

    tracker = TrackingClient("https://api.example.com")
    tracker.initialize()
    tracker.identify("user-123", email="ada@example.com")
    tracker.track(Events.PURCHASE_COMPLETED, {"course_id": "c1", "amount": 4900})
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import structlog

from coursepulse.best_effort import best_effort
from coursepulse.events import Events

log = structlog.get_logger()


class TrackingClient:
    """Holds the current identity and queues events until initialised."""

    def __init__(
        self,
        base_url: str,
        session_id: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 5.0,
    ):
        self.session_id = session_id
        self.client = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)
        self.initialized = False
        self.user_id: Optional[str] = None
        self.traits: Dict[str, Any] = {}
        self.queue: List[Dict[str, Any]] = []

    def initialize(self) -> None:
        """Start sending; anything tracked before this call is flushed now."""
        if self.initialized:
            log.warning("tracking_client.already_initialized")
            return
        self.initialized = True
        self.flush()

    def identify(self, user_id: str, **traits: Any) -> None:
        """Attach subsequent events to `user_id` and merge `traits` into them."""
        self.user_id = user_id
        self.traits = {k: v for k, v in traits.items() if v is not None}
        self.track(Events.IDENTIFY, {})

    def reset(self) -> None:
        """
        Forget the current identity, e.g. on logout.

        Unsent events are discarded with it and the client goes back to
        queueing until `initialize` is called again.
        """
        self.user_id = None
        self.traits = {}
        self.queue = []
        self.initialized = False

    def track(self, event: str, properties: Optional[Dict[str, Any]] = None) -> None:
        payload: Dict[str, Any] = {
            "event": event,
            "properties": {**(properties or {}), **self.traits},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.user_id:
            payload["userId"] = self.user_id

        if not self.initialized:
            self.queue.append(payload)
            return
        self._send(payload)

    def flush(self) -> None:
        while self.queue:
            self._send(self.queue.pop(0))

    def close(self) -> None:
        self.client.close()

    def _send(self, payload: Dict[str, Any]) -> None:
        headers = {"x-session-id": self.session_id} if self.session_id else {}
        best_effort("tracking_client.send", self._post, payload, headers)

    def _post(self, payload: Dict[str, Any], headers: Dict[str, str]) -> None:
        response = self.client.post("/tracking-events", json=payload, headers=headers)
        response.raise_for_status()
