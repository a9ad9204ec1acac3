"""Router for telemetry ingestion."""

from typing import Dict, Optional
from uuid import uuid4

import ibis
import structlog
from fastapi import APIRouter, Depends, Request

from coursepulse.best_effort import best_effort, best_effort_async
from coursepulse.db import to_storage_timestamp, utcnow
from coursepulse.db.queries import insert_tracking_event
from coursepulse.forwarders.event_mapping import to_conversion_event
from coursepulse.forwarders.meta import MetaConversionsForwarder
from coursepulse.forwarders.posthog import PostHogForwarder
from coursepulse.identity import resolve_event_user
from coursepulse.schemas import TrackingEventIn
from coursepulse.server.auth import optional_claims
from coursepulse.server.dependencies import (
    get_db_connection,
    get_meta_forwarder,
    get_posthog_forwarder,
)
from coursepulse.server.errors import rejection_response
from coursepulse.validation import Rejected, parse_body

log = structlog.get_logger()
router = APIRouter(prefix="/tracking-events", tags=["tracking"])

SESSION_HEADER = "x-session-id"


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.post("")
async def ingest_tracking_event(
    request: Request,
    claims: Optional[Dict] = Depends(optional_claims),
    conn: ibis.BaseBackend = Depends(get_db_connection),
    meta: MetaConversionsForwarder = Depends(get_meta_forwarder),
    posthog: PostHogForwarder = Depends(get_posthog_forwarder),
):
    """
    Store one telemetry event and relay it to the analytics services.

    Only an unreadable body is reported back. Storage and relay failures are
    logged and the caller still gets a success response.
    """
    result = parse_body(TrackingEventIn, await request.body())
    if isinstance(result, Rejected):
        log.info("tracking_event.rejected", kind=result.kind.value)
        return rejection_response(result)

    event = result.value
    user_id = resolve_event_user(event.user_id, claims)
    session_id = request.headers.get(SESSION_HEADER)
    now = utcnow()
    row = {
        "id": str(uuid4()),
        "event_name": event.event,
        "user_id": user_id,
        "session_id": session_id,
        "properties": event.properties,
        "timestamp": to_storage_timestamp(event.timestamp) if event.timestamp else now,
        "user_agent": request.headers.get("user-agent"),
        "ip_address": _client_ip(request),
        "referer": request.headers.get("referer"),
        "created_at": now,
    }
    best_effort("tracking_event.persist", insert_tracking_event, conn, row)

    await best_effort_async(
        "posthog.forward",
        posthog.capture,
        event.event,
        distinct_id=user_id or session_id or "anonymous",
        properties=event.properties,
        timestamp=event.timestamp,
    )

    conversion = to_conversion_event(event.event, event.properties)
    if conversion is not None:
        await best_effort_async("meta_capi.forward", meta.send, conversion)

    return {"success": True}
