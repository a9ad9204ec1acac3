"""Router mirroring billing state from the payment provider."""

from typing import Dict

import duckdb
import ibis
import structlog
from fastapi import APIRouter, Depends, HTTPException

from coursepulse.analytics.revenue import calculate_mrr, display_amount
from coursepulse.db import to_storage_timestamp, utcnow
from coursepulse.db.queries import upsert_subscription
from coursepulse.schemas import SubscriptionUpsert
from coursepulse.server.auth import require_admin
from coursepulse.server.dependencies import get_db_connection

log = structlog.get_logger()
router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.put("/{subscription_id}")
async def put_subscription(
    subscription_id: str,
    payload: SubscriptionUpsert,
    claims: Dict = Depends(require_admin),
    conn: ibis.BaseBackend = Depends(get_db_connection),
):
    """Insert or replace the mirrored state of one subscription."""
    row = {
        "id": subscription_id,
        "user_id": payload.user_id,
        "status": payload.status,
        "plan_name": payload.plan_name,
        "price_cents": payload.price_cents,
        "billing_interval": payload.interval.value,
        "current_period_end": (
            to_storage_timestamp(payload.current_period_end)
            if payload.current_period_end
            else None
        ),
        "updated_at": utcnow(),
    }
    try:
        upsert_subscription(conn, row)
    except duckdb.Error as e:
        log.error(
            "subscription.upsert.failed",
            error=str(e),
            subscription_id=subscription_id,
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail="Failed to store subscription")

    mrr = calculate_mrr(payload.price_cents, payload.interval)
    log.info("subscription.synced", subscription_id=subscription_id, status=payload.status)
    return {"subscription": row, "mrr": display_amount(mrr)}
