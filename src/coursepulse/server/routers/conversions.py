"""Router relaying server-side purchases to the ad platform."""

from typing import Dict

from fastapi import APIRouter, Depends

from coursepulse.best_effort import best_effort_async
from coursepulse.forwarders.meta import MetaConversionsForwarder
from coursepulse.schemas import PurchaseConversion
from coursepulse.server.auth import require_claims
from coursepulse.server.dependencies import get_meta_forwarder

router = APIRouter(prefix="/conversions", tags=["conversions"])


@router.post("/purchase", status_code=202)
async def relay_purchase(
    payload: PurchaseConversion,
    claims: Dict = Depends(require_claims),
    meta: MetaConversionsForwarder = Depends(get_meta_forwarder),
):
    """
    Relay a completed purchase to the conversions API.

    The purchase flow calling this must never fail because of attribution,
    so relay errors are only logged and reported as `forwarded: false`.
    """
    forwarded = await best_effort_async("meta_capi.forward", meta.send_purchase, payload)
    return {"forwarded": bool(forwarded)}
