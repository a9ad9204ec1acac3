"""Router for dashboard revenue rollups."""

from typing import Dict

import ibis
from fastapi import APIRouter, Depends

from coursepulse.analytics.revenue import cohort_ltv, mrr_summary
from coursepulse.server.auth import require_admin
from coursepulse.server.dependencies import get_db_connection

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/mrr")
def get_mrr(
    claims: Dict = Depends(require_admin),
    conn: ibis.BaseBackend = Depends(get_db_connection),
):
    """Monthly recurring revenue over active and trialing subscriptions."""
    return mrr_summary(conn)


@router.get("/cohorts")
def get_cohorts(
    claims: Dict = Depends(require_admin),
    conn: ibis.BaseBackend = Depends(get_db_connection),
):
    """Revenue and lifetime value per monthly cohort of identified users."""
    return {"cohorts": cohort_ltv(conn)}
