"""Revenue rollups: MRR and cohort lifetime value."""

import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Union

import ibis
import pandas as pd

from coursepulse.db import TRACKING_EVENTS
from coursepulse.db.queries import list_subscriptions
from coursepulse.events import Events
from coursepulse.schemas import BillingInterval

CENT = Decimal("0.01")
MRR_STATUSES = ["active", "trialing"]


def calculate_mrr(price_cents: int, interval: Union[BillingInterval, str]) -> Decimal:
    """
    Monthly recurring revenue of one subscription, in currency units.

    The result is exact; round it with `display_amount` only when presenting.
    """
    interval = BillingInterval(interval)
    amount = Decimal(int(price_cents)) / 100
    if interval is BillingInterval.YEAR:
        return amount / 12
    return amount


def display_amount(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def mrr_summary(conn: ibis.BaseBackend) -> Dict[str, Any]:
    """Total MRR over live subscriptions, with a per-plan breakdown."""
    subscriptions = list_subscriptions(conn, statuses=MRR_STATUSES)

    total = Decimal(0)
    by_plan: Dict[str, Decimal] = {}
    for subscription in subscriptions:
        mrr = calculate_mrr(
            subscription["price_cents"], subscription["billing_interval"]
        )
        total += mrr
        plan = subscription.get("plan_name") or "unknown"
        by_plan[plan] = by_plan.get(plan, Decimal(0)) + mrr

    return {
        "mrr": display_amount(total),
        "active_subscriptions": len(subscriptions),
        "by_plan": {plan: display_amount(mrr) for plan, mrr in sorted(by_plan.items())},
    }


def _amount_cents(properties: str) -> float:
    try:
        amount = json.loads(properties).get("amount")
    except (TypeError, ValueError, AttributeError):
        return 0
    return amount if isinstance(amount, (int, float)) else 0


def cohort_ltv(conn: ibis.BaseBackend) -> List[Dict[str, Any]]:
    """
    Lifetime value per monthly cohort.

    Users belong to the cohort of the month of their first tracked event;
    revenue is the sum of their `purchase_completed` amounts (in cents).
    """
    events = conn.table(TRACKING_EVENTS)
    identified = events.filter(events.user_id.notnull())

    first_seen = (
        identified.group_by("user_id")
        .aggregate(first_seen=identified["timestamp"].min())
        .execute()
    )
    if first_seen.empty:
        return []

    purchases = (
        identified.filter(identified.event_name == Events.PURCHASE_COMPLETED)
        .select("user_id", "properties")
        .execute()
    )
    purchases["amount_cents"] = purchases["properties"].map(_amount_cents)
    revenue = purchases.groupby("user_id")["amount_cents"].sum().rename("revenue_cents")

    users = first_seen.set_index("user_id").join(revenue, how="left")
    users["revenue_cents"] = users["revenue_cents"].fillna(0)
    users["cohort"] = pd.to_datetime(users["first_seen"]).dt.strftime("%Y-%m")

    results = []
    for cohort, group in users.groupby("cohort"):
        user_count = len(group)
        revenue_total = Decimal(str(group["revenue_cents"].sum())) / 100
        results.append(
            {
                "cohort": cohort,
                "users": user_count,
                "revenue": display_amount(revenue_total),
                "ltv": display_amount(revenue_total / user_count),
            }
        )
    return results
