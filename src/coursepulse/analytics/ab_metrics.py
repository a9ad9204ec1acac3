"""Per-variant A/B test metrics and significance against the control."""

import math
from dataclasses import dataclass
from typing import Dict, List

import ibis
from scipy import stats

from coursepulse.db import AB_TEST_ASSIGNMENTS, AB_TEST_EVENTS
from coursepulse.db.queries import list_variants, to_records
from coursepulse.schemas import VariantMetrics

CONVERSION_EVENT = "purchase"
MIN_SAMPLE_SIZE = 100
SIGNIFICANCE_LEVEL = 0.05


@dataclass(frozen=True)
class Significance:
    p_value: float
    confidence: float
    is_significant: bool


NOT_SIGNIFICANT = Significance(p_value=1.0, confidence=0.0, is_significant=False)


def z_test_proportions(
    control_conversions: int,
    control_impressions: int,
    treatment_conversions: int,
    treatment_impressions: int,
) -> Significance:
    """Two-tailed z-test for the difference of two conversion proportions."""
    if control_impressions < MIN_SAMPLE_SIZE or treatment_impressions < MIN_SAMPLE_SIZE:
        return NOT_SIGNIFICANT

    p1 = control_conversions / control_impressions
    p2 = treatment_conversions / treatment_impressions
    pooled = (control_conversions + treatment_conversions) / (
        control_impressions + treatment_impressions
    )
    se = math.sqrt(
        pooled * (1 - pooled) * (1 / control_impressions + 1 / treatment_impressions)
    )
    if se == 0:
        return NOT_SIGNIFICANT

    z = abs(p2 - p1) / se
    p_value = min(float(2 * stats.norm.sf(z)), 1.0)
    return Significance(
        p_value=p_value,
        confidence=min((1 - p_value) * 100, 99.99),
        is_significant=p_value < SIGNIFICANCE_LEVEL,
    )


def _by_variant(df) -> Dict[str, dict]:
    return {row["variant_id"]: row for row in to_records(df)}


def compute_test_metrics(conn: ibis.BaseBackend, test_id: str) -> List[VariantMetrics]:
    """
    Impressions, conversions and revenue for every variant of a test.

    Impressions are assignments; a conversion is an assignment with at least
    one purchase event.
    """
    assignments = conn.table(AB_TEST_ASSIGNMENTS)
    assigned = assignments.filter(assignments.test_id == test_id)
    impressions = _by_variant(
        assigned.group_by("variant_id").aggregate(impressions=assigned.count()).execute()
    )

    events = conn.table(AB_TEST_EVENTS)
    purchases = events.filter(
        (events.test_id == test_id) & (events.event_type == CONVERSION_EVENT)
    )
    conversions = _by_variant(
        purchases.group_by("variant_id")
        .aggregate(
            conversions=purchases.assignment_id.nunique(),
            total_revenue=purchases.event_value.sum(),
        )
        .execute()
    )

    metrics = []
    for variant in list_variants(conn, test_id):
        shown = int(impressions.get(variant["id"], {}).get("impressions") or 0)
        converted = conversions.get(variant["id"], {})
        n_conversions = int(converted.get("conversions") or 0)
        revenue = float(converted.get("total_revenue") or 0)
        metrics.append(
            VariantMetrics(
                variant_id=variant["id"],
                name=variant["name"],
                is_control=bool(variant["is_control"]),
                impressions=shown,
                conversions=n_conversions,
                conversion_rate=round(n_conversions / shown * 100, 2) if shown else 0.0,
                total_revenue=round(revenue, 2),
                average_order_value=(
                    round(revenue / n_conversions, 2) if n_conversions else 0.0
                ),
            )
        )

    control = next((m for m in metrics if m.is_control), None)
    if control is not None:
        for metric in metrics:
            if metric.is_control:
                continue
            significance = z_test_proportions(
                control.conversions,
                control.impressions,
                metric.conversions,
                metric.impressions,
            )
            metric.p_value = round(significance.p_value, 8)
            metric.confidence_level = round(significance.confidence, 2)
            metric.is_significant = significance.is_significant
    return metrics
