import pytest

from conftest import ADMIN, create_test
from coursepulse.analytics.ab_metrics import (
    NOT_SIGNIFICANT,
    compute_test_metrics,
    z_test_proportions,
)
from coursepulse.db import utcnow
from coursepulse.db.queries import insert_ab_event, insert_assignment


def test_z_test_detects_clear_difference():
    result = z_test_proportions(10, 100, 30, 100)

    assert result.is_significant
    assert result.p_value == pytest.approx(0.000407, abs=1e-5)
    assert result.confidence == pytest.approx(99.96, abs=0.01)


def test_z_test_identical_rates_are_not_significant():
    result = z_test_proportions(10, 100, 10, 100)

    assert not result.is_significant
    assert result.p_value == pytest.approx(1.0)


def test_z_test_needs_minimum_sample():
    assert z_test_proportions(5, 99, 50, 100) == NOT_SIGNIFICANT
    assert z_test_proportions(5, 100, 50, 99) == NOT_SIGNIFICANT


def test_z_test_without_any_conversions():
    assert z_test_proportions(0, 200, 0, 200) == NOT_SIGNIFICANT


def test_z_test_confidence_is_capped():
    result = z_test_proportions(0, 1000, 500, 1000)

    assert result.confidence == 99.99


def seed(conn, test_id, variant_id, impressions, purchases, prefix):
    """Assign `impressions` visitors and record one purchase for the first `purchases`."""
    now = utcnow()
    for i in range(impressions):
        assignment_id = f"{prefix}-assignment-{i}"
        insert_assignment(
            conn,
            {
                "id": assignment_id,
                "test_id": test_id,
                "variant_id": variant_id,
                "user_id": None,
                "anon_id": f"{prefix}-{i}",
                "assigned_at": now,
            },
        )
        insert_ab_event(
            conn,
            {
                "id": f"{prefix}-view-{i}",
                "test_id": test_id,
                "variant_id": variant_id,
                "assignment_id": assignment_id,
                "event_type": "view",
                "event_value": None,
                "metadata": None,
                "occurred_at": now,
            },
        )
        if i < purchases:
            insert_ab_event(
                conn,
                {
                    "id": f"{prefix}-purchase-{i}",
                    "test_id": test_id,
                    "variant_id": variant_id,
                    "assignment_id": assignment_id,
                    "event_type": "purchase",
                    "event_value": 50.0,
                    "metadata": None,
                    "occurred_at": now,
                },
            )


def test_compute_test_metrics(client, conn):
    test = create_test(client)
    test_id = test["test"]["id"]
    control, bold = test["variants"]
    seed(conn, test_id, control["id"], 100, 10, "c")
    seed(conn, test_id, bold["id"], 100, 30, "b")
    # A second purchase by the same visitor adds revenue but not a conversion.
    insert_ab_event(
        conn,
        {
            "id": "repeat-purchase",
            "test_id": test_id,
            "variant_id": control["id"],
            "assignment_id": "c-assignment-0",
            "event_type": "purchase",
            "event_value": 50.0,
            "metadata": None,
            "occurred_at": utcnow(),
        },
    )

    control_metrics, bold_metrics = compute_test_metrics(conn, test_id)

    assert control_metrics.is_control
    assert control_metrics.impressions == 100
    assert control_metrics.conversions == 10
    assert control_metrics.conversion_rate == 10.0
    assert control_metrics.total_revenue == 550.0
    assert control_metrics.average_order_value == 55.0
    assert control_metrics.p_value is None

    assert bold_metrics.conversions == 30
    assert bold_metrics.conversion_rate == 30.0
    assert bold_metrics.is_significant is True
    assert bold_metrics.confidence_level == pytest.approx(99.96, abs=0.01)


def test_metrics_for_test_without_traffic(client, conn):
    test = create_test(client)

    metrics = compute_test_metrics(conn, test["test"]["id"])

    assert [m.impressions for m in metrics] == [0, 0]
    assert [m.conversion_rate for m in metrics] == [0.0, 0.0]
    assert metrics[1].is_significant is False


def test_metrics_endpoint(client, conn):
    test = create_test(client)
    test_id = test["test"]["id"]
    control, bold = test["variants"]
    seed(conn, test_id, control["id"], 3, 1, "c")

    response = client.get(f"/ab-tests/{test_id}/metrics", headers=ADMIN)

    body = response.json()
    assert response.status_code == 200
    assert body["test_id"] == test_id
    assert [v["variant_id"] for v in body["variants"]] == [control["id"], bold["id"]]
    assert body["variants"][0]["impressions"] == 3
    assert body["variants"][0]["conversions"] == 1


def test_metrics_endpoint_unknown_test(client):
    response = client.get("/ab-tests/does-not-exist/metrics", headers=ADMIN)

    assert response.status_code == 404
