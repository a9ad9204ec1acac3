import hashlib
import json
from datetime import datetime

import pytest

from conftest import auth_header
from coursepulse.config import Settings
from coursepulse.db import TRACKING_EVENTS, connect, utcnow
from coursepulse.db.queries import to_records
from coursepulse.server.dependencies import get_db_connection, get_settings
from coursepulse.server.main import app

GRAPH_HOST = "graph.facebook.com"
POSTHOG_HOST = "posthog.test"


def stored_events(conn):
    return to_records(conn.table(TRACKING_EVENTS).execute())


def test_ingest_stores_event_with_request_metadata(client, conn):
    response = client.post(
        "/tracking-events",
        json={"event": "landing_view", "properties": {"path": "/pricing"}},
        headers={
            "x-session-id": "sess-1",
            "user-agent": "pytest-browser",
            "x-forwarded-for": "203.0.113.9, 10.0.0.1",
            "referer": "https://ads.test/campaign",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    [row] = stored_events(conn)
    assert row["event_name"] == "landing_view"
    assert row["session_id"] == "sess-1"
    assert row["user_agent"] == "pytest-browser"
    assert row["ip_address"] == "203.0.113.9"
    assert row["referer"] == "https://ads.test/campaign"
    assert row["user_id"] is None
    assert json.loads(row["properties"]) == {"path": "/pricing"}


def test_explicit_user_id_wins_over_session(client, conn):
    client.post(
        "/tracking-events",
        json={"event": "cta_click", "userId": "explicit-user"},
        headers=auth_header("session-user"),
    )
    client.post(
        "/tracking-events",
        json={"event": "cta_click"},
        headers=auth_header("session-user"),
    )

    users = sorted(row["user_id"] for row in stored_events(conn))
    assert users == ["explicit-user", "session-user"]


def test_invalid_token_is_treated_as_anonymous(client, conn):
    response = client.post(
        "/tracking-events",
        json={"event": "cta_click"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 200
    assert stored_events(conn)[0]["user_id"] is None


def test_malformed_json_is_rejected(client, conn):
    response = client.post(
        "/tracking-events",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "malformed_json"
    assert stored_events(conn) == []


def test_non_object_body_is_rejected(client):
    response = client.post("/tracking-events", json=["landing_view"])

    assert response.status_code == 400
    assert response.json()["kind"] == "not_an_object"


def test_missing_event_name_is_rejected(client):
    response = client.post("/tracking-events", json={"properties": {}})

    body = response.json()
    assert response.status_code == 400
    assert body["kind"] == "missing_field"
    assert "event" in body["error"]


def test_empty_event_name_is_invalid(client):
    response = client.post("/tracking-events", json={"event": ""})

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_field"


def test_unparseable_timestamp_falls_back_to_server_time(client, conn):
    before = utcnow()

    response = client.post(
        "/tracking-events", json={"event": "landing_view", "timestamp": "yesterday"}
    )

    assert response.status_code == 200
    [row] = stored_events(conn)
    assert row["timestamp"] >= before


def test_client_timestamp_is_stored_as_utc(client, conn):
    client.post(
        "/tracking-events",
        json={"event": "landing_view", "timestamp": "2026-01-31T14:00:00+02:00"},
    )

    assert stored_events(conn)[0]["timestamp"] == datetime(2026, 1, 31, 12, 0)


@pytest.mark.parametrize("properties", [None, [1, 2], "text", 7])
def test_non_object_properties_become_empty(client, conn, properties):
    response = client.post(
        "/tracking-events", json={"event": "landing_view", "properties": properties}
    )

    assert response.status_code == 200
    assert json.loads(stored_events(conn)[0]["properties"]) == {}


def test_non_string_user_id_is_dropped(client, conn):
    response = client.post(
        "/tracking-events",
        json={"event": "cta_click", "userId": 42},
        headers=auth_header("session-user"),
    )

    assert response.status_code == 200
    assert stored_events(conn)[0]["user_id"] == "session-user"


def test_storage_failure_still_succeeds(client):
    # A database without tables makes every insert fail.
    app.dependency_overrides[get_db_connection] = lambda: connect()

    response = client.post("/tracking-events", json={"event": "landing_view"})

    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_purchase_is_relayed_with_hashed_email(client, outbound):
    response = client.post(
        "/tracking-events",
        json={
            "event": "purchase_completed",
            "properties": {
                "event_id": "evt-123",
                "course_id": "course-9",
                "amount": 4900,
                "email": "Ada@Example.com",
            },
        },
    )

    assert response.status_code == 200
    [request] = outbound.to_host(GRAPH_HOST)
    assert request.url.path == "/v18.0/pixel-1/events"
    assert request.url.params["access_token"] == "capi-token"
    assert b"Ada@Example.com" not in request.content

    [event] = json.loads(request.content)["data"]
    assert event["event_name"] == "Purchase"
    assert event["event_id"] == "evt-123"
    assert event["action_source"] == "website"
    assert event["event_source_url"] == "https://courses.test"
    assert event["custom_data"]["value"] == 49.0
    assert event["custom_data"]["content_ids"] == ["course-9"]
    assert event["user_data"]["em"] == [
        hashlib.sha256(b"ada@example.com").hexdigest()
    ]


def test_mapped_event_without_event_id_is_not_relayed(client, outbound):
    client.post(
        "/tracking-events",
        json={"event": "purchase_completed", "properties": {"amount": 4900}},
    )

    assert outbound.to_host(GRAPH_HOST) == []


def test_unmapped_event_is_not_relayed(client, outbound):
    client.post(
        "/tracking-events",
        json={"event": "lesson_streak", "properties": {"event_id": "evt-1"}},
    )

    assert outbound.to_host(GRAPH_HOST) == []


def test_relay_failure_still_succeeds(client, conn, outbound):
    outbound.status_by_host[GRAPH_HOST] = 500
    outbound.status_by_host[POSTHOG_HOST] = 503

    response = client.post(
        "/tracking-events",
        json={"event": "signup_start", "properties": {"event_id": "evt-2"}},
    )

    assert response.status_code == 200
    assert len(outbound.to_host(GRAPH_HOST)) == 1
    assert len(stored_events(conn)) == 1


def test_no_relay_when_conversions_api_is_not_configured(client, outbound):
    app.dependency_overrides[get_settings] = lambda: Settings(db_path=":memory:")

    response = client.post(
        "/tracking-events",
        json={"event": "signup_start", "properties": {"event_id": "evt-3"}},
    )

    assert response.status_code == 200
    assert outbound.requests == []


def test_events_are_captured_in_posthog(client, outbound):
    client.post(
        "/tracking-events",
        json={"event": "cta_click", "properties": {"button": "hero"}},
        headers={"x-session-id": "sess-42"},
    )
    client.post(
        "/tracking-events",
        json={"event": "cta_click", "userId": "user-5"},
        headers={"x-session-id": "sess-42"},
    )
    client.post("/tracking-events", json={"event": "cta_click"})

    captures = outbound.json_to_host(POSTHOG_HOST)
    assert [c["distinct_id"] for c in captures] == ["sess-42", "user-5", "anonymous"]
    assert captures[0]["api_key"] == "phc_test"
    assert captures[0]["properties"] == {"button": "hero"}
    assert outbound.to_host(POSTHOG_HOST)[0].url.path == "/capture/"
