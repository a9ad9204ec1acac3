import json

import httpx
import numpy as np
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from coursepulse.config import Settings
from coursepulse.db import connect, initialize_schema
from coursepulse.server.dependencies import (
    get_db_connection,
    get_http_client,
    get_rng,
    get_settings,
)
from coursepulse.server.main import app

SECRET = "test-secret"


class OutboundRecorder:
    """Records relayed requests and answers them from a per-host status map."""

    def __init__(self):
        self.requests = []
        self.status_by_host = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_by_host.get(request.url.host, 200), json={})

    def to_host(self, host):
        return [r for r in self.requests if r.url.host == host]

    def json_to_host(self, host):
        return [json.loads(r.content) for r in self.to_host(host)]


def make_token(sub="user-1", role=None, secret=SECRET):
    claims = {"sub": sub}
    if role:
        claims["role"] = role
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_header(sub="user-1", role=None):
    return {"Authorization": f"Bearer {make_token(sub, role)}"}


ADMIN = auth_header("admin-1", role="admin")


@pytest.fixture
def conn():
    db = connect()
    initialize_schema(db)
    return db


@pytest.fixture
def settings():
    return Settings(
        db_path=":memory:",
        auth_secret=SECRET,
        meta_pixel_id="pixel-1",
        meta_access_token="capi-token",
        meta_api_version="v18.0",
        site_url="https://courses.test",
        posthog_api_key="phc_test",
        posthog_host="https://posthog.test",
    )


@pytest.fixture
def outbound():
    return OutboundRecorder()


@pytest.fixture
def client(conn, settings, outbound):
    app.dependency_overrides[get_db_connection] = lambda: conn
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = lambda: httpx.AsyncClient(
        transport=httpx.MockTransport(outbound)
    )
    app.dependency_overrides[get_rng] = lambda: np.random.default_rng(7)
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_test(client, status="active", traffic_allocation=100.0, weights=(50, 50)):
    response = client.post(
        "/ab-tests",
        json={
            "name": "Pricing page headline",
            "test_type": "landing_page",
            "status": status,
            "traffic_allocation": traffic_allocation,
            "variants": [
                {"name": "control", "is_control": True, "traffic_weight": weights[0]},
                {"name": "bold", "traffic_weight": weights[1]},
            ],
        },
        headers=ADMIN,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def active_test(client):
    return create_test(client)
