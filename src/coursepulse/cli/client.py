"""CLI API client for interacting with the coursepulse server."""

import json
import os
from typing import Any, Callable, Dict, Optional

import click
import httpx

# The base URL and token can be configured via environment variables
API_BASE_URL = os.getenv("COURSEPULSE_API_URL", "http://127.0.0.1:8000")
API_TOKEN = os.getenv("COURSEPULSE_API_TOKEN")


class APIClient:
    """A client for making requests to the coursepulse API."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: Optional[str] = API_TOKEN,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.Client(
            base_url=self.base_url, headers=headers, transport=transport
        )

    def track_event(
        self, event: Dict[str, Any], session_id: Optional[str] = None
    ) -> httpx.Response:
        """Sends one telemetry event."""
        headers = {"x-session-id": session_id} if session_id else {}
        response = self.client.post("/tracking-events", json=event, headers=headers)
        response.raise_for_status()
        return response

    def list_ab_tests(self, status: Optional[str] = None) -> httpx.Response:
        params = {"status": status} if status else {}
        response = self.client.get("/ab-tests", params=params)
        response.raise_for_status()
        return response

    def create_ab_test(self, definition: Dict[str, Any]) -> httpx.Response:
        """Creates a test from a definition with its variants."""
        response = self.client.post("/ab-tests", json=definition)
        response.raise_for_status()
        return response

    def set_ab_test_status(self, test_id: str, status: str) -> httpx.Response:
        response = self.client.patch(f"/ab-tests/{test_id}", json={"status": status})
        response.raise_for_status()
        return response

    def assign_variant(self, test_id: str, anon_id: Optional[str]) -> httpx.Response:
        payload = {"test_id": test_id}
        if anon_id:
            payload["anon_id"] = anon_id
        response = self.client.post("/ab-tests/assign", json=payload)
        response.raise_for_status()
        return response

    def track_ab_event(self, payload: Dict[str, Any]) -> httpx.Response:
        response = self.client.post("/ab-tests/track", json=payload)
        response.raise_for_status()
        return response

    def ab_test_metrics(self, test_id: str) -> httpx.Response:
        response = self.client.get(f"/ab-tests/{test_id}/metrics")
        response.raise_for_status()
        return response

    def mrr(self) -> httpx.Response:
        response = self.client.get("/analytics/mrr")
        response.raise_for_status()
        return response

    def cohorts(self) -> httpx.Response:
        response = self.client.get("/analytics/cohorts")
        response.raise_for_status()
        return response


def echo_response(call: Callable[[], httpx.Response]) -> None:
    """Run an API call and print its JSON body, or the error, as JSON."""
    try:
        response = call()
        click.echo(json.dumps(response.json(), indent=2))
    except httpx.HTTPStatusError as e:
        # Handle HTTP errors (e.g., 404 Not Found, 400 Bad Request)
        try:
            error_details = e.response.json()
        except json.JSONDecodeError:
            error_details = {
                "error": "Failed to decode server error response",
                "status_code": e.response.status_code,
                "response_text": e.response.text,
            }
        click.echo(json.dumps(error_details, indent=2), err=True)
        raise SystemExit(1)
    except httpx.RequestError as e:
        # Handle network errors (e.g., connection refused)
        error_message = {"error": "Failed to connect to API", "details": str(e)}
        click.echo(json.dumps(error_message, indent=2), err=True)
        raise SystemExit(1)
