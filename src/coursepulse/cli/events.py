"""CLI commands for sending telemetry events."""

from datetime import datetime
from typing import Optional

import click

from coursepulse.cli.cli_types import JSONObject, Timestamp
from coursepulse.cli.client import APIClient, echo_response


@click.group("events")
def events_cli():
    """Send telemetry events to the ingestion endpoint."""
    pass


@events_cli.command("track")
@click.argument("event_name")
@click.option(
    "--properties", type=JSONObject(), default="{}", help="Event properties as JSON."
)
@click.option("--user-id", help="Attribute the event to this user.")
@click.option("--session-id", help="Session id sent in the x-session-id header.")
@click.option("--timestamp", type=Timestamp(), help="When the event happened.")
def track_event(
    event_name: str,
    properties: dict,
    user_id: Optional[str],
    session_id: Optional[str],
    timestamp: Optional[datetime],
):
    """Send one EVENT_NAME event."""
    event = {"event": event_name, "properties": properties}
    if user_id:
        event["userId"] = user_id
    if timestamp:
        event["timestamp"] = timestamp.isoformat()

    client = APIClient()
    echo_response(lambda: client.track_event(event, session_id=session_id))
