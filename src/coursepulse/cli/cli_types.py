"""Click parameter types shared by the CLI commands."""

import json
from datetime import datetime, timezone

import click


class Timestamp(click.ParamType):
    """
    An event time given as Unix seconds or as an ISO 8601 string.

    Values are returned as timezone-aware datetimes; naive input is taken
    to be UTC.
    """

    name = "timestamp"

    def convert(self, value, param, ctx):
        if value is None or isinstance(value, datetime):
            return value
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (ValueError, TypeError, OverflowError):
            pass
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            self.fail(
                f"'{value}' is not a valid timestamp. Expected Unix seconds "
                f"(e.g. 1672531200) or ISO 8601 (e.g. 2026-01-31T12:00:00Z).",
                param,
                ctx,
            )
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed


class JSONObject(click.ParamType):
    """A JSON object given inline on the command line."""

    name = "json"

    def convert(self, value, param, ctx):
        if isinstance(value, dict):
            return value
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            self.fail(f"'{value}' is not valid JSON: {e}", param, ctx)
        if not isinstance(parsed, dict):
            self.fail("Expected a JSON object.", param, ctx)
        return parsed
