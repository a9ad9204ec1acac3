"""Reads and writes against the application tables.

Reads are expressed with Ibis; writes use bound parameters on the underlying
DuckDB connection.
"""

import json
import math
from typing import Any, Optional

import ibis
import numpy as np
import pandas as pd

from coursepulse.db import (
    AB_TEST_ASSIGNMENTS,
    AB_TEST_EVENTS,
    AB_TEST_VARIANTS,
    AB_TESTS,
    SUBSCRIPTIONS,
    TRACKING_EVENTS,
)


def _clean(value: Any) -> Any:
    if value is None or value is pd.NaT or value is pd.NA:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def to_records(df: pd.DataFrame, json_columns: tuple[str, ...] = ()) -> list[dict]:
    rows = []
    for record in df.to_dict("records"):
        row = {key: _clean(value) for key, value in record.items()}
        for column in json_columns:
            if row.get(column) is not None:
                row[column] = json.loads(row[column])
        rows.append(row)
    return rows


def _insert(conn: ibis.BaseBackend, table_name: str, row: dict[str, Any]) -> None:
    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    conn.con.execute(
        f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders})",
        list(row.values()),
    )


# -------------------------
# Tracking events
# -------------------------
def insert_tracking_event(conn: ibis.BaseBackend, row: dict[str, Any]) -> None:
    row = dict(row)
    row["properties"] = json.dumps(row.get("properties") or {}, default=str)
    _insert(conn, TRACKING_EVENTS, row)


# -------------------------
# A/B tests and variants
# -------------------------
def get_test(conn: ibis.BaseBackend, test_id: str) -> Optional[dict]:
    tests = conn.table(AB_TESTS)
    df = tests.filter(tests.id == test_id).limit(1).execute()
    if df.empty:
        return None
    return to_records(df)[0]


def list_tests(conn: ibis.BaseBackend, status: Optional[str] = None) -> list[dict]:
    tests = conn.table(AB_TESTS)
    if status:
        tests = tests.filter(tests.status == status)
    return to_records(tests.order_by(ibis.desc("created_at")).execute())


def list_variants(conn: ibis.BaseBackend, test_id: str) -> list[dict]:
    variants = conn.table(AB_TEST_VARIANTS)
    df = variants.filter(variants.test_id == test_id).order_by("position").execute()
    return to_records(df, json_columns=("config",))


def insert_test(
    conn: ibis.BaseBackend, test: dict[str, Any], variants: list[dict[str, Any]]
) -> None:
    """Insert a test and its variants in one transaction."""
    conn.con.execute("BEGIN TRANSACTION;")
    try:
        _insert(conn, AB_TESTS, test)
        for variant in variants:
            variant = dict(variant)
            variant["config"] = json.dumps(variant.get("config") or {})
            _insert(conn, AB_TEST_VARIANTS, variant)
        conn.con.execute("COMMIT;")
    except Exception:
        conn.con.execute("ROLLBACK;")
        raise


def update_test_status(conn: ibis.BaseBackend, test_id: str, status: str) -> None:
    conn.con.execute(f"UPDATE {AB_TESTS} SET status = ? WHERE id = ?", [status, test_id])


def count_test_events(conn: ibis.BaseBackend, test_id: str) -> int:
    events = conn.table(AB_TEST_EVENTS)
    return int(events.filter(events.test_id == test_id).count().execute())


def delete_test(conn: ibis.BaseBackend, test_id: str) -> None:
    """Delete a test together with its variants and assignments."""
    conn.con.execute("BEGIN TRANSACTION;")
    try:
        for table_name in (AB_TEST_ASSIGNMENTS, AB_TEST_VARIANTS):
            conn.con.execute(f"DELETE FROM {table_name} WHERE test_id = ?", [test_id])
        conn.con.execute(f"DELETE FROM {AB_TESTS} WHERE id = ?", [test_id])
        conn.con.execute("COMMIT;")
    except Exception:
        conn.con.execute("ROLLBACK;")
        raise


# -------------------------
# Assignments and A/B events
# -------------------------
def find_assignment(
    conn: ibis.BaseBackend,
    test_id: str,
    user_id: Optional[str] = None,
    anon_id: Optional[str] = None,
    variant_id: Optional[str] = None,
) -> Optional[dict]:
    """
    Return the assignment of an identity to a test, or None.

    The user id wins when both are given. When `variant_id` is passed the
    assignment must also be for that variant.
    """
    if user_id is None and anon_id is None:
        raise ValueError("An assignment lookup needs a user_id or an anon_id.")

    assignments = conn.table(AB_TEST_ASSIGNMENTS)
    filters = [assignments.test_id == test_id]
    if user_id is not None:
        filters.append(assignments.user_id == user_id)
    else:
        filters.append(assignments.anon_id == anon_id)
    if variant_id is not None:
        filters.append(assignments.variant_id == variant_id)

    combined_filter = filters[0]
    for f in filters[1:]:
        combined_filter &= f

    df = assignments.filter(combined_filter).limit(1).execute()
    if df.empty:
        return None
    return to_records(df)[0]


def insert_assignment(conn: ibis.BaseBackend, row: dict[str, Any]) -> None:
    _insert(conn, AB_TEST_ASSIGNMENTS, row)


def insert_ab_event(conn: ibis.BaseBackend, row: dict[str, Any]) -> None:
    row = dict(row)
    if row.get("metadata") is not None:
        row["metadata"] = json.dumps(row["metadata"], default=str)
    _insert(conn, AB_TEST_EVENTS, row)


# -------------------------
# Subscriptions
# -------------------------
def upsert_subscription(conn: ibis.BaseBackend, row: dict[str, Any]) -> None:
    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    conn.con.execute(
        f"INSERT OR REPLACE INTO {SUBSCRIPTIONS} ({columns}) VALUES ({placeholders})",
        list(row.values()),
    )


def list_subscriptions(
    conn: ibis.BaseBackend, statuses: Optional[list[str]] = None
) -> list[dict]:
    subscriptions = conn.table(SUBSCRIPTIONS)
    if statuses:
        subscriptions = subscriptions.filter(subscriptions.status.isin(statuses))
    return to_records(subscriptions.execute())
