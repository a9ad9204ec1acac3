"""Database connection and schema management."""

from datetime import datetime, timezone
from typing import Optional

import ibis

TRACKING_EVENTS = "tracking_events"
AB_TESTS = "ab_tests"
AB_TEST_VARIANTS = "ab_test_variants"
AB_TEST_ASSIGNMENTS = "ab_test_assignments"
AB_TEST_EVENTS = "ab_test_events"
SUBSCRIPTIONS = "subscriptions"

# Timestamps are stored as naive UTC.
SCHEMA_DDL = {
    TRACKING_EVENTS: f"""
        CREATE TABLE IF NOT EXISTS {TRACKING_EVENTS} (
            id VARCHAR PRIMARY KEY,
            event_name VARCHAR NOT NULL,
            user_id VARCHAR,
            session_id VARCHAR,
            properties VARCHAR NOT NULL DEFAULT '{{}}',
            timestamp TIMESTAMP NOT NULL,
            user_agent VARCHAR,
            ip_address VARCHAR,
            referer VARCHAR,
            created_at TIMESTAMP NOT NULL
        );
    """,
    AB_TESTS: f"""
        CREATE TABLE IF NOT EXISTS {AB_TESTS} (
            id VARCHAR PRIMARY KEY,
            name VARCHAR NOT NULL,
            description VARCHAR,
            hypothesis VARCHAR,
            test_type VARCHAR NOT NULL,
            status VARCHAR NOT NULL DEFAULT 'draft',
            traffic_allocation DOUBLE NOT NULL DEFAULT 100.0,
            created_by VARCHAR,
            created_at TIMESTAMP NOT NULL
        );
    """,
    AB_TEST_VARIANTS: f"""
        CREATE TABLE IF NOT EXISTS {AB_TEST_VARIANTS} (
            id VARCHAR PRIMARY KEY,
            test_id VARCHAR NOT NULL,
            name VARCHAR NOT NULL,
            position INTEGER NOT NULL DEFAULT 0,
            description VARCHAR,
            is_control BOOLEAN NOT NULL DEFAULT false,
            traffic_weight DOUBLE NOT NULL DEFAULT 50.0,
            config VARCHAR NOT NULL DEFAULT '{{}}',
            created_at TIMESTAMP NOT NULL
        );
    """,
    AB_TEST_ASSIGNMENTS: f"""
        CREATE TABLE IF NOT EXISTS {AB_TEST_ASSIGNMENTS} (
            id VARCHAR PRIMARY KEY,
            test_id VARCHAR NOT NULL,
            variant_id VARCHAR NOT NULL,
            user_id VARCHAR,
            anon_id VARCHAR,
            assigned_at TIMESTAMP NOT NULL,
            UNIQUE (test_id, user_id),
            UNIQUE (test_id, anon_id)
        );
    """,
    AB_TEST_EVENTS: f"""
        CREATE TABLE IF NOT EXISTS {AB_TEST_EVENTS} (
            id VARCHAR PRIMARY KEY,
            test_id VARCHAR NOT NULL,
            variant_id VARCHAR NOT NULL,
            assignment_id VARCHAR NOT NULL,
            event_type VARCHAR NOT NULL,
            event_value DOUBLE,
            metadata VARCHAR,
            occurred_at TIMESTAMP NOT NULL
        );
    """,
    SUBSCRIPTIONS: f"""
        CREATE TABLE IF NOT EXISTS {SUBSCRIPTIONS} (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR,
            status VARCHAR NOT NULL,
            plan_name VARCHAR,
            price_cents BIGINT NOT NULL,
            billing_interval VARCHAR NOT NULL,
            current_period_end TIMESTAMP,
            updated_at TIMESTAMP NOT NULL
        );
    """,
}


def is_in_memory(database: Optional[str]) -> bool:
    return database is None or database == ":memory:"


def connect(database: Optional[str] = None) -> ibis.BaseBackend:
    """Connect to a DuckDB database file, or to a fresh in-memory one."""
    if is_in_memory(database):
        return ibis.duckdb.connect()
    return ibis.duckdb.connect(database=database)


def initialize_schema(conn: ibis.BaseBackend) -> list[str]:
    """
    Create every application table that does not exist yet.

    This is idempotent and safe to call on every application startup.
    Returns the names of the tables that were created.
    """
    existing = set(conn.list_tables())
    created = []
    for table_name, ddl in SCHEMA_DDL.items():
        if table_name in existing:
            continue
        conn.con.execute(ddl)
        created.append(table_name)
    return created


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage_timestamp(value: datetime) -> datetime:
    """Normalise an aware or naive datetime to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
