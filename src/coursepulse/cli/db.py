"""Database subcommands for the CLI."""

import json

import click

from coursepulse.db import connect, initialize_schema

database_option = click.option(
    "--database",
    envvar="COURSEPULSE_DB_PATH",
    default="coursepulse.duckdb",
    show_default=True,
    help="Path to the DuckDB database file.",
)


@click.group(name="db")
def db_cli():
    """Commands for database schema management."""
    pass


@db_cli.command(name="init")
@database_option
def init_db(database):
    """Create the application tables and print the resulting schema."""
    conn = connect(database)
    created = initialize_schema(conn)

    # dump the existing schema to stdout
    schema_info = {}
    for table_name in conn.list_tables():
        schema = conn.table(table_name).schema()
        schema_info[table_name] = [
            {
                "column_name": name,
                "column_type": str(dtype),
                "nullable": dtype.nullable,
            }
            for name, dtype in schema.items()
        ]

    click.echo(json.dumps({"created": created, "schema": schema_info}, indent=2))


@db_cli.command(name="list-tables")
@database_option
def list_tables(database):
    """List all tables in the database."""
    conn = connect(database)
    click.echo(json.dumps(conn.list_tables(), indent=2))
