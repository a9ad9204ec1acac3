"""CLI commands for revenue rollups."""

import click

from coursepulse.cli.client import APIClient, echo_response


@click.group("analytics")
def analytics_cli():
    """Read dashboard rollups."""
    pass


@analytics_cli.command("mrr")
def mrr():
    """Current monthly recurring revenue."""
    client = APIClient()
    echo_response(client.mrr)


@analytics_cli.command("cohorts")
def cohorts():
    """Lifetime value per monthly cohort."""
    client = APIClient()
    echo_response(client.cohorts)
