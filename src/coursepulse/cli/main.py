"""Main CLI command group."""

import click

from coursepulse.cli.ab_tests import ab_tests_cli
from coursepulse.cli.analytics import analytics_cli
from coursepulse.cli.db import db_cli
from coursepulse.cli.events import events_cli

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS)
def cli():
    """coursepulse command line interface."""
    pass


cli.add_command(db_cli)
cli.add_command(events_cli)
cli.add_command(ab_tests_cli)
cli.add_command(analytics_cli)


def main():
    """CLI entrypoint."""
    cli()


if __name__ == "__main__":
    main()
