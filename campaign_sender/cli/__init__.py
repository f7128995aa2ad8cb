"""CLI entry point for batch send campaigns."""

from __future__ import annotations

import click

from campaign_sender.cli.commands import preview, send


@click.group()
def cli() -> None:
    """Send CSV records to an HTTP endpoint in batches."""


cli.add_command(send)
cli.add_command(preview)
