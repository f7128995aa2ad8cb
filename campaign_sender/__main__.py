"""Allow running the CLI with ``python -m campaign_sender``."""

from campaign_sender.cli import cli

if __name__ == "__main__":
    cli()
