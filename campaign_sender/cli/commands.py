"""CLI command implementations for batch send campaigns."""

from __future__ import annotations

import contextlib
import json
import signal
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from pydantic import ValidationError

from campaign_sender.core.errors import ConfigError, SourceReadError
from campaign_sender.models.config import Config
from campaign_sender.services.csv_source import CsvRecordSource, preview_records
from campaign_sender.services.dispatcher import BatchDispatcher
from campaign_sender.services.http_delivery import (
    DryRunDeliverer,
    HttpBatchDeliverer,
    build_message,
)
from campaign_sender.utils.logger import configure_logging

if TYPE_CHECKING:
    from campaign_sender.models.campaign_report import CampaignReport


def _get_config() -> Config:
    """Load configuration from environment and .env file."""
    return Config()  # type: ignore[call-arg]


def _print_summary(title: str, stats: dict[str, Any], status: str = "SUCCESS") -> None:
    """Print a formatted summary of campaign results."""
    click.echo(f"\n[{status}] {title}")
    for key, value in stats.items():
        if key == "errors" and isinstance(value, list):
            if value:
                click.echo(f"  Errors ({len(value)}):")
                for error in value[:10]:
                    click.echo(f"    - {error}")
                if len(value) > 10:
                    click.echo(f"    ... and {len(value) - 10} more")
        else:
            click.echo(f"  {key}: {value}")


def _emit_report(report: CampaignReport, output_format: str, report_file: str | None) -> None:
    if output_format == "json":
        click.echo(report.model_dump_json(indent=2))
    else:
        if report.batches_failed:
            status, title = "ERROR", "Campaign finished with failed batches"
        elif report.cancelled:
            status, title = "WARN", "Campaign cancelled"
        else:
            status, title = "SUCCESS", "Campaign complete"
        _print_summary(title, report.summary(), status=status)

    if report_file:
        Path(report_file).write_text(report.model_dump_json(indent=2), encoding="utf-8")
        click.echo(f"[INFO] Report written to {report_file}", err=True)


class _CancelOnInterrupt:
    """Route SIGINT to a cancel event while a campaign runs."""

    def __init__(self, cancel_event: threading.Event) -> None:
        self.cancel_event = cancel_event
        self._previous: Any = None

    def _handle(self, signum: int, frame: Any) -> None:
        click.echo("[WARN] Interrupt received, waiting for in-flight batches...", err=True)
        self.cancel_event.set()

    def __enter__(self) -> _CancelOnInterrupt:
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)


@click.command()
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--batch-size", type=int, default=None, help="Records per batch")
@click.option(
    "--concurrency",
    type=int,
    default=None,
    help="Max deliveries in flight (0 = no cap)",
)
@click.option("--rate", type=int, default=None, help="Max records per second (0 = no limit)")
@click.option("--dry-run", is_flag=True, help="Log batches instead of sending them")
@click.option("--ordered", is_flag=True, help="Report batches in submission order")
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "json"]),
    help="Output format",
)
@click.option("--report-file", type=click.Path(dir_okay=False), default=None, help="Write JSON report")
def send(
    csv_file: str,
    batch_size: int | None,
    concurrency: int | None,
    rate: int | None,
    dry_run: bool,
    ordered: bool,
    output_format: str,
    report_file: str | None,
) -> None:
    """Send the records of CSV_FILE to the campaign endpoint in batches."""
    try:
        config = _get_config()
    except ValidationError as exc:
        click.echo(f"[ERROR] Invalid configuration:\n{exc}", err=True)
        sys.exit(1)
    configure_logging(config.log_level)

    source = CsvRecordSource(
        csv_file,
        has_header=config.csv_has_header,
        delimiter=config.csv_delimiter,
    )
    concurrency_limit = config.concurrency_limit if concurrency is None else concurrency

    with _build_deliverer(config, dry_run, concurrency_limit) as deliver:
        try:
            dispatcher = BatchDispatcher(
                deliver,
                batch_size=config.batch_size if batch_size is None else batch_size,
                concurrency_limit=concurrency_limit,
                rate_per_second=config.rate_per_second if rate is None else rate,
            )
        except ConfigError as exc:
            click.echo(f"[ERROR] {exc}", err=True)
            sys.exit(1)

        click.echo(f"[INFO] Sending {csv_file} in batches of {dispatcher.batch_size}...", err=True)
        cancel_event = threading.Event()
        try:
            with _CancelOnInterrupt(cancel_event):
                report = dispatcher.run(source, cancel_event=cancel_event, preserve_order=ordered)
        except SourceReadError as exc:
            click.echo(f"[ERROR] {exc}", err=True)
            if exc.report is not None:
                _emit_report(exc.report, output_format, report_file)
            sys.exit(1)

    _emit_report(report, output_format, report_file)
    if report.batches_failed or report.cancelled:
        sys.exit(1)


def _build_deliverer(config: Config, dry_run: bool, concurrency_limit: int) -> Any:
    if dry_run:
        return contextlib.nullcontext(DryRunDeliverer(config.template_name))
    return HttpBatchDeliverer(
        config.endpoint_url,
        config.api_key,
        extra_headers=config.extra_headers,
        template_name=config.template_name,
        timeout=config.request_timeout,
        pool_size=max(concurrency_limit, 10),
    )


@click.command()
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--lines", default=3, type=int, help="Number of records to show")
@click.option("--delimiter", default=",", help="CSV delimiter")
@click.option("--no-header", is_flag=True, help="CSV file has no header row")
@click.option("--template-name", default="template_name", help="Template name for body fields")
def preview(csv_file: str, lines: int, delimiter: str, no_header: bool, template_name: str) -> None:
    """Show the first messages that would be built from CSV_FILE."""
    try:
        records = preview_records(
            csv_file,
            limit=lines,
            has_header=not no_header,
            delimiter=delimiter,
        )
    except SourceReadError as exc:
        click.echo(f"[ERROR] {exc}", err=True)
        sys.exit(1)

    for number, record in enumerate(records, start=1):
        click.echo(f"Record {number}: {json.dumps(build_message(record, template_name))}")
