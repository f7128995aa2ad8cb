"""Shared test fixtures for batch send campaigns."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

import pytest
import structlog

from campaign_sender.models.delivery_outcome import DeliveryOutcome

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from campaign_sender.models.batch import Batch


CSV_HEADER = "channel_type,external_id,body_1,body_2"


class RecordingDeliverer:
    """Delivery function that records batches and tracks concurrent entries.

    ``fail_indexes`` selects batches that return a failed outcome;
    ``delay`` holds each call open so concurrency can be observed.
    """

    def __init__(self, fail_indexes: set[int] | None = None, delay: float = 0.0) -> None:
        self.fail_indexes = fail_indexes or set()
        self.delay = delay
        self.batches: list[Batch] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def __call__(self, batch: Batch) -> DeliveryOutcome:
        with self._lock:
            self.batches.append(batch)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if batch.index in self.fail_indexes:
                return DeliveryOutcome.failed(f"rejected batch {batch.index}", status_code=500)
            return DeliveryOutcome.ok(f"accepted batch {batch.index}", status_code=201)
        finally:
            with self._lock:
                self.in_flight -= 1

    def submitted_in_order(self) -> list[Batch]:
        return sorted(self.batches, key=lambda b: b.index)


class FakeClock:
    """Manually advanced monotonic clock; ``sleep`` advances it."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_records(count: int) -> list[tuple[str, ...]]:
    """Build ``count`` distinct CSV-like records."""
    return [("whatsapp", f"ext-{i}", f"hello {i}", f"code {i}") for i in range(count)]


@pytest.fixture
def recording_deliverer() -> RecordingDeliverer:
    return RecordingDeliverer()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a campaign CSV with a header and ``rows`` data lines."""

    def _write(rows: int, name: str = "campaign.csv", header: bool = True) -> Path:
        lines = [CSV_HEADER] if header else []
        lines.extend(",".join(record) for record in make_records(rows))
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def campaign_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Minimal valid CAMPAIGN_* environment, isolated from any local .env file."""
    monkeypatch.chdir(tmp_path)
    for key in (
        "CAMPAIGN_BATCH_SIZE",
        "CAMPAIGN_CONCURRENCY_LIMIT",
        "CAMPAIGN_RATE_PER_SECOND",
        "CAMPAIGN_EXTRA_HEADERS",
        "CAMPAIGN_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CAMPAIGN_ENDPOINT_URL", "https://api.example.com/v1/send")
    monkeypatch.setenv("CAMPAIGN_API_KEY", "test-key")


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo configure_logging so handlers bound to captured streams do not leak."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()
