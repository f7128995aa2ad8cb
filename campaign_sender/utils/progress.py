"""Progress tracking for campaign runs."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from campaign_sender.models.campaign_report import BatchResult, CampaignReport
from campaign_sender.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CampaignProgress:
    """Thread-safe record of batch results as they complete."""

    submitted: int = 0
    records_submitted: int = 0
    successful: int = 0
    failed: int = 0
    records_failed: int = 0
    results: list[BatchResult] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_submission(self, record_count: int) -> None:
        """Count a batch handed to the delivery pool."""
        with self._lock:
            self.submitted += 1
            self.records_submitted += record_count

    def record_result(self, result: BatchResult) -> None:
        """Record a completed batch. Results keep completion order."""
        with self._lock:
            self.results.append(result)
            if result.success:
                self.successful += 1
            else:
                self.failed += 1
                self.records_failed += result.record_count

    def has_result(self, batch_index: int) -> bool:
        """Whether a result for the given batch has been recorded."""
        with self._lock:
            return any(r.batch_index == batch_index for r in self.results)

    @property
    def completed(self) -> int:
        return self.successful + self.failed

    @property
    def elapsed_seconds(self) -> float:
        """Time elapsed since start."""
        return time.monotonic() - self.start_time

    def log_progress(self, every_n: int = 10) -> None:
        """Log progress every N completed batches."""
        completed = self.completed
        if completed == 0:
            return
        if completed % every_n == 0:
            logger.info(
                "campaign_progress",
                completed=completed,
                submitted=self.submitted,
                successful=self.successful,
                failed=self.failed,
                elapsed=f"{self.elapsed_seconds:.1f}s",
            )

    def build_report(self, cancelled: bool = False, preserve_order: bool = False) -> CampaignReport:
        """Build the final report. Call only after all deliveries have been joined."""
        with self._lock:
            results = list(self.results)
            if preserve_order:
                results.sort(key=lambda r: r.batch_index)
            return CampaignReport(
                batches_attempted=self.submitted,
                batches_succeeded=self.successful,
                batches_failed=self.failed,
                records_sent=self.records_submitted,
                records_failed=self.records_failed,
                duration_seconds=round(self.elapsed_seconds, 2),
                cancelled=cancelled,
                results=results,
            )
