"""Campaign report models: per-batch results and the aggregate report."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class BatchResult(BaseModel):
    """Delivery result for one submitted batch.

    Keeps the batch's original records so failed batches can be resubmitted.
    """

    model_config = ConfigDict(frozen=True)

    batch_index: int
    record_count: int
    records: tuple[Any, ...]
    success: bool
    detail: str
    timestamp: datetime
    status_code: int | None = None


class CampaignReport(BaseModel):
    """Aggregate of all batch results of one campaign run.

    ``results`` is in completion order. When deliveries run concurrently that
    order is not the submission order; use ``ordered_by_submission`` when a
    deterministic order is needed.
    """

    batches_attempted: int = 0
    batches_succeeded: int = 0
    batches_failed: int = 0
    records_sent: int = 0
    records_failed: int = 0
    duration_seconds: float = 0.0
    cancelled: bool = False
    results: list[BatchResult] = []

    def successful_results(self) -> list[BatchResult]:
        return [r for r in self.results if r.success]

    def failed_results(self) -> list[BatchResult]:
        return [r for r in self.results if not r.success]

    def failed_records(self) -> list[Any]:
        """Records of all failed batches, in submission order."""
        records: list[Any] = []
        for result in sorted(self.failed_results(), key=lambda r: r.batch_index):
            records.extend(result.records)
        return records

    def ordered_by_submission(self) -> list[BatchResult]:
        return sorted(self.results, key=lambda r: r.batch_index)

    def summary(self) -> dict[str, Any]:
        """Plain-dict summary suitable for printing or JSON output."""
        return {
            "batches_attempted": self.batches_attempted,
            "batches_succeeded": self.batches_succeeded,
            "batches_failed": self.batches_failed,
            "records_sent": self.records_sent,
            "records_failed": self.records_failed,
            "duration_seconds": self.duration_seconds,
            "cancelled": self.cancelled,
            "errors": [
                f"Batch {r.batch_index} ({r.record_count} records): {r.detail}"
                for r in self.failed_results()
            ],
        }
