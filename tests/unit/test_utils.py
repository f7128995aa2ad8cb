"""Unit tests for utility modules.

Tests pure functions and simple data classes -- no I/O, no mocking required.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime

import structlog

from campaign_sender.models.campaign_report import BatchResult
from campaign_sender.utils.logger import configure_logging, get_logger
from campaign_sender.utils.progress import CampaignProgress
from campaign_sender.utils.validators import extract_domain, is_valid_url


def _result(index: int, success: bool, count: int = 5) -> BatchResult:
    return BatchResult(
        batch_index=index,
        record_count=count,
        records=tuple(range(count)),
        success=success,
        detail="ok" if success else "failed",
        timestamp=datetime.now(UTC),
    )


# ──────────────────────────────────────────────────────────────────────
# utils/validators.py
# ──────────────────────────────────────────────────────────────────────


class TestIsValidUrl:
    def test_https(self) -> None:
        assert is_valid_url("https://example.com") is True

    def test_http_with_port_and_path(self) -> None:
        assert is_valid_url("http://localhost:8000/enqueue") is True

    def test_ftp_scheme_fails(self) -> None:
        assert is_valid_url("ftp://files.example.com") is False

    def test_missing_scheme(self) -> None:
        assert is_valid_url("example.com/send") is False

    def test_missing_netloc(self) -> None:
        assert is_valid_url("https://") is False

    def test_empty_string(self) -> None:
        assert is_valid_url("") is False


class TestExtractDomain:
    def test_simple(self) -> None:
        assert extract_domain("https://api.example.com/v1/send") == "api.example.com"

    def test_removes_www(self) -> None:
        assert extract_domain("https://www.example.com") == "example.com"


# ──────────────────────────────────────────────────────────────────────
# utils/progress.py
# ──────────────────────────────────────────────────────────────────────


class TestCampaignProgress:
    def test_initial_state(self) -> None:
        progress = CampaignProgress()
        assert progress.submitted == 0
        assert progress.completed == 0
        assert progress.results == []

    def test_counts_submissions_and_results(self) -> None:
        progress = CampaignProgress()
        progress.record_submission(5)
        progress.record_submission(3)
        progress.record_result(_result(0, True))
        progress.record_result(_result(1, False, count=3))
        assert progress.submitted == 2
        assert progress.records_submitted == 8
        assert progress.successful == 1
        assert progress.failed == 1
        assert progress.records_failed == 3
        assert progress.completed == 2

    def test_build_report_keeps_completion_order(self) -> None:
        progress = CampaignProgress()
        for index in (2, 0, 1):
            progress.record_submission(5)
            progress.record_result(_result(index, True))
        report = progress.build_report()
        assert [r.batch_index for r in report.results] == [2, 0, 1]
        assert report.batches_attempted == 3
        assert report.batches_succeeded == 3
        assert report.cancelled is False

    def test_build_report_preserve_order(self) -> None:
        progress = CampaignProgress()
        for index in (2, 0, 1):
            progress.record_submission(5)
            progress.record_result(_result(index, index != 1))
        report = progress.build_report(preserve_order=True)
        assert [r.batch_index for r in report.results] == [0, 1, 2]
        assert report.batches_failed == 1

    def test_has_result(self) -> None:
        progress = CampaignProgress()
        progress.record_submission(5)
        progress.record_result(_result(3, False))
        assert progress.has_result(3) is True
        assert progress.has_result(0) is False

    def test_build_report_cancelled_flag(self) -> None:
        assert CampaignProgress().build_report(cancelled=True).cancelled is True

    def test_elapsed_positive(self) -> None:
        assert CampaignProgress().elapsed_seconds >= 0

    def test_concurrent_recording(self) -> None:
        progress = CampaignProgress()

        def worker(offset: int) -> None:
            for i in range(100):
                progress.record_submission(1)
                progress.record_result(_result(offset * 100 + i, i % 2 == 0, count=1))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert progress.submitted == 800
        assert progress.successful + progress.failed == 800
        assert len(progress.results) == 800
        assert progress.failed == 400

    def test_log_progress_does_not_fail_without_results(self) -> None:
        CampaignProgress().log_progress(every_n=1)


# ──────────────────────────────────────────────────────────────────────
# utils/logger.py
# ──────────────────────────────────────────────────────────────────────


class TestLogger:
    def test_configure_and_log(self) -> None:
        configure_logging("DEBUG")
        try:
            logger = get_logger("campaign_sender.test")
            logger.info("test_event", key="value")
        finally:
            structlog.reset_defaults()

    def test_json_output(self) -> None:
        configure_logging("warning", json_output=True)
        try:
            get_logger("campaign_sender.test").warning("json_event", count=1)
        finally:
            structlog.reset_defaults()
