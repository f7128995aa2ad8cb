"""Batch dispatcher: cuts a record stream into batches and delivers them in parallel."""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Any

import structlog

from campaign_sender.core.batching import chunk_records, validate_settings
from campaign_sender.core.errors import SourceReadError
from campaign_sender.core.rate_limit import SlidingWindowRateLimiter
from campaign_sender.models.campaign_report import BatchResult
from campaign_sender.models.delivery_outcome import DeliveryOutcome
from campaign_sender.utils.progress import CampaignProgress

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from campaign_sender.models.batch import Batch
    from campaign_sender.models.campaign_report import CampaignReport

logger = structlog.get_logger(__name__)

# Poll interval while blocked on a concurrency slot with a cancel event set up
_SLOT_POLL_SECONDS = 0.1


class BatchDispatcher:
    """Deliver batches of records under an optional concurrency cap and rate limit.

    The submitting thread is the single owner of the accumulating batch; each
    completed batch is handed to a worker as an immutable value. Submission
    blocks on a concurrency slot first and on rate budget second.
    """

    def __init__(
        self,
        deliver: Callable[[Batch], DeliveryOutcome],
        batch_size: int,
        concurrency_limit: int | None = None,
        rate_per_second: int | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        progress_every: int = 10,
    ) -> None:
        validate_settings(batch_size, concurrency_limit, rate_per_second)
        self.deliver = deliver
        self.batch_size = batch_size
        self.concurrency_limit = concurrency_limit or None
        self.rate_per_second = rate_per_second or None
        self.progress_every = progress_every
        if rate_limiter is None and self.rate_per_second:
            rate_limiter = SlidingWindowRateLimiter(self.rate_per_second)
        self.rate_limiter = rate_limiter

    def run(
        self,
        source: Iterable[Any],
        cancel_event: threading.Event | None = None,
        preserve_order: bool = False,
    ) -> CampaignReport:
        """Run one campaign over ``source`` and return its report.

        Waits for every submitted delivery before returning. If ``cancel_event``
        is set, stops submitting and returns a partial report marked cancelled.
        Raises SourceReadError (with the partial report attached) if the source
        fails.
        """
        progress = CampaignProgress()
        slots = (
            threading.BoundedSemaphore(self.concurrency_limit)
            if self.concurrency_limit
            else None
        )
        futures: dict[Future[None], Batch] = {}
        cancelled = False
        source_error: SourceReadError | None = None

        logger.info(
            "campaign_started",
            batch_size=self.batch_size,
            concurrency_limit=self.concurrency_limit,
            rate_per_second=self.rate_per_second,
        )

        with self._executor() as executor:
            try:
                for batch in chunk_records(source, self.batch_size):
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                        break
                    if not self._admit(batch, slots, cancel_event):
                        cancelled = True
                        break
                    progress.record_submission(len(batch))
                    future = executor.submit(self._deliver_batch, batch, progress, slots)
                    futures[future] = batch
            except SourceReadError as exc:
                logger.error(
                    "source_read_failed",
                    error=str(exc),
                    batches_submitted=progress.submitted,
                    pending_records=len(exc.pending_records),
                )
                source_error = exc
            # Leaving the executor block joins all in-flight deliveries

        for future in as_completed(futures):
            exc = future.exception()
            if exc is None:
                continue
            batch = futures[future]
            logger.error("batch_worker_failed", batch_index=batch.index, error=str(exc))
            if not progress.has_result(batch.index):
                outcome = DeliveryOutcome.failed(f"{type(exc).__name__}: {exc}")
                progress.record_result(_to_result(batch, outcome))

        report = progress.build_report(cancelled=cancelled, preserve_order=preserve_order)

        if cancelled:
            logger.warning(
                "campaign_cancelled",
                batches_attempted=report.batches_attempted,
                batches_failed=report.batches_failed,
            )
        if source_error is not None:
            source_error.report = report
            raise source_error

        logger.info(
            "campaign_completed",
            batches_attempted=report.batches_attempted,
            batches_succeeded=report.batches_succeeded,
            batches_failed=report.batches_failed,
            records_sent=report.records_sent,
            duration_seconds=report.duration_seconds,
        )
        return report

    def _admit(
        self,
        batch: Batch,
        slots: threading.BoundedSemaphore | None,
        cancel_event: threading.Event | None,
    ) -> bool:
        """Take a concurrency slot and rate budget for ``batch``. False if cancelled."""
        if slots is not None:
            if cancel_event is None:
                slots.acquire()
            else:
                while not slots.acquire(timeout=_SLOT_POLL_SECONDS):
                    if cancel_event.is_set():
                        return False
                if cancel_event.is_set():
                    slots.release()
                    return False

        if self.rate_limiter is not None and not self.rate_limiter.acquire(
            len(batch), cancel_event
        ):
            if slots is not None:
                slots.release()
            return False
        return True

    def _executor(self) -> Executor:
        """Capped pool when a concurrency limit is set, one thread per batch otherwise."""
        if self.concurrency_limit:
            return ThreadPoolExecutor(
                max_workers=self.concurrency_limit,
                thread_name_prefix="campaign-batch",
            )
        return ThreadPerBatchExecutor(thread_name_prefix="campaign-batch")

    def _deliver_batch(
        self,
        batch: Batch,
        progress: CampaignProgress,
        slots: threading.BoundedSemaphore | None,
    ) -> None:
        try:
            try:
                outcome = self._invoke(batch)
                result = _to_result(batch, outcome)
            except Exception as exc:
                logger.error(
                    "batch_result_invalid",
                    batch_index=batch.index,
                    error=str(exc),
                )
                outcome = DeliveryOutcome.failed(f"{type(exc).__name__}: {exc}")
                result = _to_result(batch, outcome)
            progress.record_result(result)

            if outcome.success:
                logger.info(
                    "batch_delivered",
                    batch_index=batch.index,
                    records=len(batch),
                    status_code=outcome.status_code,
                )
            else:
                logger.warning(
                    "batch_delivery_failed",
                    batch_index=batch.index,
                    records=len(batch),
                    status_code=outcome.status_code,
                    detail=outcome.detail,
                )
            progress.log_progress(every_n=self.progress_every)
        finally:
            if slots is not None:
                slots.release()

    def _invoke(self, batch: Batch) -> DeliveryOutcome:
        """Call the delivery function, turning an escaped exception into a failed outcome."""
        try:
            outcome = self.deliver(batch)
        except Exception as exc:
            logger.error(
                "batch_delivery_raised",
                batch_index=batch.index,
                error=str(exc),
            )
            return DeliveryOutcome.failed(f"{type(exc).__name__}: {exc}")

        if not isinstance(outcome, DeliveryOutcome):
            return DeliveryOutcome.failed(
                f"delivery returned {type(outcome).__name__}, expected DeliveryOutcome"
            )
        return outcome


def _to_result(batch: Batch, outcome: DeliveryOutcome) -> BatchResult:
    return BatchResult(
        batch_index=batch.index,
        record_count=len(batch),
        records=batch.records,
        success=outcome.success,
        detail=outcome.detail,
        timestamp=outcome.timestamp,
        status_code=outcome.status_code,
    )


class ThreadPerBatchExecutor(Executor):
    """Executor that starts a fresh thread for every submitted call.

    Used when no concurrency limit is configured, so parallelism is bounded
    only by the number of batches in flight. ``shutdown(wait=True)`` joins
    every thread started.
    """

    def __init__(self, thread_name_prefix: str = "worker") -> None:
        self.thread_name_prefix = thread_name_prefix
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._shutdown = False

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = fn(*args, **kwargs)
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

        with self._lock:
            if self._shutdown:
                msg = "cannot schedule new calls after shutdown"
                raise RuntimeError(msg)
            thread = threading.Thread(
                target=run,
                name=f"{self.thread_name_prefix}-{len(self._threads)}",
            )
            self._threads.append(thread)
        thread.start()
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        with self._lock:
            self._shutdown = True
            threads = list(self._threads)
        if wait:
            for thread in threads:
                thread.join()


def run_campaign(
    source: Iterable[Any],
    deliver: Callable[[Batch], DeliveryOutcome],
    batch_size: int,
    concurrency_limit: int | None = None,
    rate_per_second: int | None = None,
    cancel_event: threading.Event | None = None,
    preserve_order: bool = False,
) -> CampaignReport:
    """Batch ``source`` and deliver every batch, returning the campaign report."""
    dispatcher = BatchDispatcher(
        deliver,
        batch_size=batch_size,
        concurrency_limit=concurrency_limit,
        rate_per_second=rate_per_second,
    )
    return dispatcher.run(source, cancel_event=cancel_event, preserve_order=preserve_order)
