"""Pure batching functions: limit validation and record chunking."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from campaign_sender.core.errors import ConfigError, SourceReadError
from campaign_sender.models.batch import Batch

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


def validate_settings(
    batch_size: int,
    concurrency_limit: int | None = None,
    rate_per_second: int | None = None,
) -> None:
    """Raise ConfigError for an invalid batch size or limit.

    None or 0 disables a limit. A rate below the batch size is rejected since
    a full batch could never be admitted within one second.
    """
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ConfigError(msg)
    if concurrency_limit is not None and concurrency_limit < 0:
        msg = f"concurrency_limit must be >= 0, got {concurrency_limit}"
        raise ConfigError(msg)
    if rate_per_second is not None and rate_per_second < 0:
        msg = f"rate_per_second must be >= 0, got {rate_per_second}"
        raise ConfigError(msg)
    if rate_per_second and rate_per_second < batch_size:
        msg = (
            f"rate_per_second ({rate_per_second}) must be >= batch_size ({batch_size})"
        )
        raise ConfigError(msg)


def count_batches(record_count: int, batch_size: int) -> int:
    """Number of batches needed for record_count records (ceil division)."""
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ConfigError(msg)
    return -(-record_count // batch_size)


def chunk_records(source: Iterable[Any], batch_size: int) -> Iterator[Batch]:
    """Cut a record stream into immutable batches of at most batch_size records.

    The batch size is checked eagerly; records are pulled lazily. A failure
    raised by the source surfaces as SourceReadError carrying the records of
    the unfinished batch.
    """
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ConfigError(msg)
    return _iter_batches(source, batch_size)


def _iter_batches(source: Iterable[Any], batch_size: int) -> Iterator[Batch]:
    pending: list[Any] = []
    index = 0
    records_read = 0

    try:
        iterator = iter(source)
    except Exception as exc:
        msg = f"record source could not be opened: {exc}"
        raise SourceReadError(msg) from exc

    while True:
        try:
            record = next(iterator)
        except StopIteration:
            break
        except Exception as exc:
            msg = f"record source failed after {records_read} records: {exc}"
            raise SourceReadError(msg, pending_records=pending) from exc

        records_read += 1
        pending.append(record)
        if len(pending) == batch_size:
            yield Batch(index=index, records=tuple(pending))
            index += 1
            pending = []

    if pending:
        yield Batch(index=index, records=tuple(pending))
