"""CSV record source: streams rows of a CSV file as record tuples."""

from __future__ import annotations

import csv
from itertools import islice
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from campaign_sender.core.errors import SourceReadError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = structlog.get_logger(__name__)

Record = tuple[str, ...]


class CsvRecordSource:
    """Lazily read records from a CSV file.

    Each iteration reopens the file, so the source can be replayed. The header
    row, when present, is discarded. Open and parse failures are raised as
    SourceReadError.
    """

    def __init__(
        self,
        path: str | Path,
        has_header: bool = True,
        delimiter: str = ",",
        encoding: str = "utf-8",
    ) -> None:
        self.path = Path(path)
        self.has_header = has_header
        self.delimiter = delimiter
        self.encoding = encoding
        self.header: Record | None = None

    def __iter__(self) -> Iterator[Record]:
        try:
            handle = self.path.open(newline="", encoding=self.encoding)
        except OSError as exc:
            msg = f"cannot open CSV file {self.path}: {exc}"
            raise SourceReadError(msg) from exc

        with handle:
            reader = csv.reader(handle, delimiter=self.delimiter)
            try:
                if self.has_header:
                    header = next(reader, None)
                    self.header = tuple(header) if header is not None else None
                count = 0
                for row in reader:
                    if not row:
                        continue
                    count += 1
                    yield tuple(row)
            except (csv.Error, UnicodeDecodeError) as exc:
                msg = f"error reading {self.path} at line {reader.line_num}: {exc}"
                raise SourceReadError(msg) from exc

        logger.info("csv_source_exhausted", path=str(self.path), records=count)


def preview_records(
    path: str | Path,
    limit: int = 3,
    has_header: bool = True,
    delimiter: str = ",",
) -> list[Record]:
    """Return the first ``limit`` records of a CSV file."""
    source = CsvRecordSource(path, has_header=has_header, delimiter=delimiter)
    return list(islice(source, limit))
