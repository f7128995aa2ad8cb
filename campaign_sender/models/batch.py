"""Batch model: an immutable group of records sent in one delivery call."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class Batch(BaseModel):
    """A bounded group of records, owned by one dispatch task once submitted."""

    model_config = ConfigDict(frozen=True)

    index: int
    records: tuple[Any, ...]

    @field_validator("index")
    @classmethod
    def validate_index(cls, value: int) -> int:
        """Submission index must be non-negative."""
        if value < 0:
            msg = "index must be >= 0"
            raise ValueError(msg)
        return value

    def __len__(self) -> int:
        return len(self.records)
