"""Result of a single delivery call."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DeliveryOutcome(BaseModel):
    """Outcome of delivering one batch. Produced once, never mutated."""

    model_config = ConfigDict(frozen=True)

    success: bool
    detail: str
    timestamp: datetime = Field(default_factory=_utc_now)
    status_code: int | None = None

    @classmethod
    def ok(cls, detail: str, status_code: int | None = None) -> DeliveryOutcome:
        return cls(success=True, detail=detail, status_code=status_code)

    @classmethod
    def failed(cls, detail: str, status_code: int | None = None) -> DeliveryOutcome:
        return cls(success=False, detail=detail, status_code=status_code)
