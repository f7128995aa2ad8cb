"""Campaign error taxonomy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from campaign_sender.models.campaign_report import CampaignReport


class ConfigError(ValueError):
    """Invalid batch size or limits. Raised before any I/O begins."""


class SourceReadError(Exception):
    """The record source failed mid-stream.

    ``report`` holds the outcomes of batches submitted before the failure and
    ``pending_records`` the records that were read but never submitted.
    """

    def __init__(
        self,
        message: str,
        report: CampaignReport | None = None,
        pending_records: list[Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.report = report
        self.pending_records = pending_records or []


class DeliveryFailure(Exception):
    """A single batch delivery failed. Contained to that batch."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
