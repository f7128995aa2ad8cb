"""Pydantic data models for batch send campaigns."""

from campaign_sender.models.batch import Batch
from campaign_sender.models.campaign_report import BatchResult, CampaignReport
from campaign_sender.models.config import Config
from campaign_sender.models.delivery_outcome import DeliveryOutcome

__all__ = [
    "Batch",
    "BatchResult",
    "CampaignReport",
    "Config",
    "DeliveryOutcome",
]
