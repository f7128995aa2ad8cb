"""Campaign core -- pure batching functions, rate limiting and errors."""

from __future__ import annotations

from campaign_sender.core.batching import chunk_records, count_batches, validate_settings
from campaign_sender.core.errors import ConfigError, DeliveryFailure, SourceReadError
from campaign_sender.core.rate_limit import SlidingWindowRateLimiter

__all__ = [
    "ConfigError",
    "DeliveryFailure",
    "SlidingWindowRateLimiter",
    "SourceReadError",
    "chunk_records",
    "count_batches",
    "validate_settings",
]
