"""Batch send campaigns: CSV records delivered to an HTTP endpoint in batches."""

__version__ = "1.0.0"
