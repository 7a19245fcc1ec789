"""Error taxonomy for the market-data feed layer."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for feed-layer errors."""
    pass


class FeedConnectionError(FeedError, ConnectionError):
    """Raised when the provider transport cannot be established. Retry with connect()."""
    pass


class SubscriptionError(FeedError):
    """Raised when a provider chart session cannot be opened for a key."""
    pass


class InsufficientDataError(FeedError):
    """Raised when derived metrics are requested for a too-short series."""
    pass
