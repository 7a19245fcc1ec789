"""Base types and protocols for streaming chart providers."""

from __future__ import annotations

from typing import Any, Callable, Protocol


# Receives a provider-native bar batch, e.g. {"bars": [{"time": ..., "close": ...}]}
BarHandler = Callable[[Any], None]
# Receives the exception that ended the connection, or None on a clean close
CloseHandler = Callable[[BaseException | None], None]


class TransportError(Exception):
    """Raised by transports when the provider rejects or drops a request."""
    pass


class ChartSession(Protocol):
    """Provider-side chart session scoped to one ticker and resolution."""

    def on_update(self, handler: BarHandler) -> None:
        """Register the push handler for bar batches."""
        ...

    async def close(self) -> None:
        """Tear down the provider-side session."""
        ...


class FeedTransport(Protocol):
    """Protocol for streaming market data providers."""

    async def connect(self) -> None:
        """
        Establish the underlying connection.

        Raises on failure; reconnection is the caller's decision.
        """
        ...

    async def disconnect(self) -> None:
        """Close the underlying connection and every open chart session."""
        ...

    async def create_chart(self, ticker: str, timeframe: str) -> ChartSession:
        """Open a chart session for a provider ticker and resolution token."""
        ...

    def on_close(self, handler: CloseHandler) -> None:
        """Register a handler called when the connection ends unexpectedly."""
        ...


