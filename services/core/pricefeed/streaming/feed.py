"""Market data feed facade used by chart and detail views."""

from __future__ import annotations

import logging
from typing import Any

from ..config import Settings
from ..providers.base import FeedTransport
from ..providers.tradingview_ws import TradingViewWebSocketTransport
from ..utils.timeframes import Timeframe
from .connection import ConnectionManager
from .errors import SubscriptionError
from .registry import SubscriptionRegistry
from .summary import summarize
from .synthetic import generate_series
from .types import (
    ConnectionState,
    PriceSummary,
    Series,
    SeriesKind,
    SeriesSnapshot,
    SubscriptionKey,
    UpdateCallback,
)


logger = logging.getLogger(__name__)


class MarketDataFeed:
    """
    Single entry point for live and synthetic price series.

    Constructed once at startup and closed at shutdown. Without a transport
    the feed serves synthetic series only.
    """

    def __init__(self, transport: FeedTransport | None = None, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.transport = transport
        self.connection: ConnectionManager | None = None
        self.registry: SubscriptionRegistry | None = None
        self._summaries: dict[SubscriptionKey, PriceSummary] = {}

        if transport is not None:
            self.connection = ConnectionManager(transport)
            self.registry = SubscriptionRegistry(
                self.connection,
                exchange=self.settings.default_exchange,
                quote=self.settings.default_quote,
            )
            self.connection.add_listener(self._on_connection_state)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MarketDataFeed":
        """Build a feed with the TradingView transport, or synthetic-only if live is disabled."""
        if not settings.live_feed_enabled:
            logger.info("Live feed disabled; serving synthetic series only.")
            return cls(None, settings)
        transport = TradingViewWebSocketTransport(
            url=settings.provider_url,
            origin=settings.provider_origin,
            open_timeout=settings.open_timeout,
            close_timeout=settings.close_timeout,
            ping_interval=settings.ping_interval or None,
            session_timeout=settings.session_timeout,
            bar_count=settings.series_bar_count,
        )
        return cls(transport, settings)

    async def __aenter__(self) -> "MarketDataFeed":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def live_available(self) -> bool:
        return self.registry is not None

    @property
    def connection_state(self) -> ConnectionState:
        if self.connection is None:
            return ConnectionState.DISCONNECTED
        return self.connection.state

    def subscriptions(self) -> list[SubscriptionKey]:
        if self.registry is None:
            return []
        return self.registry.keys()

    def summary(self, symbol: str, timeframe: Any) -> PriceSummary | None:
        """Summary of the most recent update delivered for a subscription."""
        return self._summaries.get(SubscriptionKey.of(symbol, timeframe))

    async def subscribe(self, symbol: str, timeframe: Any, on_update: UpdateCallback) -> None:
        """
        Subscribe to live updates for a symbol and timeframe.

        Each update refreshes the key's summary before reaching on_update.

        Raises:
            SubscriptionError: If no live feed is configured or the session cannot be opened
        """
        if self.registry is None:
            raise SubscriptionError("no live feed configured")

        key = SubscriptionKey.of(symbol, timeframe)

        def handle_update(points: Series) -> None:
            self._summaries[key] = summarize(points)
            on_update(points)

        await self.registry.subscribe(symbol, timeframe, handle_update)

    async def unsubscribe(self, symbol: str, timeframe: Any) -> None:
        if self.registry is None:
            return
        await self.registry.unsubscribe(symbol, timeframe)
        self._summaries.pop(SubscriptionKey.of(symbol, timeframe), None)

    async def get_snapshot(
        self,
        timeframe: Any,
        kind: SeriesKind | str = SeriesKind.SIMPLE,
        symbol: str | None = None,
        live_if_available: bool = True,
    ) -> SeriesSnapshot:
        """
        One-shot series for a timeframe.

        Live-derived when a subscription for (symbol, timeframe) exists: the
        latest update if one arrived, else the next update within
        snapshot_timeout. Falls back to a synthetic series otherwise.
        """
        tf = Timeframe.parse(timeframe)
        kind = SeriesKind.parse(kind)

        points: Series | None = None
        if live_if_available and symbol and self.registry is not None:
            points = await self._live_series(symbol, timeframe)

        source = "live"
        if points:
            if kind is SeriesKind.SIMPLE:
                points = [p.as_simple() for p in points]
        else:
            source = "synthetic"
            points = generate_series(tf, kind)

        return SeriesSnapshot(
            timeframe=tf,
            kind=kind,
            source=source,
            points=points,
            summary=summarize(points),
            symbol=symbol,
        )

    async def _live_series(self, symbol: str, timeframe: Any) -> Series | None:
        if SubscriptionKey.of(symbol, timeframe) not in self.registry:
            return None
        points = self.registry.latest(symbol, timeframe)
        if points:
            return points
        logger.debug(f"No cached update for {symbol} {timeframe}; waiting for one")
        return await self.registry.wait_for_update(
            symbol, timeframe, timeout=self.settings.snapshot_timeout
        )

    def _on_connection_state(self, state: ConnectionState) -> None:
        if state is ConnectionState.DISCONNECTED:
            # Subscriptions do not survive the connection
            self._summaries.clear()

    async def close(self) -> None:
        """Unsubscribe everything and disconnect."""
        if self.registry is not None:
            await self.registry.unsubscribe_all()
        if self.connection is not None:
            await self.connection.disconnect()
        self._summaries.clear()
