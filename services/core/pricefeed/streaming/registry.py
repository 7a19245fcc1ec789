"""Keyed registry of active provider chart subscriptions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from ..providers.base import ChartSession
from ..providers.normalize import is_ascending, normalize_bars
from ..utils.symbols import DEFAULT_EXCHANGE, DEFAULT_QUOTE, map_symbol
from ..utils.timeframes import map_timeframe
from .connection import ConnectionManager
from .errors import FeedConnectionError, SubscriptionError
from .types import ConnectionState, Series, SubscriptionKey, UpdateCallback


logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    key: SubscriptionKey
    ticker: str
    session: ChartSession
    callback: UpdateCallback
    active: bool = True
    latest: Series | None = None
    waiters: list[asyncio.Future] = field(default_factory=list)


class SubscriptionRegistry:
    """
    Owns the set of active (symbol, timeframe) subscriptions.

    One provider session and one callback per key. Mutations are serialized
    with a lock; an update racing an unsubscribe for the same key is dropped
    rather than delivered to the stale callback.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        exchange: str = DEFAULT_EXCHANGE,
        quote: str = DEFAULT_QUOTE,
    ):
        self.connection = connection
        self.exchange = exchange
        self.quote = quote
        self._entries: dict[SubscriptionKey, _Entry] = {}
        self._lock = asyncio.Lock()
        connection.add_listener(self._on_connection_state)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[SubscriptionKey]:
        return list(self._entries)

    async def subscribe(self, symbol: str, timeframe: Any, on_update: UpdateCallback) -> SubscriptionKey:
        """
        Subscribe to live bars for a symbol and timeframe.

        Repeated calls for the same key reuse the existing session and keep
        the first callback.

        Raises:
            SubscriptionError: If connecting or opening the session fails
        """
        key = SubscriptionKey.of(symbol, timeframe)
        async with self._lock:
            if key in self._entries:
                logger.debug(f"Already subscribed to {key}")
                return key

            try:
                await self.connection.connect()
            except FeedConnectionError as e:
                raise SubscriptionError(f"cannot subscribe to {key}: {e}") from e

            ticker = map_symbol(key.symbol, self.exchange, self.quote)
            token = map_timeframe(key.timeframe)
            try:
                session = await self.connection.transport.create_chart(ticker, token)
            except Exception as e:
                logger.error(f"Failed to subscribe to {ticker} ({token}): {e}")
                raise SubscriptionError(f"cannot open chart for {key}: {e}") from e

            entry = _Entry(key=key, ticker=ticker, session=session, callback=on_update)
            session.on_update(lambda payload: self._deliver(entry, payload))
            self._entries[key] = entry
            logger.info(f"Subscribed to {key} as {ticker} ({token})")
            return key

    async def unsubscribe(self, symbol: str, timeframe: Any) -> None:
        """Remove a subscription. Provider teardown errors are logged, not raised."""
        key = SubscriptionKey.of(symbol, timeframe)
        async with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return
            self._deactivate(entry)
            try:
                await entry.session.close()
            except Exception as e:
                logger.warning(f"Error unsubscribing from {key}: {e}")
            logger.info(f"Unsubscribed from {key}")

    async def unsubscribe_all(self) -> None:
        for key in self.keys():
            await self.unsubscribe(key.symbol, key.timeframe)

    def latest(self, symbol: str, timeframe: Any) -> Series | None:
        """Most recent normalized update for a key, or None."""
        entry = self._entries.get(SubscriptionKey.of(symbol, timeframe))
        if entry is None or entry.latest is None:
            return None
        return list(entry.latest)

    async def wait_for_update(self, symbol: str, timeframe: Any, timeout: float) -> Series | None:
        """
        Wait for the next update on an active subscription.

        Returns None if the key is not subscribed, is removed while waiting,
        or no update arrives within the timeout.
        """
        entry = self._entries.get(SubscriptionKey.of(symbol, timeframe))
        if entry is None:
            return None
        waiter = asyncio.get_running_loop().create_future()
        entry.waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout=timeout)
        except asyncio.TimeoutError:
            return None
        finally:
            if waiter in entry.waiters:
                entry.waiters.remove(waiter)

    def _deliver(self, entry: _Entry, payload: Any) -> None:
        if not entry.active or self._entries.get(entry.key) is not entry:
            logger.debug(f"Dropping update for inactive subscription {entry.key}")
            return

        points = normalize_bars(payload)
        if not points:
            return
        if not is_ascending(points):
            logger.warning(f"Dropping non-ascending update for {entry.key} ({len(points)} points)")
            return

        entry.latest = points
        for waiter in entry.waiters:
            if not waiter.done():
                waiter.set_result(list(points))

        try:
            entry.callback(list(points))
        except Exception as e:
            logger.error(f"Update callback for {entry.key} failed: {e}", exc_info=True)

    def _deactivate(self, entry: _Entry) -> None:
        entry.active = False
        for waiter in entry.waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _on_connection_state(self, state: ConnectionState) -> None:
        if state is not ConnectionState.DISCONNECTED or not self._entries:
            return
        # Sessions die with the connection
        logger.info(f"Connection closed; dropping {len(self._entries)} subscription(s)")
        for entry in self._entries.values():
            self._deactivate(entry)
        self._entries.clear()
