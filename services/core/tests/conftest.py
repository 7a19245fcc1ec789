"""Shared fakes for feed-layer tests. No network access."""

import asyncio

import pytest

from pricefeed.config import Settings
from pricefeed.providers.base import TransportError


class FakeChartSession:
    """Chart session that lets tests push provider payloads by hand."""

    def __init__(self, ticker, timeframe, fail_close=False):
        self.ticker = ticker
        self.timeframe = timeframe
        self.handler = None
        self.close_calls = 0
        self.fail_close = fail_close

    def on_update(self, handler):
        self.handler = handler

    def push(self, payload):
        if self.handler is not None:
            self.handler(payload)

    async def close(self):
        self.close_calls += 1
        if self.fail_close:
            raise TransportError("provider refused chart_delete_session")


class FakeTransport:
    """In-memory FeedTransport with controllable failures and latency."""

    def __init__(self, fail_connect=False, fail_create=False, fail_disconnect=False, fail_close=False):
        self.fail_connect = fail_connect
        self.fail_create = fail_create
        self.fail_disconnect = fail_disconnect
        self.fail_close = fail_close
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.sessions = []
        self.close_handlers = []
        self.gate = None  # set to an asyncio.Event to hold connect() open

    def on_close(self, handler):
        self.close_handlers.append(handler)

    async def connect(self):
        self.connect_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.fail_connect:
            raise TransportError("handshake refused")

    async def disconnect(self):
        self.disconnect_calls += 1
        if self.fail_disconnect:
            raise TransportError("close frame rejected")

    async def create_chart(self, ticker, timeframe):
        if self.fail_create:
            raise TransportError(f"symbol_error: {ticker}")
        session = FakeChartSession(ticker, timeframe, fail_close=self.fail_close)
        self.sessions.append(session)
        return session

    def drop(self, error=None):
        """Simulate the provider closing the connection."""
        for handler in list(self.close_handlers):
            handler(error)


def make_bars(closes, start=1_700_000_000, step=3600):
    """Provider bar batch with times in seconds."""
    return {
        "bars": [
            {
                "time": start + i * step,
                "open": c - 1.0,
                "high": c + 2.0,
                "low": c - 3.0,
                "close": c,
                "volume": 10.0 + i,
            }
            for i, c in enumerate(closes)
        ]
    }


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def settings():
    return Settings(_env_file=None, snapshot_timeout=0.05)
