from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI

from .api import series
from .config import get_settings
from .streaming.errors import SubscriptionError
from .streaming.feed import MarketDataFeed


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

feed: MarketDataFeed | None = None


def _log_update(symbol: str, timeframe: str):
    def on_update(points: Any) -> None:
        logger.debug(f"{symbol} {timeframe}: {len(points)} point(s)")
    return on_update


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    global feed

    # Startup: build the one feed; the provider connection is opened lazily
    feed = MarketDataFeed.from_settings(settings)
    series.set_feed(feed)

    if feed.live_available:
        for symbol, timeframe in settings.get_default_symbols():
            try:
                await feed.subscribe(symbol, timeframe, _log_update(symbol, timeframe))
            except SubscriptionError as e:
                logger.warning(f"Startup subscription {symbol} {timeframe} failed: {e}")

    yield

    # Shutdown: drop subscriptions and close the provider connection
    await feed.close()
    series.set_feed(None)


app = FastAPI(
    title="Price Feed API",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(series.router)


@app.get("/health")
async def health() -> dict[str, Any]:
    return {
        "ok": True,
        "ts": int(time.time()),
        "live_feed_enabled": settings.live_feed_enabled,
        "connection": feed.connection_state.value if feed else "disconnected",
    }
