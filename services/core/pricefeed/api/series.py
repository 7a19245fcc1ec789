"""
Series and subscription API endpoints for chart views.

Serves one-shot snapshots (live when subscribed, synthetic otherwise) and
manages live subscriptions on the shared feed.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..streaming.errors import SubscriptionError
from ..streaming.feed import MarketDataFeed
from ..streaming.types import Series

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["series"])

# Feed instance (set by main.py)
_feed: MarketDataFeed | None = None


def set_feed(feed: MarketDataFeed | None) -> None:
    """Set the feed instance."""
    global _feed
    _feed = feed


def get_feed() -> MarketDataFeed:
    """Get the feed instance."""
    if _feed is None:
        raise RuntimeError("Feed not initialized")
    return _feed


class SubscriptionRequest(BaseModel):
    symbol: str = Field(..., description="Coin symbol or display name (e.g., BTC or 'Bitcoin (BTC)')")
    timeframe: str = Field("1D", description="1D | 1W | 1M | 1Y")


@router.get("/series")
async def get_series(
    timeframe: str = Query("1D", description="1D | 1W | 1M | 1Y"),
    kind: str = Query("simple", description="simple | ohlcv"),
    symbol: str | None = Query(None, description="Use live data for this symbol if subscribed"),
    live: bool = Query(True, description="Prefer live data when available"),
    feed: MarketDataFeed = Depends(get_feed),
) -> dict[str, Any]:
    """
    Get a price series with its summary.

    Example:
        {
            "symbol": "BTC",
            "timeframe": "1D",
            "kind": "simple",
            "source": "synthetic",
            "summary": {"current_price": 47012.5, "change_absolute": 212.4, "change_percent": 0.45},
            "points": [{"timestamp": 1700000000000, "price": 46800.1}, ...]
        }
    """
    snapshot = await feed.get_snapshot(timeframe, kind, symbol=symbol, live_if_available=live)
    return snapshot.to_dict()


@router.get("/subscriptions")
async def list_subscriptions(feed: MarketDataFeed = Depends(get_feed)) -> dict[str, Any]:
    """List active live subscriptions and their latest summaries."""
    items = []
    for key in feed.subscriptions():
        summary = feed.summary(key.symbol, key.timeframe)
        items.append({
            "symbol": key.symbol,
            "timeframe": key.timeframe,
            "summary": summary.to_dict() if summary else None,
        })
    return {
        "connection": feed.connection_state.value,
        "subscriptions": items,
    }


@router.post("/subscriptions")
async def create_subscription(
    req: SubscriptionRequest,
    feed: MarketDataFeed = Depends(get_feed),
) -> dict[str, Any]:
    """Start (or reaffirm) a live subscription. Updates are cached for /v1/series."""

    def on_update(points: Series) -> None:
        logger.debug(f"{req.symbol} {req.timeframe}: {len(points)} point(s), last={points[-1].price}")

    try:
        await feed.subscribe(req.symbol, req.timeframe, on_update)
    except SubscriptionError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {"ok": True, "symbol": req.symbol, "timeframe": req.timeframe}


@router.delete("/subscriptions")
async def delete_subscription(
    symbol: str = Query(...),
    timeframe: str = Query("1D"),
    feed: MarketDataFeed = Depends(get_feed),
) -> dict[str, Any]:
    """Stop a live subscription. Unknown subscriptions are ignored."""
    await feed.unsubscribe(symbol, timeframe)
    return {"ok": True, "symbol": symbol, "timeframe": timeframe}
