"""
Synthetic OHLCV series generator.

Stands in for live data when no feed is configured or reachable. Output is a
directed random walk, so consecutive points are correlated and the series is
visually continuous. Only the structural invariants are guaranteed
(contiguous ascending timestamps, OHLC ordering, positive volume), not
reproducibility, unless a seeded rng is injected.
"""

from __future__ import annotations

import random
import time

from ..utils.timeframes import timeframe_spec
from .types import PricePoint, Series, SeriesKind


START_PRICE_RANGE = (45000.0, 50000.0)
WICK_JITTER = 200.0
VOLUME_RANGE = (500.0, 1500.0)


def generate_series(
    timeframe: object,
    kind: SeriesKind | str = SeriesKind.SIMPLE,
    *,
    now_ms: int | None = None,
    rng: random.Random | None = None,
) -> Series:
    """
    Generate a synthetic series for a timeframe.

    Args:
        timeframe: App timeframe (1D/1W/1M/1Y); unknown values use 1D
        kind: SIMPLE for price-only points, OHLCV for candlesticks
        now_ms: Reference "now" in milliseconds (defaults to wall clock)
        rng: Random source (defaults to the module-level generator)

    Returns:
        Series whose last timestamp is now minus one spacing unit
    """
    spec = timeframe_spec(timeframe)
    kind = SeriesKind.parse(kind)
    rng = rng or random.Random()
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    price = rng.uniform(*START_PRICE_RANGE)
    points: Series = []

    for i in range(spec.points):
        ts = now_ms - (spec.points - i) * spec.spacing_ms
        change = rng.uniform(-spec.volatility, spec.volatility)

        if kind is SeriesKind.SIMPLE:
            price += change
            points.append(PricePoint(timestamp=ts, price=price))
            continue

        open_ = price
        close = open_ + change
        high = max(open_, close) + rng.uniform(0.0, WICK_JITTER)
        low = min(open_, close) - rng.uniform(0.0, WICK_JITTER)
        points.append(PricePoint(
            timestamp=ts,
            price=close,
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=rng.uniform(*VOLUME_RANGE),
        ))
        price = close

    return points
