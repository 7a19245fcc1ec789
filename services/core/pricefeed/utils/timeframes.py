from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum


logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class Timeframe(str, Enum):
    """Chart time ranges offered by the UI."""
    DAY = "1D"
    WEEK = "1W"
    MONTH = "1M"
    YEAR = "1Y"

    @classmethod
    def parse(cls, value: object) -> "Timeframe":
        """Resolve a timeframe, falling back to 1D for anything unrecognized."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        logger.debug(f"Unrecognized timeframe {value!r}, using {cls.DAY.value}")
        return cls.DAY


@dataclass(frozen=True)
class TimeframeSpec:
    points: int
    spacing_ms: int
    volatility: float  # half-width of the per-step uniform perturbation


# Provider resolution tokens (TradingView chart resolutions)
PROVIDER_TOKENS = {
    Timeframe.DAY: "1",
    Timeframe.WEEK: "1W",
    Timeframe.MONTH: "1M",
    Timeframe.YEAR: "12M",
}

TIMEFRAME_SPECS = {
    Timeframe.DAY: TimeframeSpec(points=24, spacing_ms=HOUR_MS, volatility=50.0),
    Timeframe.WEEK: TimeframeSpec(points=7 * 24, spacing_ms=HOUR_MS, volatility=150.0),
    Timeframe.MONTH: TimeframeSpec(points=30, spacing_ms=DAY_MS, volatility=400.0),
    Timeframe.YEAR: TimeframeSpec(points=365, spacing_ms=DAY_MS, volatility=1000.0),
}


def map_timeframe(timeframe: object) -> str:
    """Convert an app timeframe (1D/1W/1M/1Y) into the provider's resolution token.

    Unknown values map to the 1D token rather than raising, so newer UI
    timeframes keep working against an older feed.
    """
    return PROVIDER_TOKENS[Timeframe.parse(timeframe)]


def timeframe_spec(timeframe: object) -> TimeframeSpec:
    """Point count, spacing and volatility used for synthetic series."""
    return TIMEFRAME_SPECS[Timeframe.parse(timeframe)]
