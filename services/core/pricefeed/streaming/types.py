"""Canonical types shared by the feed layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..utils.symbols import extract_symbol
from ..utils.timeframes import Timeframe


class SeriesKind(str, Enum):
    """Whether a series carries only price (line) or full OHLCV (candlestick)."""
    SIMPLE = "simple"
    OHLCV = "ohlcv"

    @classmethod
    def parse(cls, value: object) -> "SeriesKind":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        # UI chart types map onto series kinds
        if text in ("ohlcv", "candlestick", "candle"):
            return cls.OHLCV
        return cls.SIMPLE


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass(frozen=True)
class PricePoint:
    """Canonical time-series sample."""
    timestamp: int  # Unix timestamp in milliseconds
    price: float
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None

    def __post_init__(self) -> None:
        ohlc = (self.open, self.high, self.low, self.close)
        present = [v is not None for v in ohlc]
        if any(present) and not all(present):
            raise ValueError(f"Partial OHLC at ts={self.timestamp}: {ohlc}")
        if all(present):
            body_low = min(self.open, self.close)
            body_high = max(self.open, self.close)
            if not (self.low <= body_low and body_high <= self.high):
                raise ValueError(
                    f"OHLC out of order at ts={self.timestamp}: "
                    f"o={self.open} h={self.high} l={self.low} c={self.close}"
                )

    @property
    def has_ohlc(self) -> bool:
        return self.open is not None

    def as_simple(self) -> "PricePoint":
        """Drop OHLCV fields, keeping timestamp and price."""
        return PricePoint(timestamp=self.timestamp, price=self.price)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"timestamp": self.timestamp, "price": self.price}
        for name in ("open", "high", "low", "close", "volume"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


Series = list[PricePoint]
UpdateCallback = Callable[[Series], None]


@dataclass(frozen=True)
class SubscriptionKey:
    """Identity of an active subscription."""
    symbol: str
    timeframe: str

    @classmethod
    def of(cls, symbol: str, timeframe: object) -> "SubscriptionKey":
        tf = timeframe.value if isinstance(timeframe, Timeframe) else str(timeframe).strip().upper()
        return cls(symbol=extract_symbol(symbol), timeframe=tf)

    def __str__(self) -> str:
        return f"{self.symbol}-{self.timeframe}"


@dataclass(frozen=True)
class PriceSummary:
    """Derived headline figures for a series."""
    current_price: float = 0.0
    change_absolute: float = 0.0
    change_percent: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "current_price": self.current_price,
            "change_absolute": self.change_absolute,
            "change_percent": self.change_percent,
        }


@dataclass
class SeriesSnapshot:
    """One-shot series plus its summary."""
    timeframe: Timeframe
    kind: SeriesKind
    source: str  # "live" | "synthetic"
    points: Series = field(default_factory=list)
    summary: PriceSummary = field(default_factory=PriceSummary)
    symbol: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe.value,
            "kind": self.kind.value,
            "source": self.source,
            "summary": self.summary.to_dict(),
            "points": [p.to_dict() for p in self.points],
        }
