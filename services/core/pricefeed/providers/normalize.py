"""Normalize provider bar batches into canonical PricePoint series."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from ..streaming.types import PricePoint, Series


logger = logging.getLogger(__name__)

# Positional layout of TradingView series values: [time, open, high, low, close, volume]
_FIELDS = ("time", "open", "high", "low", "close", "volume")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _finite(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite value {value!r}")
    return number


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return _finite(value)


def _bar_fields(bar: Any) -> dict[str, Any]:
    if isinstance(bar, Mapping):
        return {name: bar.get(name) for name in _FIELDS}
    if _is_sequence(bar):
        return {name: (bar[i] if i < len(bar) else None) for i, name in enumerate(_FIELDS)}
    raise TypeError(f"unsupported bar type {type(bar).__name__}")


def normalize_bar(bar: Any) -> PricePoint:
    """
    Convert a single provider bar into a PricePoint.

    Provider time is in seconds; the canonical timestamp is milliseconds.
    The provider close becomes both price and close.

    Raises:
        TypeError, ValueError: If the bar is malformed
    """
    fields = _bar_fields(bar)
    if fields["time"] is None or fields["close"] is None:
        raise ValueError("bar is missing time or close")

    timestamp = int(_finite(fields["time"]) * 1000)
    close = _finite(fields["close"])
    open_ = _optional_float(fields["open"])
    high = _optional_float(fields["high"])
    low = _optional_float(fields["low"])

    if open_ is None or high is None or low is None:
        # Incomplete OHLC degrades to a line sample
        return PricePoint(
            timestamp=timestamp,
            price=close,
            volume=_optional_float(fields["volume"]),
        )

    return PricePoint(
        timestamp=timestamp,
        price=close,
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=_optional_float(fields["volume"]),
    )


def normalize_bars(payload: Any) -> Series:
    """
    Map a provider bar batch to a canonical series.

    Accepts either a payload object carrying a "bars" sequence or a bare
    sequence of bars. Missing or non-sequence input yields an empty list;
    malformed bars are skipped. Provider order is preserved.
    """
    if isinstance(payload, Mapping):
        payload = payload.get("bars")
    if not _is_sequence(payload):
        return []

    points: Series = []
    for bar in payload:
        try:
            points.append(normalize_bar(bar))
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed provider bar {bar!r}: {e}")
    return points


def is_ascending(series: Series) -> bool:
    """True if timestamps are strictly increasing."""
    return all(a.timestamp < b.timestamp for a, b in zip(series, series[1:]))
