"""Derived headline metrics for a price series."""

from __future__ import annotations

import logging

from .errors import InsufficientDataError
from .types import PriceSummary, Series


logger = logging.getLogger(__name__)


def price_change(series: Series) -> tuple[float, float]:
    """
    Absolute and percentage change from the first to the last point.

    Raises:
        InsufficientDataError: If the series has fewer than 2 points or starts at zero
    """
    if len(series) < 2:
        raise InsufficientDataError(f"need at least 2 points, got {len(series)}")
    first = series[0].price
    last = series[-1].price
    if first == 0:
        raise InsufficientDataError("first price is zero")
    absolute = last - first
    return absolute, absolute / first * 100


def summarize(series: Series) -> PriceSummary:
    """Summary for a series; too-short series report zero change."""
    current = series[-1].price if series else 0.0
    try:
        absolute, percent = price_change(series)
    except InsufficientDataError as e:
        logger.debug(f"Price change defaulted to zero: {e}")
        absolute, percent = 0.0, 0.0
    return PriceSummary(
        current_price=current,
        change_absolute=absolute,
        change_percent=percent,
    )
