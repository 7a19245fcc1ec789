"""Canonical coin symbol to provider ticker mapping."""

from __future__ import annotations

import re


DEFAULT_SYMBOL = "BTC"
DEFAULT_EXCHANGE = "BINANCE"
DEFAULT_QUOTE = "USDT"

# "Bitcoin (BTC)" -> "BTC"
_PAREN_RE = re.compile(r"\((\w+)\)")

KNOWN_TICKERS = {
    "BTC": "BINANCE:BTCUSDT",
    "ETH": "BINANCE:ETHUSDT",
    "SOL": "BINANCE:SOLUSDT",
    "XRP": "BINANCE:XRPUSDT",
    "ADA": "BINANCE:ADAUSDT",
    "DOGE": "BINANCE:DOGEUSDT",
    "DOT": "BINANCE:DOTUSDT",
    "AVAX": "BINANCE:AVAXUSDT",
    "MATIC": "BINANCE:MATICUSDT",
    "LINK": "BINANCE:LINKUSDT",
}


def extract_symbol(canonical: str | None) -> str:
    """
    Pull the bare, uppercased coin symbol out of a canonical symbol.

    Accepts either a bare symbol ("btc") or a display string with the
    symbol in parentheses ("Bitcoin (BTC)"). Blank input yields the default
    symbol.
    """
    text = (canonical or "").strip()
    match = _PAREN_RE.search(text)
    symbol = match.group(1) if match else text
    symbol = symbol.upper()
    return symbol or DEFAULT_SYMBOL


def map_symbol(
    canonical: str | None,
    exchange: str = DEFAULT_EXCHANGE,
    quote: str = DEFAULT_QUOTE,
) -> str:
    """
    Map a canonical symbol to an exchange-qualified provider ticker.

    Known coins come from a fixed table; anything else gets a synthesized
    "<EXCHANGE>:<SYMBOL><QUOTE>" ticker. Never raises.

    Args:
        canonical: Bare symbol or display string (e.g., "Bitcoin (BTC)")
        exchange: Exchange prefix for synthesized tickers
        quote: Quote currency for synthesized tickers

    Returns:
        Provider ticker (e.g., "BINANCE:BTCUSDT")
    """
    symbol = extract_symbol(canonical)
    known = KNOWN_TICKERS.get(symbol)
    if known:
        return known
    return f"{exchange.upper()}:{symbol}{quote.upper()}"
