"""Tests for canonical symbol to provider ticker mapping."""

import pytest

from pricefeed.utils.symbols import KNOWN_TICKERS, extract_symbol, map_symbol


class TestExtractSymbol:
    """Tests for extract_symbol."""

    def test_bare_symbol_uppercased(self):
        assert extract_symbol("eth") == "ETH"

    def test_parenthesized_symbol(self):
        assert extract_symbol("Bitcoin (BTC)") == "BTC"

    def test_whitespace_trimmed(self):
        assert extract_symbol("  sol ") == "SOL"

    def test_blank_uses_default(self):
        assert extract_symbol("") == "BTC"
        assert extract_symbol(None) == "BTC"


class TestMapSymbol:
    """Tests for map_symbol."""

    def test_display_string_matches_bare_symbol(self):
        """'Bitcoin (BTC)' and 'BTC' both resolve to the table entry."""
        assert map_symbol("Bitcoin (BTC)") == map_symbol("BTC") == KNOWN_TICKERS["BTC"]
        assert map_symbol("BTC") == "BINANCE:BTCUSDT"

    @pytest.mark.parametrize("symbol", sorted(KNOWN_TICKERS))
    def test_known_table(self, symbol):
        assert map_symbol(symbol.lower()) == KNOWN_TICKERS[symbol]

    def test_unknown_symbol_synthesized(self):
        ticker = map_symbol("ZZZ")
        assert ticker
        assert "ZZZ" in ticker
        assert ticker == "BINANCE:ZZZUSDT"

    def test_unknown_symbol_custom_exchange_and_quote(self):
        assert map_symbol("Pepe (pepe)", exchange="kraken", quote="usd") == "KRAKEN:PEPEUSD"

    def test_known_symbol_ignores_custom_exchange(self):
        assert map_symbol("ETH", exchange="KRAKEN") == "BINANCE:ETHUSDT"

    def test_never_raises_on_odd_input(self):
        assert map_symbol("()") == "BINANCE:()USDT"
        assert map_symbol(None) == "BINANCE:BTCUSDT"
