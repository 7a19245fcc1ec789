"""Tests for timeframe mapping."""

from pricefeed.utils.timeframes import (
    DAY_MS,
    HOUR_MS,
    Timeframe,
    map_timeframe,
    timeframe_spec,
)


class TestMapTimeframe:
    """Tests for map_timeframe."""

    def test_known_tokens(self):
        assert map_timeframe("1D") == "1"
        assert map_timeframe("1W") == "1W"
        assert map_timeframe("1M") == "1M"
        assert map_timeframe("1Y") == "12M"

    def test_accepts_enum(self):
        assert map_timeframe(Timeframe.YEAR) == "12M"

    def test_unknown_falls_back_to_1d(self):
        """Unknown timeframes use the 1D token instead of raising."""
        assert map_timeframe("5Y") == map_timeframe("1D")
        assert map_timeframe("") == "1"
        assert map_timeframe(None) == "1"
        assert map_timeframe(42) == "1"

    def test_case_insensitive(self):
        assert map_timeframe("1w") == "1W"


class TestTimeframeSpec:
    """Tests for the synthetic series table."""

    def test_points_and_spacing(self):
        assert (timeframe_spec("1D").points, timeframe_spec("1D").spacing_ms) == (24, HOUR_MS)
        assert (timeframe_spec("1W").points, timeframe_spec("1W").spacing_ms) == (168, HOUR_MS)
        assert (timeframe_spec("1M").points, timeframe_spec("1M").spacing_ms) == (30, DAY_MS)
        assert (timeframe_spec("1Y").points, timeframe_spec("1Y").spacing_ms) == (365, DAY_MS)

    def test_volatility_increases_with_timeframe(self):
        vols = [timeframe_spec(tf).volatility for tf in ("1D", "1W", "1M", "1Y")]
        assert vols == sorted(vols)
        assert len(set(vols)) == 4

    def test_unknown_uses_1d_spec(self):
        assert timeframe_spec("bogus") == timeframe_spec("1D")
