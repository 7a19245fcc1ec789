from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get the directory where this config.py file is located
_config_dir = Path(__file__).parent
_env_file = _config_dir.parent / ".env"  # services/core/.env


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # Live feed (set false to serve synthetic series only)
    live_feed_enabled: bool = True
    provider_url: str = "wss://data.tradingview.com/socket.io/websocket"
    provider_origin: str = "https://www.tradingview.com"

    # Ticker synthesis for coins missing from the fixed table
    default_exchange: str = "BINANCE"
    default_quote: str = "USDT"

    # Transport timeouts (seconds)
    open_timeout: float = 10.0
    close_timeout: float = 10.0
    ping_interval: float = 20.0
    session_timeout: float = 10.0
    series_bar_count: int = 300

    # How long a snapshot waits for a first live update before going synthetic
    snapshot_timeout: float = 5.0

    # Subscribed at startup when the live feed is enabled, as symbol:timeframe
    default_symbols: str = ""

    def get_default_symbols(self) -> list[tuple[str, str]]:
        """Parse default_symbols ("BTC:1D,ETH") into (symbol, timeframe) pairs."""
        pairs = []
        for item in self.default_symbols.split(","):
            item = item.strip()
            if not item:
                continue
            symbol, _, timeframe = item.partition(":")
            pairs.append((symbol.strip().upper(), (timeframe.strip() or "1D").upper()))
        return pairs


def get_settings() -> Settings:
    return Settings()
