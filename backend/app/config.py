"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Binance spot endpoints
    binance_rest_url: str = "https://api.binance.com"
    binance_ws_url: str = "wss://stream.binance.com:9443/ws"
    request_timeout: float = 10.0
    rest_calls_per_minute: int = 1200

    # Historical bootstrap
    history_limit: int = 500

    # Live stream
    reconnect_delay: float = 3.0  # Fixed delay, retried while subscribed

    # Series
    series_max_size: int = 1000

    # Indicator periods
    sma_period: int = 20
    ema_fast_period: int = 20
    ema_slow_period: int = 50
    rsi_period: int = 14

    # Watchlist
    quote_asset: str = "USDT"
    popular_symbols_limit: int = 50
    fallback_symbols: list[str] = ["BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT"]

    # Leverage used when projecting level returns
    display_leverage: float = 10.0

    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
