"""
Unified Configuration Settings - Single Source of Truth
=======================================================
All application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator
from typing import List, Optional
from enum import Enum


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


# === TRADING CONFIGURATION ===

class TradingSettings(BaseSettings):
    """Position sizing and execution gates (plain env names, no prefix)"""
    position_size_percent: float = Field(default=1.0, description="Percent of available balance per trade")
    min_trade_balance: float = Field(default=10.0, description="Minimum USD amount for a trade")
    auto_trade_enabled: bool = Field(
        default=False,
        description="Execute golden-cross recommendations without a human (places REAL orders)"
    )
    recommendation_ttl_seconds: int = Field(default=600, description="Recommendation validity window")
    recommendation_sweep_interval_seconds: int = Field(default=60, description="Best-effort expiry sweep")

    @field_validator('position_size_percent')
    @classmethod
    def validate_position_size(cls, v):
        if v <= 0 or v > 100:
            raise ValueError(f"position_size_percent must be in (0, 100], got {v}")
        return v

    @field_validator('min_trade_balance')
    @classmethod
    def validate_min_trade_balance(cls, v):
        if v < 0:
            raise ValueError(f"min_trade_balance must be >= 0, got {v}")
        return v

    class Config:
        env_prefix = ""


# === EXCHANGE CONFIGURATION ===

class ExchangeSettings(BaseSettings):
    """Exchange gateway configuration"""
    name: str = Field(default="bybit", description="Exchange the gateway talks to")
    api_key: str = Field(default="", description="API key")
    api_secret: str = Field(default="", description="API secret")
    testnet: bool = Field(default=False)
    base_url: str = Field(default="https://api.bybit.com/v5")
    testnet_base_url: str = Field(default="https://api-testnet.bybit.com/v5")
    recv_window: int = Field(default=5000, description="Signature validity window in ms")
    category: str = Field(default="linear")
    account_type: str = Field(default="UNIFIED")
    quote_coin: str = Field(default="USDT")
    orderbook_depth: int = Field(default=5)
    request_timeout_seconds: float = Field(default=10.0)
    requests_per_second: int = Field(default=10)
    circuit_failure_threshold: int = Field(default=5)
    circuit_recovery_seconds: float = Field(default=60.0)

    @property
    def effective_base_url(self) -> str:
        return self.testnet_base_url if self.testnet else self.base_url

    class Config:
        env_prefix = "EXCHANGE_"


# === DETECTION CONFIGURATION ===

class VolumeHistorySettings(BaseSettings):
    """Volume sampling and moving-average windows"""
    min_sample_gap_seconds: float = Field(default=270.0, description="Minimum gap between stored samples")
    retention_hours: float = Field(default=24.0, description="Samples older than this are pruned")
    max_points: Optional[int] = Field(default=None, description="Optional cap on samples per key")
    fast_window: int = Field(default=3, description="Fast moving-average window")
    slow_window: int = Field(default=8, description="Slow moving-average window")
    poll_enabled: bool = Field(default=True, description="Poll exchange tickers on a timer")
    poll_interval_seconds: float = Field(default=300.0)
    symbols: List[str] = Field(default_factory=list, description="Signal symbols to track, empty means all")

    @model_validator(mode='after')
    def validate_windows(self):
        if self.fast_window < 1 or self.slow_window < 1:
            raise ValueError("Moving-average windows must be >= 1")
        if self.fast_window >= self.slow_window:
            raise ValueError(
                f"fast_window ({self.fast_window}) must be smaller than slow_window ({self.slow_window})"
            )
        if self.max_points is not None and self.max_points < self.slow_window:
            raise ValueError("max_points must hold at least slow_window samples")
        return self

    class Config:
        env_prefix = "VOLUME_"


class NotificationSettings(BaseSettings):
    """Cross notification ledger configuration"""
    retention_seconds: int = Field(default=600)
    cleanup_interval_seconds: int = Field(default=120)
    max_entries: int = Field(default=100)

    class Config:
        env_prefix = "NOTIFY_"


# === LOGGING CONFIGURATION ===

class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: LogLevel = Field(default=LogLevel.INFO)
    file_enabled: bool = Field(default=False)
    console_enabled: bool = Field(default=True)
    structured_logging: bool = Field(default=True)
    log_dir: str = Field(default="logs")
    max_file_size_mb: int = Field(default=100)
    backup_count: int = Field(default=5)

    class Config:
        env_prefix = "LOG_"


# === API CONFIGURATION ===

class ApiSettings(BaseSettings):
    """HTTP server configuration"""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)
    cors_origins: list = Field(default_factory=lambda: ["*"])

    class Config:
        env_prefix = "API_"


# === MAIN APPLICATION SETTINGS ===

class AppSettings(BaseSettings):
    """Main application settings - Single Source of Truth"""

    app_name: str = Field(default="Volume Cross")
    version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    trading: TradingSettings = Field(default_factory=TradingSettings)
    exchange: ExchangeSettings = Field(default_factory=ExchangeSettings)
    volume: VolumeHistorySettings = Field(default_factory=VolumeHistorySettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"  # Allows TRADING__AUTO_TRADE_ENABLED=true
        case_sensitive = False
        extra = "ignore"
