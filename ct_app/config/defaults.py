"""Default configuration parameters for the strategy registry service."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RiskParams:
    """Default risk parameters applied to new strategies (fractions of equity/price)."""
    stop_loss: float = 0.02                 # Exit when price moves 2% against entry
    take_profit: float = 0.04               # Exit when price moves 4% in favour
    max_position_pct: float = 0.10          # Max share of equity in one position
    max_daily_loss: float = 0.05            # Halt threshold for daily drawdown


@dataclass(frozen=True)
class StrategyDefaults:
    """Defaults merged under every strategy creation payload."""
    interval: str = "1h"
    description: str = ""
    risk_params: RiskParams = field(default_factory=RiskParams)


@dataclass(frozen=True)
class StorageParams:
    """On-disk locations and retention."""
    strategies_dir: str = "strategies"      # Root of <name>/config.json tree
    database_path: str = "analysis.db"      # SQLite analysis store
    retention_days: int = 90


@dataclass(frozen=True)
class CacheParams:
    """Analysis read cache parameters."""
    max_items: int = 1024
    ttl_seconds: float = 30.0


@dataclass(frozen=True)
class BreakerParams:
    """Circuit breaker parameters shared by all market data sources."""
    failure_threshold: int = 5              # Consecutive failures before opening
    reset_timeout_seconds: float = 30.0     # Time spent open before a trial call
    half_open_max_calls: int = 1
    success_threshold: int = 1              # Trial successes needed to close


@dataclass(frozen=True)
class MarketDataParams:
    """Market data sources, tried in order."""
    sources: tuple = ()                     # ({"name": ..., "url": ".../{symbol}"}, ...)
    timeout_seconds: int = 5
    max_stale_seconds: int = 300            # Oldest acceptable fallback quote


@dataclass(frozen=True)
class NotificationParams:
    """Analysis notification delivery parameters."""
    enabled: bool = True
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0
    retry_backoff: float = 2.0              # Multiplier applied to the delay after each retry
    destinations: tuple = ()               # ({"name": ..., "method": "file_output", ...}, ...)


@dataclass(frozen=True)
class ApiParams:
    """HTTP server binding."""
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    strategy_defaults: StrategyDefaults
    storage: StorageParams
    cache: CacheParams
    breaker: BreakerParams
    market_data: MarketDataParams
    notifications: NotificationParams
    api: ApiParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        strategy_defaults=StrategyDefaults(),
        storage=StorageParams(),
        cache=CacheParams(),
        breaker=BreakerParams(),
        market_data=MarketDataParams(),
        notifications=NotificationParams(),
        api=ApiParams(),
        logging=LoggingParams(),
    )
