"""
Service coordinator.

Ties together the strategy registry, analysis store, read cache, market
data sources and notification dispatcher behind one object that the REST
layer and scripts call.
"""

from pathlib import Path
from typing import Any, Optional, Union

import structlog

from .cache.ttl_cache import TTLCache
from .config.loader import ConfigLoader
from .config.notifications import build_notification_config
from .config.validation import ConfigValidator
from .delivery.dispatcher import NotificationDispatcher
from .errors import InvalidAnalysisError, StrategyArchivedError
from .persistence.analysis_store import AnalysisRecord, AnalysisStore, TimestampLike
from .resilience.circuit_breaker import BreakerConfig, BreakerRegistry
from .sources.base import Quote
from .sources.http_source import HttpQuoteSource
from .sources.service import MarketDataService
from .strategies.models import StrategyConfig, StrategyStatus
from .strategies.registry import StrategyRegistry
from .validation.analysis_schema import AnalysisValidator

logger = structlog.get_logger(__name__)


class TraderService:
    """Main coordinator for strategy management and analysis queries."""

    def __init__(
        self,
        registry: StrategyRegistry,
        store: AnalysisStore,
        cache: Optional[TTLCache] = None,
        market_data: Optional[MarketDataService] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        breakers: Optional[BreakerRegistry] = None,
        retention_days: int = 90,
    ) -> None:
        self.logger = logger
        self.registry = registry
        self.store = store
        self.cache = cache or TTLCache("analysis")
        self.breakers = breakers or BreakerRegistry()
        self.market_data = market_data or MarketDataService([], breakers=self.breakers)
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.validator = AnalysisValidator()
        self.retention_days = retention_days

    @classmethod
    def create(
        cls,
        config_dir: Optional[Union[str, Path]] = None,
        settings_overrides: Optional[dict[str, Any]] = None,
    ) -> "TraderService":
        """
        Build a service from merged settings.

        Raises:
            ValueError: If the merged settings are invalid
        """
        loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        settings = loader.load_settings(settings_overrides)

        errors = ConfigValidator.validate_settings(settings)
        if errors:
            details = "; ".join(f"{err.field}: {err.message} (got: {err.value})" for err in errors)
            raise ValueError(f"Invalid settings: {details}")

        storage = settings["storage"]
        cache_params = settings["cache"]
        market_params = settings["market_data"]

        breakers = BreakerRegistry(BreakerConfig.from_dict(settings["breaker"]))
        sources = [
            HttpQuoteSource(
                source["name"],
                source["url"],
                timeout_seconds=source.get("timeout_seconds", market_params["timeout_seconds"])
            )
            for source in market_params.get("sources", []) or []
        ]

        service = cls(
            registry=StrategyRegistry(storage["strategies_dir"], config_loader=loader),
            store=AnalysisStore(storage["database_path"]),
            cache=TTLCache(
                "analysis",
                max_items=cache_params["max_items"],
                default_ttl_seconds=cache_params["ttl_seconds"]
            ),
            market_data=MarketDataService(
                sources,
                breakers=breakers,
                max_stale_seconds=market_params["max_stale_seconds"]
            ),
            dispatcher=NotificationDispatcher(build_notification_config(settings["notifications"])),
            breakers=breakers,
            retention_days=storage["retention_days"],
        )

        logger.info(
            "Trader service initialized",
            strategies_dir=str(storage["strategies_dir"]),
            database_path=str(storage["database_path"]),
            quote_sources=[source.name for source in sources]
        )
        return service

    @staticmethod
    def _cache_prefix(strategy_id: str) -> str:
        return f"analysis:{strategy_id}:"

    # Strategies

    def create_strategy(self, payload: dict[str, Any]) -> StrategyConfig:
        return self.registry.create(payload)

    def get_strategy(self, strategy_id: str) -> StrategyConfig:
        return self.registry.get(strategy_id)

    def list_strategies(self, status: Optional[StrategyStatus] = None) -> list[StrategyConfig]:
        return self.registry.list(status=status)

    def update_strategy(self, strategy_id: str, changes: dict[str, Any]) -> StrategyConfig:
        strategy = self.registry.update(strategy_id, changes)
        self.cache.invalidate_prefix(self._cache_prefix(strategy_id))
        return strategy

    def set_strategy_status(self, strategy_id: str, status: StrategyStatus) -> StrategyConfig:
        strategy = self.registry.set_status(strategy_id, status)
        self.cache.invalidate_prefix(self._cache_prefix(strategy_id))
        return strategy

    def delete_strategy(self, strategy_id: str) -> int:
        """Delete a strategy and its analysis history; returns deleted record count."""
        self.registry.delete(strategy_id)
        deleted = self.store.delete_strategy_records(strategy_id)
        self.cache.invalidate_prefix(self._cache_prefix(strategy_id))
        return deleted

    # Analysis

    def record_analysis(self, strategy_id: str, record: dict[str, Any]) -> AnalysisRecord:
        """
        Validate and store an analysis record, then notify destinations.

        Raises:
            StrategyNotFoundError: If the strategy does not exist
            StrategyArchivedError: If the strategy is archived
            InvalidAnalysisError: If the record fails validation
        """
        strategy = self.registry.get(strategy_id)
        if strategy.is_archived:
            raise StrategyArchivedError(
                f"Strategy '{strategy_id}' is archived and accepts no analysis",
                strategy_id=strategy_id
            )

        errors = self.validator.validate(record, strategy)
        if errors:
            raise InvalidAnalysisError(
                "Analysis record is invalid",
                errors=errors,
                strategy_id=strategy_id
            )

        normalized = self.validator.normalize(record)
        record_id, created = self.store.store_record(strategy_id, normalized)
        stored = self.store.get_record(record_id)

        # A repost of a stored record changes nothing and is not announced again
        if created:
            self.cache.invalidate_prefix(self._cache_prefix(strategy_id))
            self.dispatcher.dispatch(stored.to_dict())

        return stored

    def get_analysis(
        self,
        strategy_id: str,
        symbol: Optional[str] = None,
        signal: Optional[str] = None,
        start: Optional[TimestampLike] = None,
        end: Optional[TimestampLike] = None,
        limit: int = 50,
    ) -> dict[str, Any]:
        """
        Latest record, history and stats for a strategy.

        Raises:
            StrategyNotFoundError: If the strategy does not exist
        """
        self.registry.get(strategy_id)

        symbol = symbol.strip().upper() if symbol else None
        key = f"{self._cache_prefix(strategy_id)}{symbol}:{signal}:{start}:{end}:{limit}"

        cached = self.cache.get(key)
        if cached is not None:
            return {**cached, "cached": True}

        latest = self.store.get_latest(strategy_id, symbol=symbol)
        records = self.store.get_records(
            strategy_id,
            symbol=symbol,
            signal=signal,
            start=start,
            end=end,
            limit=limit
        )
        response = {
            "strategyId": strategy_id,
            "latest": latest.to_dict() if latest else None,
            "records": [record.to_dict() for record in records],
            "stats": self.store.get_stats(strategy_id),
        }

        self.cache.set(key, response)
        return {**response, "cached": False}

    # Market data and operations

    def get_quote(self, symbol: str) -> Quote:
        return self.market_data.get_quote(symbol)

    def cleanup(self, retention_days: Optional[int] = None) -> int:
        """Apply analysis retention; returns number of deleted records."""
        deleted = self.store.cleanup_old_records(retention_days or self.retention_days)
        if deleted:
            self.cache.clear()
        return deleted

    def health(self) -> dict[str, Any]:
        """Overall service health for the /health endpoint."""
        strategies = self.registry.list()
        by_status: dict[str, int] = {status.value: 0 for status in StrategyStatus}
        for strategy in strategies:
            by_status[strategy.status.value] += 1

        return {
            "status": "ok" if self.breakers.all_closed() else "degraded",
            "strategies": {"total": len(strategies), "by_status": by_status},
            "breakers": self.breakers.snapshot(),
            "cache": self.cache.stats(),
        }
