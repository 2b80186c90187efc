"""Quote service with per-source circuit breakers and stale fallback."""

import threading
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

import structlog

from ..errors import CircuitOpenError, DataSourceError, DataSourceUnavailableError
from ..resilience.circuit_breaker import BreakerRegistry
from ..utils.time import is_stale, utc_now
from .base import Quote, QuoteSource

logger = structlog.get_logger(__name__)


class MarketDataService:
    """
    Resolves quotes from an ordered list of sources.

    Each source is called through its own circuit breaker. When every source
    fails or is short-circuited, the last quote seen for the symbol is
    returned marked ``stale`` as long as it is not older than
    ``max_stale_seconds``.
    """

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        breakers: Optional[BreakerRegistry] = None,
        max_stale_seconds: float = 300,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sources = list(sources)
        self.breakers = breakers or BreakerRegistry()
        self.max_stale_seconds = max_stale_seconds
        self._clock = clock
        self._last_known: dict[str, Quote] = {}
        self._lock = threading.Lock()

        for source in self.sources:
            self.breakers.get_or_create(self._breaker_name(source))

    @staticmethod
    def _breaker_name(source: QuoteSource) -> str:
        return f"source:{source.name}"

    def get_quote(self, symbol: str) -> Quote:
        """
        Get the freshest available quote.

        Raises:
            DataSourceUnavailableError: If no source answered and no recent
                fallback quote exists
        """
        symbol = symbol.strip().upper()
        failures: dict[str, str] = {}

        for source in self.sources:
            breaker = self.breakers.get_or_create(self._breaker_name(source))
            try:
                quote = breaker.call(source.fetch, symbol)
            except CircuitOpenError as e:
                failures[source.name] = str(e)
                continue
            except DataSourceError as e:
                failures[source.name] = str(e)
                logger.warning(
                    "Quote source failed",
                    source=source.name,
                    symbol=symbol,
                    retryable=e.retryable,
                    error=str(e)
                )
                continue

            with self._lock:
                self._last_known[symbol] = quote
            return quote

        return self._fallback(symbol, failures)

    def _fallback(self, symbol: str, failures: dict[str, str]) -> Quote:
        with self._lock:
            last = self._last_known.get(symbol)

        if last is not None and not is_stale(last.timestamp, self.max_stale_seconds, now=self._clock()):
            logger.warning(
                "Serving stale quote",
                symbol=symbol,
                source=last.source,
                quote_timestamp=last.timestamp.isoformat(),
                failures=failures
            )
            return last.as_stale()

        logger.error("No quote available", symbol=symbol, failures=failures)
        raise DataSourceUnavailableError(
            f"No market data available for {symbol}",
            symbol=symbol,
            failures=failures
        )

    def health(self) -> dict[str, Any]:
        """Breaker state per configured source."""
        snapshot = self.breakers.snapshot()
        return {
            source.name: snapshot.get(self._breaker_name(source), {})
            for source in self.sources
        }
