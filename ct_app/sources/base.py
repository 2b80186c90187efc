"""Base classes for market data sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

import structlog

from ..utils.time import format_timestamp


@dataclass(frozen=True)
class Quote:
    """Last traded price of a symbol as reported by a source."""
    symbol: str
    price: float
    timestamp: datetime
    source: str
    stale: bool = False

    def as_stale(self) -> "Quote":
        return replace(self, stale=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "timestamp": format_timestamp(self.timestamp),
            "source": self.source,
            "stale": self.stale,
        }


class QuoteSource(ABC):
    """Base class for quote sources."""

    def __init__(self, name: str):
        self.name = name
        self.logger = structlog.get_logger(f"sources.{name}")

    @abstractmethod
    def fetch(self, symbol: str) -> Quote:
        """
        Fetch the latest quote for a symbol.

        Raises:
            DataSourceError: If the source cannot provide a quote
        """
        pass
