"""
Market data sources and the degradation-aware quote service.
"""
from .base import Quote, QuoteSource
from .http_source import HttpQuoteSource
from .service import MarketDataService

__all__ = ["Quote", "QuoteSource", "HttpQuoteSource", "MarketDataService"]
