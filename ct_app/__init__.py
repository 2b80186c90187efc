"""
CT App - Strategy Registry and Analysis Service

Control-plane service for the Claude Trader product. Stores validated
strategy configurations on disk, records per-symbol analysis results in a
time-series store, and exposes both over a REST API with caching and
circuit-breaker protected market data access.
"""

__version__ = "0.1.0"
__author__ = "CT Team"
