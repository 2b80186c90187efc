"""
REST API for strategies, analysis records and market data.
"""
from .app import create_app

__all__ = ["create_app"]
