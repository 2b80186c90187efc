"""
Data quality error classifications for client-supplied payloads.

These exceptions categorize problems with data handed to the service,
such as analysis records posted by sub-agents or strategy files read back
from disk.
"""

from typing import Any, Optional


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedDataError(DataQualityError):
    """Data exists but is in incorrect format."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format


class InvalidAnalysisError(DataQualityError):
    """Analysis record failed validation against its strategy."""

    def __init__(self, message: str, errors: Optional[list] = None,
                 strategy_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
        self.strategy_id = strategy_id
