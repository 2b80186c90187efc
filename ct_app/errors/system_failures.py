"""
System failure error classifications for unrecoverable errors.

These exceptions represent failures of the service's own resources or of
its upstream dependencies rather than problems with client input.
"""

from typing import Any, Optional


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class DataSourceError(SystemFailureError):
    """A market data source failed to answer a request."""

    def __init__(self, message: str, source: Optional[str] = None,
                 retryable: bool = True, **kwargs):
        super().__init__(message, **kwargs)
        self.source = source
        self.retryable = retryable
