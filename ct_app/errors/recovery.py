"""
Recovery strategy classifications for error handling.

These classes categorize errors by their recovery characteristics
and guide the error handling strategy.
"""

from typing import Optional


class RecoverableError(Exception):
    """Mixin for errors that can be recovered from automatically."""

    def __init__(self, message: str, retry_count: int = 0,
                 max_retries: int = 3, **kwargs):
        super().__init__(message)
        self.retry_count = retry_count
        self.max_retries = max_retries
        self.recoverable = True


class UnrecoverableError(Exception):
    """Mixin for errors that require human intervention."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message)
        self.recoverable = False


class GracefulDegradationError(Exception):
    """Mixin for errors that allow continued operation with reduced functionality."""

    def __init__(self, message: str, degraded_functionality: Optional[str] = None,
                 fallback_strategy: Optional[str] = None, **kwargs):
        super().__init__(message)
        self.degraded_functionality = degraded_functionality
        self.fallback_strategy = fallback_strategy
        self.allows_degradation = True


class CircuitOpenError(RecoverableError):
    """Raised when a circuit breaker is open and the call is rejected."""

    def __init__(self, circuit_name: str, retry_after_seconds: float):
        super().__init__(
            f"Circuit '{circuit_name}' is OPEN. Retry after {retry_after_seconds:.1f}s"
        )
        self.circuit_name = circuit_name
        self.retry_after_seconds = retry_after_seconds


class DataSourceUnavailableError(GracefulDegradationError):
    """No source could answer and no recent enough fallback value exists."""

    def __init__(self, message: str, symbol: Optional[str] = None,
                 failures: Optional[dict[str, str]] = None, **kwargs):
        super().__init__(
            message,
            degraded_functionality="market_data",
            fallback_strategy="last_known_quote",
            **kwargs
        )
        self.symbol = symbol
        self.failures = failures or {}
