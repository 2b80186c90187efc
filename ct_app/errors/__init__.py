"""
Error classification system for the strategy registry and analysis service.

This module provides a structured exception hierarchy for the different kinds
of failures the service distinguishes: bad client input, missing or
conflicting strategies, storage failures and unavailable upstream data.
"""

from .data_quality import (
    DataQualityError,
    MalformedDataError,
    InvalidAnalysisError,
)
from .system_failures import (
    SystemFailureError,
    PersistenceError,
    DataSourceError,
)
from .recovery import (
    RecoverableError,
    UnrecoverableError,
    GracefulDegradationError,
    CircuitOpenError,
    DataSourceUnavailableError,
)
from .strategy import (
    StrategyError,
    StrategyNotFoundError,
    StrategyExistsError,
    InvalidStrategyConfigError,
    InvalidTransitionError,
    StrategyArchivedError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedDataError",
    "InvalidAnalysisError",
    # System Failures
    "SystemFailureError",
    "PersistenceError",
    "DataSourceError",
    # Recovery Categories
    "RecoverableError",
    "UnrecoverableError",
    "GracefulDegradationError",
    "CircuitOpenError",
    "DataSourceUnavailableError",
    # Strategy Errors
    "StrategyError",
    "StrategyNotFoundError",
    "StrategyExistsError",
    "InvalidStrategyConfigError",
    "InvalidTransitionError",
    "StrategyArchivedError",
]
