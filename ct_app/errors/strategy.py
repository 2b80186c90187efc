"""
Strategy registry error classifications.

These exceptions describe conflicts between a request and the stored state
of a strategy: unknown ids, duplicate names, invalid configurations and
forbidden lifecycle transitions.
"""

from typing import Any, Optional


class StrategyError(Exception):
    """Base class for strategy registry errors."""

    def __init__(self, message: str, strategy_id: Optional[str] = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.strategy_id = strategy_id
        self.context = context or {}


class StrategyNotFoundError(StrategyError):
    """No strategy is stored under the requested id."""


class StrategyExistsError(StrategyError):
    """A strategy with the requested name already exists."""


class InvalidStrategyConfigError(StrategyError):
    """Merged strategy configuration failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []


class InvalidTransitionError(StrategyError):
    """Requested status change is not allowed from the current status."""

    def __init__(self, message: str, current_status: Optional[str] = None,
                 attempted_status: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_status = current_status
        self.attempted_status = attempted_status


class StrategyArchivedError(StrategyError):
    """Archived strategies are read-only."""
