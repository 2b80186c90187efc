"""Fault isolation for calls to upstream data sources."""
from .circuit_breaker import BreakerConfig, BreakerRegistry, CircuitBreaker, CircuitState

__all__ = ["BreakerConfig", "BreakerRegistry", "CircuitBreaker", "CircuitState"]
