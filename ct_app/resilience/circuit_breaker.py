"""
Consecutive-failure circuit breaker.

States:
- CLOSED: calls pass through; consecutive failures are counted
- OPEN: calls are rejected with CircuitOpenError until the reset timeout elapses
- HALF_OPEN: a limited number of trial calls decide between CLOSED and OPEN
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional

import structlog

from ..errors import CircuitOpenError

logger = structlog.get_logger(__name__)

StateListener = Callable[[str, "CircuitState", "CircuitState"], None]


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class BreakerConfig:
    """Configuration for a circuit breaker."""
    failure_threshold: int = 5
    reset_timeout_seconds: float = 30.0
    half_open_max_calls: int = 1
    success_threshold: int = 1
    ignore_exceptions: tuple = ()           # Propagated without counting as failures

    @classmethod
    def from_dict(cls, params: dict[str, Any]) -> "BreakerConfig":
        return cls(
            failure_threshold=params.get("failure_threshold", cls.failure_threshold),
            reset_timeout_seconds=params.get("reset_timeout_seconds", cls.reset_timeout_seconds),
            half_open_max_calls=params.get("half_open_max_calls", cls.half_open_max_calls),
            success_threshold=params.get("success_threshold", cls.success_threshold),
        )


class CircuitBreaker:
    """
    Synchronous, thread-safe circuit breaker.

    Usage:
        breaker = CircuitBreaker("quotes-primary", BreakerConfig(failure_threshold=3))
        quote = breaker.call(source.fetch, "BTC-USD")

        @breaker.protect
        def fetch():
            ...
    """

    def __init__(
        self,
        name: str,
        config: Optional[BreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or BreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._opened_at: Optional[float] = None
        self._half_open_in_flight = 0
        self._half_open_successes = 0

        self._consecutive_failures = 0
        self._total_calls = 0
        self._successful_calls = 0
        self._failed_calls = 0
        self._rejected_calls = 0
        self._last_error: Optional[str] = None

        self._listeners: list[StateListener] = []

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN to HALF_OPEN once the timeout has elapsed."""
        with self._lock:
            transition = self._maybe_half_open()
            state = self._state
        self._notify(transition)
        return state

    def add_listener(self, callback: StateListener) -> None:
        """Register ``callback(name, old_state, new_state)`` for state changes."""
        self._listeners.append(callback)

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Execute ``func`` through the breaker.

        Raises:
            CircuitOpenError: If the call is rejected
            Exception: Whatever ``func`` raises
        """
        self._before_call()

        try:
            result = func(*args, **kwargs)
        except self.config.ignore_exceptions:
            self._release_trial()
            raise
        except Exception as e:
            self._record_failure(e)
            raise

        self._record_success()
        return result

    def protect(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Decorator form of ``call``."""
        @wraps(func)
        def wrapper(*args, **kwargs):
            return self.call(func, *args, **kwargs)

        return wrapper

    def reset(self) -> None:
        """Force the breaker back to CLOSED and clear failure counters."""
        with self._lock:
            self._consecutive_failures = 0
            self._half_open_in_flight = 0
            self._half_open_successes = 0
            self._opened_at = None
            transition = self._transition_to(CircuitState.CLOSED)
        self._notify(transition)

    def stats(self) -> dict[str, Any]:
        """Snapshot of state and counters for health reporting."""
        with self._lock:
            transition = self._maybe_half_open()
            retry_after = None
            if self._state == CircuitState.OPEN and self._opened_at is not None:
                retry_after = max(0.0, self.config.reset_timeout_seconds - (self._clock() - self._opened_at))
            snapshot = {
                "name": self.name,
                "state": self._state.value,
                "consecutive_failures": self._consecutive_failures,
                "total_calls": self._total_calls,
                "successful_calls": self._successful_calls,
                "failed_calls": self._failed_calls,
                "rejected_calls": self._rejected_calls,
                "last_error": self._last_error,
                "retry_after_seconds": retry_after,
            }
        self._notify(transition)
        return snapshot

    def _before_call(self) -> None:
        with self._lock:
            transition = self._maybe_half_open()

            if self._state == CircuitState.OPEN:
                self._rejected_calls += 1
                retry_after = max(0.0, self.config.reset_timeout_seconds - (self._clock() - self._opened_at))
                rejected = CircuitOpenError(self.name, retry_after)
            elif (self._state == CircuitState.HALF_OPEN
                    and self._half_open_in_flight >= self.config.half_open_max_calls):
                self._rejected_calls += 1
                rejected = CircuitOpenError(self.name, 0.0)
            else:
                rejected = None
                if self._state == CircuitState.HALF_OPEN:
                    self._half_open_in_flight += 1

        self._notify(transition)
        if rejected is not None:
            raise rejected

    def _maybe_half_open(self) -> Optional[tuple]:
        """OPEN -> HALF_OPEN after the reset timeout (lock must be held); returns the transition."""
        if (self._state == CircuitState.OPEN and self._opened_at is not None
                and self._clock() - self._opened_at >= self.config.reset_timeout_seconds):
            self._half_open_in_flight = 0
            self._half_open_successes = 0
            return self._transition_to(CircuitState.HALF_OPEN)
        return None

    def _release_trial(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and self._half_open_in_flight > 0:
                self._half_open_in_flight -= 1

    def _record_success(self) -> None:
        transition = None
        with self._lock:
            self._total_calls += 1
            self._successful_calls += 1
            self._consecutive_failures = 0

            if self._state == CircuitState.HALF_OPEN:
                self._half_open_in_flight = max(0, self._half_open_in_flight - 1)
                self._half_open_successes += 1
                if self._half_open_successes >= self.config.success_threshold:
                    self._opened_at = None
                    transition = self._transition_to(CircuitState.CLOSED)

        self._notify(transition)

    def _record_failure(self, exc: Exception) -> None:
        transition = None
        with self._lock:
            self._total_calls += 1
            self._failed_calls += 1
            self._consecutive_failures += 1
            self._last_error = f"{type(exc).__name__}: {exc}"

            if self._state == CircuitState.HALF_OPEN:
                self._half_open_in_flight = max(0, self._half_open_in_flight - 1)
                self._opened_at = self._clock()
                transition = self._transition_to(CircuitState.OPEN)
            elif (self._state == CircuitState.CLOSED
                    and self._consecutive_failures >= self.config.failure_threshold):
                self._opened_at = self._clock()
                transition = self._transition_to(CircuitState.OPEN)

        if transition:
            logger.warning(
                "Circuit opened",
                circuit=self.name,
                consecutive_failures=self._consecutive_failures,
                error=self._last_error
            )
        self._notify(transition)

    def _transition_to(self, new_state: CircuitState) -> Optional[tuple]:
        """Change state (lock must be held); returns (old, new) or None."""
        if new_state == self._state:
            return None

        old_state = self._state
        self._state = new_state
        logger.info(
            "Circuit state changed",
            circuit=self.name,
            from_state=old_state.value,
            to_state=new_state.value
        )
        return (old_state, new_state)

    def _notify(self, transition: Optional[tuple]) -> None:
        if not transition:
            return

        for callback in self._listeners:
            try:
                callback(self.name, transition[0], transition[1])
            except Exception as e:
                logger.error("State listener failed", circuit=self.name, error=str(e))


class BreakerRegistry:
    """Named breakers shared across the service."""

    def __init__(self, default_config: Optional[BreakerConfig] = None):
        self.default_config = default_config or BreakerConfig()
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get_or_create(self, name: str, config: Optional[BreakerConfig] = None) -> CircuitBreaker:
        with self._lock:
            if name not in self._breakers:
                self._breakers[name] = CircuitBreaker(name, config or self.default_config)
            return self._breakers[name]

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Stats for every breaker keyed by name."""
        with self._lock:
            breakers = list(self._breakers.values())
        return {breaker.name: breaker.stats() for breaker in breakers}

    def all_closed(self) -> bool:
        with self._lock:
            breakers = list(self._breakers.values())
        return all(breaker.state == CircuitState.CLOSED for breaker in breakers)
