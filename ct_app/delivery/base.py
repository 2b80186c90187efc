"""
Notifier interface and retry policy.

A notifier sends one stored analysis record to one destination per call to
``send``. ``deliver`` wraps ``send`` with retries: transient failures are
retried with exponential backoff, permanent ones fail immediately, and a
record that exhausts its retries is reported as dead-lettered.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog


class DeliveryStatus(Enum):
    """Final outcome of delivering one record."""
    SUCCESS = "success"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


@dataclass
class DeliveryResult:
    """Outcome of delivering one record, including retries."""
    status: DeliveryStatus
    message: Optional[str] = None
    attempt_count: int = 1
    delivery_time_ms: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


class NotificationDeliveryError(Exception):
    """Base exception for notification delivery errors."""


class NotificationDeliveryRetryableError(NotificationDeliveryError):
    """Transient failure; the same record may succeed on a later attempt."""


class NotificationDeliveryPermanentError(NotificationDeliveryError):
    """Failure that retrying cannot fix (bad config, rejected payload)."""


class BaseNotifier(ABC):
    """Base class for notification destinations."""

    def __init__(self, name: str, config: Any):
        self.name = name
        self.config = config
        self.logger = structlog.get_logger(f"delivery.{name}")
        self._counts = {"delivered": 0, "failed": 0, "dead_lettered": 0}

    @abstractmethod
    def send(self, record: dict[str, Any]) -> str:
        """
        Make one delivery attempt for one record.

        Returns:
            Short description of where the record went

        Raises:
            NotificationDeliveryRetryableError: On transient failures
            NotificationDeliveryPermanentError: On failures retrying cannot fix
        """

    @abstractmethod
    def health_check(self) -> bool:
        """Whether the destination currently looks reachable."""

    def deliver(
        self,
        record: dict[str, Any],
        max_retries: int = 3,
        retry_delay: float = 1.0,
        backoff: float = 2.0
    ) -> DeliveryResult:
        """
        Deliver one record, retrying transient failures.

        The wait before retry ``n`` (1-based) is
        ``retry_delay * backoff ** (n - 1)``.
        """
        started = time.monotonic()
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 2):
            try:
                message = self.send(record)
            except NotificationDeliveryPermanentError as e:
                self._counts["failed"] += 1
                self.logger.error(
                    "Notification rejected",
                    destination=self.name,
                    strategy_id=record.get("strategyId"),
                    record_id=record.get("id"),
                    error=str(e)
                )
                return DeliveryResult(
                    status=DeliveryStatus.FAILED,
                    message=f"Permanent error: {e}",
                    attempt_count=attempt,
                    error=e
                )
            except Exception as e:
                # Anything not classified as permanent is worth another try
                last_error = e
            else:
                self._counts["delivered"] += 1
                return DeliveryResult(
                    status=DeliveryStatus.SUCCESS,
                    message=message,
                    attempt_count=attempt,
                    delivery_time_ms=int((time.monotonic() - started) * 1000)
                )

            if attempt <= max_retries:
                wait = retry_delay * backoff ** (attempt - 1)
                self.logger.warning(
                    "Notification attempt failed, retrying",
                    destination=self.name,
                    record_id=record.get("id"),
                    attempt=attempt,
                    wait_seconds=wait,
                    error=str(last_error)
                )
                time.sleep(wait)

        self._counts["dead_lettered"] += 1
        self.logger.error(
            "Notification dead-lettered",
            destination=self.name,
            strategy_id=record.get("strategyId"),
            record_id=record.get("id"),
            attempts=max_retries + 1,
            error=str(last_error)
        )
        return DeliveryResult(
            status=DeliveryStatus.DEAD_LETTER,
            message=f"Max retries exceeded: {last_error}",
            attempt_count=max_retries + 1,
            error=last_error
        )

    def get_stats(self) -> dict[str, Any]:
        """Delivery counters for health reporting."""
        total = sum(self._counts.values())
        return {
            "name": self.name,
            **self._counts,
            "success_rate": self._counts["delivered"] / total if total else 0.0,
        }

    def reset_stats(self) -> None:
        for key in self._counts:
            self._counts[key] = 0
