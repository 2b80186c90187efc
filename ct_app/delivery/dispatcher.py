"""Fan-out of stored analysis records to configured notifiers."""

from typing import Any, Optional

import structlog

from ..config.notifications import DeliveryMethod, NotificationConfig
from .base import BaseNotifier, DeliveryResult, NotificationDeliveryError
from .file_delivery import FileNotifier
from .http_delivery import HttpNotifier
from .stdout_delivery import StdoutNotifier

logger = structlog.get_logger(__name__)

_NOTIFIERS = {
    DeliveryMethod.HTTP_POST: HttpNotifier,
    DeliveryMethod.FILE_OUTPUT: FileNotifier,
    DeliveryMethod.STDOUT: StdoutNotifier,
}


class NotificationDispatcher:
    """
    Sends analysis records to every enabled destination whose filters match.

    Notification is best effort: failures are logged and reported in the
    returned results but never raised to the caller, so a broken webhook
    cannot make analysis ingestion fail.
    """

    def __init__(self, config: Optional[NotificationConfig] = None):
        """
        Raises:
            ValueError: If an enabled destination cannot be set up
        """
        self.config = config or NotificationConfig(destinations=[])
        self.notifiers: dict[str, BaseNotifier] = {}

        for destination in self.config.destinations:
            if not destination.enabled:
                continue
            try:
                notifier = _NOTIFIERS[destination.method](destination.name, destination.config)
            except NotificationDeliveryError as e:
                raise ValueError(f"Invalid destination {destination.name!r}: {e}") from e
            self.notifiers[destination.name] = notifier

        logger.info(
            "Notification dispatcher initialized",
            enabled=self.config.enabled,
            destinations=sorted(self.notifiers)
        )

    def dispatch(self, record: dict[str, Any]) -> dict[str, DeliveryResult]:
        """Deliver one analysis record; returns one result per notified destination."""
        if not self.config.enabled:
            return {}

        results: dict[str, DeliveryResult] = {}

        for destination in self.config.destinations:
            notifier = self.notifiers.get(destination.name)
            if notifier is None or not destination.accepts(record):
                continue

            result = notifier.deliver(
                record,
                max_retries=self.config.retry_attempts,
                retry_delay=self.config.retry_delay_seconds,
                backoff=self.config.retry_backoff
            )
            if not result.ok:
                logger.warning(
                    "Notification not delivered",
                    destination=destination.name,
                    strategy_id=record.get("strategyId"),
                    status=result.status.value,
                    attempts=result.attempt_count,
                    message=result.message
                )

            results[destination.name] = result

        return results

    def health(self) -> dict[str, Any]:
        """Health and counters per notifier."""
        return {
            name: {"healthy": notifier.health_check(), **notifier.get_stats()}
            for name, notifier in self.notifiers.items()
        }
