"""Notification destination posting records to a webhook."""

import json
import socket
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..config.notifications import HttpDeliveryConfig
from .base import (
    BaseNotifier,
    NotificationDeliveryPermanentError,
    NotificationDeliveryRetryableError,
)

USER_AGENT = "ct-app/0.1"
EVENT_HEADER = "X-CT-Event"
EVENT_NAME = "analysis.recorded"


def _is_retryable_status(code: int) -> bool:
    # 429 is the receiver throttling us; other 4xx mean the payload is rejected
    return code >= 500 or code == 429


class HttpNotifier(BaseNotifier):
    """Sends each record as a JSON request body to ``config.url``."""

    def __init__(self, name: str, config: HttpDeliveryConfig):
        super().__init__(name, config)
        self.config: HttpDeliveryConfig = config

        parsed = urlparse(config.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise NotificationDeliveryPermanentError(f"Invalid webhook URL: {config.url}")

    def _build_request(self, record: dict[str, Any]) -> Request:
        try:
            body = json.dumps(record, default=str).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise NotificationDeliveryPermanentError(f"Record is not JSON serializable: {e}") from e

        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            EVENT_HEADER: EVENT_NAME,
        }
        headers.update(self.config.headers or {})
        return Request(self.config.url, data=body, headers=headers, method=self.config.method)

    def send(self, record: dict[str, Any]) -> str:
        request = self._build_request(record)

        try:
            with urlopen(request, timeout=self.config.timeout_seconds) as response:
                status = response.getcode()
        except HTTPError as e:
            self.logger.warning(
                "Webhook returned an error",
                destination=self.name,
                record_id=record.get("id"),
                status=e.code,
                reason=str(e.reason)
            )
            if _is_retryable_status(e.code):
                raise NotificationDeliveryRetryableError(f"HTTP {e.code}: {e.reason}") from e
            raise NotificationDeliveryPermanentError(f"HTTP {e.code}: {e.reason}") from e
        except (URLError, socket.timeout, OSError) as e:
            raise NotificationDeliveryRetryableError(f"Webhook unreachable: {e}") from e

        self.logger.info(
            "Webhook notified",
            destination=self.name,
            strategy_id=record.get("strategyId"),
            record_id=record.get("id"),
            status=status
        )
        return f"HTTP {status}"

    def health_check(self) -> bool:
        """HEAD the webhook host; any answer below 500 counts as reachable."""
        parsed = urlparse(self.config.url)
        request = Request(f"{parsed.scheme}://{parsed.netloc}", method="HEAD")

        try:
            with urlopen(request, timeout=5) as response:
                return response.getcode() < 500
        except HTTPError as e:
            return e.code < 500
        except (URLError, socket.timeout, OSError) as e:
            self.logger.warning("Health check failed", destination=self.name, error=str(e))
            return False
