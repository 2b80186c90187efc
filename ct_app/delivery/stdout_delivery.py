"""Notification destination printing records to standard output."""

import json
import sys
from typing import Any

from ..config.notifications import StdoutDeliveryConfig
from .base import BaseNotifier, NotificationDeliveryRetryableError


def format_pretty(record: dict[str, Any]) -> str:
    """One-line human summary, e.g. ``[ts] btc-momentum BTC-USD -> BUY (confidence: 0.80)``."""
    confidence = float(record.get("confidence") or 0.0)
    return (
        f"[{record.get('timestamp')}] {record.get('strategyId')} {record.get('symbol')} "
        f"-> {str(record.get('signal')).upper()} (confidence: {confidence:.2f})"
    )


class StdoutNotifier(BaseNotifier):
    """Prints records as JSON lines or in the pretty one-line form."""

    def __init__(self, name: str, config: StdoutDeliveryConfig):
        super().__init__(name, config)
        self.config: StdoutDeliveryConfig = config

    def send(self, record: dict[str, Any]) -> str:
        text = format_pretty(record) if self.config.format == "pretty" else json.dumps(record, default=str)
        try:
            print(text, file=sys.stdout, flush=True)
        except OSError as e:
            raise NotificationDeliveryRetryableError(f"stdout unavailable: {e}") from e
        return "Printed to stdout"

    def health_check(self) -> bool:
        try:
            return sys.stdout.writable()
        except (OSError, ValueError):
            return False
