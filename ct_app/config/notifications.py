"""Configuration for analysis notification delivery."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class DeliveryMethod(Enum):
    """Supported notification delivery methods."""
    HTTP_POST = "http_post"
    FILE_OUTPUT = "file_output"
    STDOUT = "stdout"


@dataclass(frozen=True)
class HttpDeliveryConfig:
    """Configuration for HTTP POST (webhook) delivery."""
    url: str
    method: str = "POST"
    headers: Optional[dict[str, str]] = None
    timeout_seconds: int = 10


@dataclass(frozen=True)
class FileDeliveryConfig:
    """Configuration for file-based delivery."""
    output_path: str
    format: str = "jsonl"  # json, jsonl
    append_mode: bool = True
    max_file_size_mb: Optional[float] = None
    rotation_enabled: bool = False
    create_dirs: bool = True


@dataclass(frozen=True)
class StdoutDeliveryConfig:
    """Configuration for stdout delivery."""
    format: str = "json"  # json, pretty


@dataclass(frozen=True)
class NotificationDestination:
    """Single notification destination."""
    name: str
    method: DeliveryMethod
    config: Any  # HttpDeliveryConfig | FileDeliveryConfig | StdoutDeliveryConfig
    enabled: bool = True

    # Filtering options
    signals_filter: Optional[list[str]] = None     # Only deliver these signals
    strategies_filter: Optional[list[str]] = None  # Only deliver these strategy ids
    min_confidence: Optional[float] = None

    def accepts(self, record: dict[str, Any]) -> bool:
        """Whether a record (camelCase dict) passes this destination's filters."""
        if self.signals_filter is not None and record.get("signal") not in self.signals_filter:
            return False
        if self.strategies_filter is not None and record.get("strategyId") not in self.strategies_filter:
            return False
        if self.min_confidence is not None and (record.get("confidence") or 0.0) < self.min_confidence:
            return False
        return True


@dataclass(frozen=True)
class NotificationConfig:
    """Complete notification configuration."""
    destinations: list[NotificationDestination]
    enabled: bool = True
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0
    retry_backoff: float = 2.0


_METHOD_CONFIGS = {
    DeliveryMethod.HTTP_POST: HttpDeliveryConfig,
    DeliveryMethod.FILE_OUTPUT: FileDeliveryConfig,
    DeliveryMethod.STDOUT: StdoutDeliveryConfig,
}

_DESTINATION_KEYS = ("name", "method", "enabled", "signals_filter", "strategies_filter", "min_confidence")


def build_notification_config(settings: dict[str, Any]) -> NotificationConfig:
    """
    Build a NotificationConfig from the ``notifications`` settings section.

    Each destination entry holds ``name``, ``method`` and the filter keys;
    every other key is passed to the method's config dataclass.

    Raises:
        ValueError: On unknown methods or invalid method options
    """
    destinations = []

    for entry in settings.get("destinations", []) or []:
        try:
            method = DeliveryMethod(entry.get("method"))
        except ValueError as e:
            raise ValueError(f"Unknown delivery method: {entry.get('method')!r}") from e

        options = {key: value for key, value in entry.items() if key not in _DESTINATION_KEYS}
        try:
            method_config = _METHOD_CONFIGS[method](**options)
        except TypeError as e:
            raise ValueError(f"Invalid options for destination {entry.get('name')!r}: {e}") from e

        destinations.append(NotificationDestination(
            name=entry.get("name") or method.value,
            method=method,
            config=method_config,
            enabled=entry.get("enabled", True),
            signals_filter=entry.get("signals_filter"),
            strategies_filter=entry.get("strategies_filter"),
            min_confidence=entry.get("min_confidence"),
        ))

    return NotificationConfig(
        destinations=destinations,
        enabled=settings.get("enabled", True),
        retry_attempts=settings.get("retry_attempts", 3),
        retry_delay_seconds=settings.get("retry_delay_seconds", 1.0),
        retry_backoff=settings.get("retry_backoff", 2.0),
    )
