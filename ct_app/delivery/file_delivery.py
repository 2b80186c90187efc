"""Notification destination writing records to a local file."""

import fcntl
import json
from pathlib import Path
from typing import Any

from ..config.notifications import FileDeliveryConfig
from ..utils.time import utc_now
from .base import (
    BaseNotifier,
    NotificationDeliveryPermanentError,
    NotificationDeliveryRetryableError,
)

FORMATS = ("json", "jsonl")


class FileNotifier(BaseNotifier):
    """
    Writes analysis records to ``output_path``.

    ``jsonl`` appends one record per line. ``json`` keeps the file as a
    single array and rewrites it on every record, so it suits small logs
    only. When ``max_file_size_mb`` is set, a full file is either rotated to
    ``<stem>.<UTC time><suffix>`` or, without rotation, further records are
    rejected.
    """

    def __init__(self, name: str, config: FileDeliveryConfig):
        super().__init__(name, config)
        self.config: FileDeliveryConfig = config

        if config.format not in FORMATS:
            raise NotificationDeliveryPermanentError(
                f"Unsupported format {config.format!r}, expected one of {', '.join(FORMATS)}"
            )

        self.output_path = Path(config.output_path)
        if config.create_dirs:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def send(self, record: dict[str, Any]) -> str:
        try:
            line = json.dumps(record, default=str)
        except (TypeError, ValueError) as e:
            raise NotificationDeliveryPermanentError(f"Record is not JSON serializable: {e}") from e

        try:
            if self._is_full():
                if not self.config.rotation_enabled:
                    raise NotificationDeliveryPermanentError(
                        f"{self.output_path} exceeds {self.config.max_file_size_mb}MB and rotation is disabled"
                    )
                self._rotate()

            if self.config.format == "jsonl":
                self._append_line(line)
            else:
                self._append_to_array(record)
        except OSError as e:
            raise NotificationDeliveryRetryableError(f"Cannot write {self.output_path}: {e}") from e

        self.logger.debug(
            "Analysis record written",
            destination=self.name,
            record_id=record.get("id"),
            output_path=str(self.output_path)
        )
        return f"Written to {self.output_path}"

    def _append_line(self, line: str) -> None:
        mode = "a" if self.config.append_mode else "w"
        with open(self.output_path, mode, encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            f.write(line + "\n")

    def _append_to_array(self, record: dict[str, Any]) -> None:
        with open(self.output_path, "a+", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            f.seek(0)
            existing = self._read_array(f.read()) if self.config.append_mode else []
            f.seek(0)
            f.truncate()
            json.dump(existing + [record], f, indent=2, default=str)

    @staticmethod
    def _read_array(text: str) -> list:
        if not text.strip():
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return []
        return data if isinstance(data, list) else []

    def _is_full(self) -> bool:
        if not self.config.max_file_size_mb or not self.output_path.exists():
            return False
        return self.output_path.stat().st_size > self.config.max_file_size_mb * 1024 * 1024

    def _rotate(self) -> None:
        stamp = utc_now().strftime("%Y%m%dT%H%M%S%f")
        rotated = self.output_path.with_name(f"{self.output_path.stem}.{stamp}{self.output_path.suffix}")
        self.output_path.rename(rotated)

        self.logger.info(
            "Notification file rotated",
            destination=self.name,
            rotated_path=str(rotated),
            max_file_size_mb=self.config.max_file_size_mb
        )

    def health_check(self) -> bool:
        """Whether the output directory accepts writes."""
        marker = self.output_path.parent / f".{self.output_path.name}.marker"
        try:
            marker.write_text("ok")
            marker.unlink()
        except OSError as e:
            self.logger.warning("Health check failed", destination=self.name, error=str(e))
            return False
        return True
