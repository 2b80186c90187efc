"""
File-based strategy registry.

Each strategy lives in its own directory, ``<root>/<name>/config.json``,
so the generated code and artifacts of a strategy can sit next to its
configuration. Writes go through a temporary file and ``os.replace`` so a
reader never observes a half-written config.
"""

import json
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from ..config.loader import ConfigLoader
from ..config.validation import ConfigValidator, ValidationError, normalize_symbols
from ..errors import (
    InvalidStrategyConfigError,
    InvalidTransitionError,
    MalformedDataError,
    PersistenceError,
    StrategyArchivedError,
    StrategyExistsError,
    StrategyNotFoundError,
)
from ..logging.config import get_audit_logger, log_status_transition
from .models import StrategyConfig, StrategyStatus, can_transition

CONFIG_FILENAME = "config.json"
IMMUTABLE_FIELDS = ("name", "status")

logger = structlog.get_logger(__name__)


def _format_errors(errors: list[ValidationError]) -> list[str]:
    return [f"{err.field}: {err.message} (got: {err.value})" for err in errors]


class StrategyRegistry:
    """Stores strategy configurations under a root directory."""

    def __init__(self, root: Union[str, Path], config_loader: Optional[ConfigLoader] = None):
        self.root = Path(root)
        self.config_loader = config_loader or ConfigLoader.create()
        self.logger = logger
        # Bound here, not at import, so it picks up the logging configuration in effect
        self.audit_logger = get_audit_logger(__name__)
        self._lock = threading.RLock()

        self.root.mkdir(parents=True, exist_ok=True)

    def _config_path(self, name: str) -> Path:
        return self.root / name / CONFIG_FILENAME

    def exists(self, name: str) -> bool:
        """Whether a strategy directory with a config file exists."""
        return self._config_path(name).is_file()

    def create(self, payload: dict[str, Any]) -> StrategyConfig:
        """
        Create a new draft strategy.

        Args:
            payload: snake_case creation fields; missing interval, description
                and risk parameters are filled from configured defaults

        Returns:
            The stored strategy

        Raises:
            InvalidStrategyConfigError: If the merged configuration is invalid
            StrategyExistsError: If the name is already taken
        """
        params = self.config_loader.merge_strategy_config(payload)
        params["symbols"] = normalize_symbols(params.get("symbols"))

        errors = ConfigValidator.validate_strategy_config(params)
        if errors:
            raise InvalidStrategyConfigError(
                "Strategy configuration is invalid",
                errors=errors,
                strategy_id=params.get("name") if isinstance(params.get("name"), str) else None
            )

        name = params["name"]
        with self._lock:
            if self.exists(name):
                raise StrategyExistsError(f"Strategy '{name}' already exists", strategy_id=name)

            strategy = StrategyConfig.from_params(params)
            self._write(strategy)

        self.audit_logger.info(
            "strategy_created",
            strategy_id=name,
            symbols=list(strategy.symbols),
            interval=strategy.interval
        )
        return strategy

    def get(self, name: str) -> StrategyConfig:
        """
        Load a strategy by name.

        Raises:
            StrategyNotFoundError: If no such strategy is stored
            PersistenceError: If the stored file cannot be read or parsed
        """
        path = self._config_path(name)
        if not path.is_file():
            raise StrategyNotFoundError(f"Strategy '{name}' not found", strategy_id=name)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return StrategyConfig.from_dict(data)
        # ValueError covers both invalid JSON and bytes that are not UTF-8
        except (OSError, ValueError, MalformedDataError) as e:
            raise PersistenceError(
                f"Failed to read strategy '{name}': {e}",
                operation="read",
                target=str(path)
            ) from e

    def list(self, status: Optional[StrategyStatus] = None) -> list[StrategyConfig]:
        """
        List stored strategies sorted by name.

        Unreadable entries are skipped with a warning so one corrupt file
        does not take the whole listing down.
        """
        strategies = []

        for entry in sorted(self.root.iterdir()):
            if not entry.is_dir() or not (entry / CONFIG_FILENAME).is_file():
                continue
            try:
                strategy = self.get(entry.name)
            except PersistenceError as e:
                self.logger.warning(
                    "Skipping unreadable strategy",
                    strategy_id=entry.name,
                    error=str(e)
                )
                continue

            if status is None or strategy.status == status:
                strategies.append(strategy)

        return strategies

    def update(self, name: str, changes: dict[str, Any]) -> StrategyConfig:
        """
        Apply a partial update to an existing strategy.

        Nested ``risk_params`` are merged key by key; other fields are
        replaced. The version is incremented on every successful update.

        Raises:
            StrategyNotFoundError: If the strategy does not exist
            StrategyArchivedError: If the strategy is archived
            InvalidStrategyConfigError: If the result is invalid or an
                immutable field is targeted
        """
        blocked = [key for key in IMMUTABLE_FIELDS if key in changes]
        if blocked:
            raise InvalidStrategyConfigError(
                "Immutable fields cannot be updated",
                errors=[
                    ValidationError(field=key, message="Cannot be changed by update", value=changes[key])
                    for key in blocked
                ],
                strategy_id=name
            )

        with self._lock:
            current = self.get(name)
            if current.is_archived:
                raise StrategyArchivedError(f"Strategy '{name}' is archived", strategy_id=name)

            params = self.config_loader._deep_merge(current.to_params(), changes)
            params["symbols"] = normalize_symbols(params.get("symbols"))

            errors = ConfigValidator.validate_strategy_config(params)
            if errors:
                raise InvalidStrategyConfigError(
                    "Strategy configuration is invalid",
                    errors=errors,
                    strategy_id=name
                )

            updated = current.with_changes(params)
            self._write(updated)

        self.audit_logger.info(
            "strategy_updated",
            strategy_id=name,
            version=updated.version,
            changed_fields=sorted(changes)
        )
        return updated

    def set_status(self, name: str, status: StrategyStatus, trigger: str = "api") -> StrategyConfig:
        """
        Move a strategy to a new lifecycle status.

        Raises:
            StrategyNotFoundError: If the strategy does not exist
            InvalidTransitionError: If the move is not allowed
        """
        with self._lock:
            current = self.get(name)

            if not can_transition(current.status, status):
                raise InvalidTransitionError(
                    f"Cannot move strategy '{name}' from {current.status.value} to {status.value}",
                    current_status=current.status.value,
                    attempted_status=status.value,
                    strategy_id=name
                )

            updated = current.with_status(status)
            self._write(updated)

        log_status_transition(
            self.audit_logger,
            strategy_id=name,
            from_status=current.status.value,
            to_status=status.value,
            trigger=trigger,
            context={"version": updated.version}
        )
        return updated

    def delete(self, name: str) -> None:
        """
        Remove a strategy directory and everything in it.

        Raises:
            StrategyNotFoundError: If the strategy does not exist
            PersistenceError: If the directory cannot be removed
        """
        with self._lock:
            if not self.exists(name):
                raise StrategyNotFoundError(f"Strategy '{name}' not found", strategy_id=name)

            try:
                shutil.rmtree(self.root / name)
            except OSError as e:
                raise PersistenceError(
                    f"Failed to delete strategy '{name}': {e}",
                    operation="delete",
                    target=str(self.root / name)
                ) from e

        self.audit_logger.info("strategy_deleted", strategy_id=name)

    def _write(self, strategy: StrategyConfig) -> None:
        """Atomically write ``config.json`` for a strategy."""
        directory = self.root / strategy.name
        target = directory / CONFIG_FILENAME

        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".config.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(strategy.to_dict(), f, indent=2, sort_keys=True)
                    f.write("\n")
                os.replace(tmp_path, target)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise PersistenceError(
                f"Failed to write strategy '{strategy.name}': {e}",
                operation="write",
                target=str(target)
            ) from e
