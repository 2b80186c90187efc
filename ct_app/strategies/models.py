"""
Strategy data models and lifecycle rules.

A strategy is persisted as ``<root>/<name>/config.json`` using the camelCase
layout the dashboard and sub-agents read. In Python the same data is held in
immutable dataclasses with snake_case fields.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..errors import MalformedDataError
from ..utils.time import format_timestamp, parse_timestamp, utc_now


class StrategyStatus(str, Enum):
    """Strategy lifecycle states."""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


ALLOWED_TRANSITIONS: dict[StrategyStatus, frozenset] = {
    StrategyStatus.DRAFT: frozenset({StrategyStatus.ACTIVE, StrategyStatus.ARCHIVED}),
    StrategyStatus.ACTIVE: frozenset({StrategyStatus.PAUSED, StrategyStatus.ARCHIVED}),
    StrategyStatus.PAUSED: frozenset({StrategyStatus.ACTIVE, StrategyStatus.ARCHIVED}),
    StrategyStatus.ARCHIVED: frozenset(),
}


def can_transition(current: StrategyStatus, target: StrategyStatus) -> bool:
    """Whether ``current -> target`` is an allowed lifecycle move."""
    return target in ALLOWED_TRANSITIONS[current]


# snake_case field -> camelCase JSON key
RISK_KEYS = {
    "stop_loss": "stopLoss",
    "take_profit": "takeProfit",
    "max_position_pct": "maxPositionPct",
    "max_daily_loss": "maxDailyLoss",
}


@dataclass(frozen=True)
class RiskConfig:
    """Per-strategy risk limits."""
    stop_loss: float
    take_profit: float
    max_position_pct: float
    max_daily_loss: float

    def to_dict(self) -> dict[str, float]:
        return {camel: getattr(self, snake) for snake, camel in RISK_KEYS.items()}

    def to_params(self) -> dict[str, float]:
        """snake_case form used by the validator and config merging."""
        return {snake: getattr(self, snake) for snake in RISK_KEYS}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RiskConfig":
        try:
            return cls(**{snake: float(data[camel]) for snake, camel in RISK_KEYS.items()})
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedDataError(
                f"Invalid riskParams: {e}",
                raw_data=repr(data),
                expected_format="riskParams object"
            ) from e


@dataclass(frozen=True)
class StrategyConfig:
    """Stored strategy configuration."""
    name: str
    description: str
    symbols: tuple[str, ...]
    interval: str
    risk: RiskConfig
    status: StrategyStatus = StrategyStatus.DRAFT
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def strategy_id(self) -> str:
        return self.name

    @property
    def is_archived(self) -> bool:
        return self.status == StrategyStatus.ARCHIVED

    @classmethod
    def from_params(cls, params: dict[str, Any], timestamp: Optional[datetime] = None) -> "StrategyConfig":
        """Build a fresh draft strategy from a validated snake_case config dict."""
        now = timestamp or utc_now()
        risk = params["risk_params"]
        return cls(
            name=params["name"],
            description=params.get("description", ""),
            symbols=tuple(params["symbols"]),
            interval=params["interval"],
            risk=RiskConfig(**{key: float(risk[key]) for key in RISK_KEYS}),
            status=StrategyStatus.DRAFT,
            version=1,
            created_at=now,
            updated_at=now,
        )

    def to_params(self) -> dict[str, Any]:
        """snake_case editable fields, the base for merging updates."""
        return {
            "name": self.name,
            "description": self.description,
            "symbols": list(self.symbols),
            "interval": self.interval,
            "risk_params": self.risk.to_params(),
        }

    def to_dict(self) -> dict[str, Any]:
        """camelCase JSON form written to config.json and returned by the API."""
        return {
            "name": self.name,
            "description": self.description,
            "symbols": list(self.symbols),
            "interval": self.interval,
            "riskParams": self.risk.to_dict(),
            "status": self.status.value,
            "version": self.version,
            "createdAt": format_timestamp(self.created_at) if self.created_at else None,
            "updatedAt": format_timestamp(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StrategyConfig":
        """Parse the camelCase JSON form."""
        if not isinstance(data, dict):
            raise MalformedDataError("Strategy config must be a JSON object", raw_data=repr(data))

        missing = [key for key in ("name", "symbols", "interval", "riskParams", "status") if key not in data]
        if missing:
            raise MalformedDataError(
                f"Strategy config missing fields: {missing}",
                raw_data=repr(data),
                expected_format="config.json"
            )

        symbols = data["symbols"]
        if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
            raise MalformedDataError("symbols must be a list of strings", raw_data=repr(symbols))

        try:
            status = StrategyStatus(data["status"])
        except ValueError as e:
            raise MalformedDataError(f"Unknown status: {data['status']!r}") from e

        version = data.get("version", 1)
        if not isinstance(version, int) or isinstance(version, bool) or version < 1:
            raise MalformedDataError(f"Invalid version: {version!r}")

        return cls(
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            symbols=tuple(symbols),
            interval=str(data["interval"]),
            risk=RiskConfig.from_dict(data["riskParams"]),
            status=status,
            version=version,
            created_at=parse_timestamp(data["createdAt"]) if data.get("createdAt") else None,
            updated_at=parse_timestamp(data["updatedAt"]) if data.get("updatedAt") else None,
        )

    def with_status(self, status: StrategyStatus, timestamp: Optional[datetime] = None) -> "StrategyConfig":
        """New instance with ``status`` set; version is unchanged."""
        return replace(self, status=status, updated_at=timestamp or utc_now())

    def with_changes(self, params: dict[str, Any], timestamp: Optional[datetime] = None) -> "StrategyConfig":
        """New instance from merged snake_case params, with version bumped."""
        risk = params["risk_params"]
        return replace(
            self,
            description=params.get("description", ""),
            symbols=tuple(params["symbols"]),
            interval=params["interval"],
            risk=RiskConfig(**{key: float(risk[key]) for key in RISK_KEYS}),
            version=self.version + 1,
            updated_at=timestamp or utc_now(),
        )
