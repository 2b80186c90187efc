"""Request bodies for the REST API (camelCase aliases accepted)."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..strategies.models import StrategyStatus


class RiskParamsIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    stop_loss: Optional[float] = Field(default=None, alias="stopLoss")
    take_profit: Optional[float] = Field(default=None, alias="takeProfit")
    max_position_pct: Optional[float] = Field(default=None, alias="maxPositionPct")
    max_daily_loss: Optional[float] = Field(default=None, alias="maxDailyLoss")


class StrategyCreate(BaseModel):
    """Body of POST /api/strategies."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: str
    description: Optional[str] = None
    symbols: list[str]
    interval: Optional[str] = None
    risk_params: Optional[RiskParamsIn] = Field(default=None, alias="riskParams")

    def to_payload(self) -> dict[str, Any]:
        """snake_case payload with unset fields left to configured defaults."""
        return self.model_dump(exclude_none=True)


class StrategyUpdate(BaseModel):
    """Body of PATCH /api/strategies/{strategy_id}."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    description: Optional[str] = None
    symbols: Optional[list[str]] = None
    interval: Optional[str] = None
    risk_params: Optional[RiskParamsIn] = Field(default=None, alias="riskParams")

    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class StatusChange(BaseModel):
    """Body of POST /api/strategies/{strategy_id}/status."""
    model_config = ConfigDict(extra="forbid")

    status: StrategyStatus
