"""Tests for strategy data models and lifecycle rules."""

import pytest
from datetime import datetime, timezone

from ct_app.errors import MalformedDataError
from ct_app.strategies.models import (
    RiskConfig,
    StrategyConfig,
    StrategyStatus,
    can_transition,
)

CREATED = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _params(**overrides):
    params = {
        "name": "btc-momentum",
        "description": "Momentum",
        "symbols": ["BTC-USD", "ETH-USD"],
        "interval": "4h",
        "risk_params": {
            "stop_loss": 0.03,
            "take_profit": 0.06,
            "max_position_pct": 0.1,
            "max_daily_loss": 0.05,
        },
    }
    params.update(overrides)
    return params


class TestLifecycle:
    """Test allowed status transitions."""

    @pytest.mark.parametrize("current,target", [
        (StrategyStatus.DRAFT, StrategyStatus.ACTIVE),
        (StrategyStatus.DRAFT, StrategyStatus.ARCHIVED),
        (StrategyStatus.ACTIVE, StrategyStatus.PAUSED),
        (StrategyStatus.ACTIVE, StrategyStatus.ARCHIVED),
        (StrategyStatus.PAUSED, StrategyStatus.ACTIVE),
        (StrategyStatus.PAUSED, StrategyStatus.ARCHIVED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (StrategyStatus.DRAFT, StrategyStatus.PAUSED),
        (StrategyStatus.ACTIVE, StrategyStatus.DRAFT),
        (StrategyStatus.ACTIVE, StrategyStatus.ACTIVE),
        (StrategyStatus.PAUSED, StrategyStatus.DRAFT),
        (StrategyStatus.ARCHIVED, StrategyStatus.ACTIVE),
        (StrategyStatus.ARCHIVED, StrategyStatus.DRAFT),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)


class TestStrategyConfig:
    """Test StrategyConfig serialization and updates."""

    def test_from_params_creates_draft(self):
        strategy = StrategyConfig.from_params(_params(), timestamp=CREATED)

        assert strategy.strategy_id == "btc-momentum"
        assert strategy.status == StrategyStatus.DRAFT
        assert strategy.version == 1
        assert strategy.symbols == ("BTC-USD", "ETH-USD")
        assert strategy.risk == RiskConfig(0.03, 0.06, 0.1, 0.05)
        assert strategy.created_at == strategy.updated_at == CREATED

    def test_to_dict_uses_camel_case(self):
        data = StrategyConfig.from_params(_params(), timestamp=CREATED).to_dict()

        assert data == {
            "name": "btc-momentum",
            "description": "Momentum",
            "symbols": ["BTC-USD", "ETH-USD"],
            "interval": "4h",
            "riskParams": {
                "stopLoss": 0.03,
                "takeProfit": 0.06,
                "maxPositionPct": 0.1,
                "maxDailyLoss": 0.05,
            },
            "status": "draft",
            "version": 1,
            "createdAt": "2024-01-01T12:00:00+00:00",
            "updatedAt": "2024-01-01T12:00:00+00:00",
        }

    def test_from_dict_restores_strategy(self):
        strategy = StrategyConfig.from_params(_params(), timestamp=CREATED)
        assert StrategyConfig.from_dict(strategy.to_dict()) == strategy

    @pytest.mark.parametrize("mutate", [
        lambda d: d.pop("riskParams"),
        lambda d: d.update(status="running"),
        lambda d: d.update(symbols="BTC-USD"),
        lambda d: d.update(version=0),
        lambda d: d["riskParams"].pop("stopLoss"),
    ])
    def test_from_dict_rejects_malformed(self, mutate):
        data = StrategyConfig.from_params(_params(), timestamp=CREATED).to_dict()
        mutate(data)

        with pytest.raises(MalformedDataError):
            StrategyConfig.from_dict(data)

    def test_with_status_keeps_version(self):
        strategy = StrategyConfig.from_params(_params(), timestamp=CREATED)
        later = datetime(2024, 1, 2, tzinfo=timezone.utc)

        active = strategy.with_status(StrategyStatus.ACTIVE, later)
        assert active.status == StrategyStatus.ACTIVE
        assert active.version == 1
        assert active.updated_at == later
        assert active.created_at == CREATED

    def test_with_changes_bumps_version(self):
        strategy = StrategyConfig.from_params(_params(), timestamp=CREATED)

        changed = strategy.with_changes(_params(interval="1d", symbols=["SOL-USD"]))
        assert changed.version == 2
        assert changed.interval == "1d"
        assert changed.symbols == ("SOL-USD",)
        assert changed.name == strategy.name

    def test_to_params_round_trip(self):
        params = _params()
        assert StrategyConfig.from_params(params).to_params() == params

    def test_is_archived(self):
        strategy = StrategyConfig.from_params(_params())
        assert not strategy.is_archived
        assert strategy.with_status(StrategyStatus.ARCHIVED).is_archived
