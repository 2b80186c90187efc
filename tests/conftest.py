"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict

import pytest

from ct_app.config.loader import ConfigLoader
from ct_app.persistence.analysis_store import AnalysisStore
from ct_app.strategies.registry import StrategyRegistry


@pytest.fixture
def temp_dir():
    """Temporary directory removed after the test."""
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def config_loader(temp_dir) -> ConfigLoader:
    """Loader pointed at an empty config directory so only defaults apply."""
    config_dir = temp_dir / "config"
    config_dir.mkdir()
    return ConfigLoader.create(config_dir)


@pytest.fixture
def registry(temp_dir, config_loader) -> StrategyRegistry:
    return StrategyRegistry(temp_dir / "strategies", config_loader=config_loader)


@pytest.fixture
def store(temp_dir) -> AnalysisStore:
    return AnalysisStore(temp_dir / "analysis.db")


@pytest.fixture
def sample_strategy_payload() -> Dict[str, Any]:
    """Creation payload for a BTC/ETH momentum strategy."""
    return {
        "name": "btc-momentum",
        "description": "Momentum entries on the majors",
        "symbols": ["btc-usd", "ETH-USD"],
        "interval": "4h",
        "risk_params": {
            "stop_loss": 0.03,
            "take_profit": 0.06,
        },
    }


@pytest.fixture
def recent_timestamp() -> str:
    """An ISO timestamp a few minutes in the past."""
    ts = datetime.now(timezone.utc) - timedelta(minutes=5)
    return ts.replace(microsecond=0).isoformat()


@pytest.fixture
def sample_analysis(recent_timestamp) -> Dict[str, Any]:
    """A valid analysis record for the sample strategy."""
    return {
        "symbol": "BTC-USD",
        "signal": "buy",
        "confidence": 0.82,
        "timestamp": recent_timestamp,
        "summary": "Breakout above the weekly range with rising volume",
        "data": {"rsi": 61.5, "atr": 1250.0},
    }
