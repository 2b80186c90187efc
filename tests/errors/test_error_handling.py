"""
Error classification tests.

Covers the exception hierarchy and the attributes handlers rely on when
mapping failures to responses.
"""

import pytest

from ct_app.errors import (
    CircuitOpenError,
    DataQualityError,
    DataSourceError,
    DataSourceUnavailableError,
    GracefulDegradationError,
    InvalidAnalysisError,
    InvalidStrategyConfigError,
    InvalidTransitionError,
    MalformedDataError,
    PersistenceError,
    RecoverableError,
    StrategyArchivedError,
    StrategyError,
    StrategyExistsError,
    StrategyNotFoundError,
    SystemFailureError,
)
from ct_app.config.validation import ValidationError


class TestErrorClassification:
    """Test error classification system."""

    def test_data_quality_error_hierarchy(self):
        base_error = DataQualityError("base error")
        assert base_error.recoverable is True
        assert base_error.context == {}

        malformed = MalformedDataError("bad json", raw_data="{", expected_format="JSON")
        assert malformed.raw_data == "{"
        assert malformed.expected_format == "JSON"

    def test_invalid_analysis_carries_errors(self):
        errors = [ValidationError("signal", "Must be one of buy, sell, hold", "long")]
        error = InvalidAnalysisError("invalid", errors=errors, strategy_id="s1")

        assert isinstance(error, DataQualityError)
        assert error.errors == errors
        assert error.strategy_id == "s1"

    def test_system_failure_hierarchy(self):
        error = PersistenceError("write failed", operation="write", target="/tmp/x")
        assert isinstance(error, SystemFailureError)
        assert error.recoverable is False
        assert error.operation == "write"

        source_error = DataSourceError("timeout", source="primary")
        assert source_error.retryable is True
        assert DataSourceError("404", retryable=False).retryable is False

    def test_strategy_errors(self):
        for cls in (StrategyNotFoundError, StrategyExistsError, StrategyArchivedError):
            error = cls("message", strategy_id="s1")
            assert isinstance(error, StrategyError)
            assert error.strategy_id == "s1"

        config_error = InvalidStrategyConfigError("bad", errors=[ValidationError("name", "bad", "X")])
        assert config_error.errors[0].field == "name"
        assert InvalidStrategyConfigError("bad").errors == []

        transition = InvalidTransitionError("no", current_status="archived", attempted_status="active")
        assert transition.current_status == "archived"
        assert transition.attempted_status == "active"

    def test_circuit_open_error(self):
        error = CircuitOpenError("source:primary", 12.345)

        assert isinstance(error, RecoverableError)
        assert error.recoverable is True
        assert str(error) == "Circuit 'source:primary' is OPEN. Retry after 12.3s"

    def test_data_source_unavailable(self):
        error = DataSourceUnavailableError("no data", symbol="BTC-USD", failures={"primary": "timeout"})

        assert isinstance(error, GracefulDegradationError)
        assert error.allows_degradation is True
        assert error.degraded_functionality == "market_data"
        assert error.failures == {"primary": "timeout"}

    def test_errors_are_raisable(self):
        with pytest.raises(StrategyError, match="gone"):
            raise StrategyNotFoundError("gone")
