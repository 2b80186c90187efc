"""Schema and validation for analysis records posted by sub-agents."""

import json
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Optional

import structlog

from ..config.validation import ValidationError
from ..errors import MalformedDataError
from ..utils.time import format_timestamp, parse_timestamp, utc_now

if TYPE_CHECKING:
    from ..strategies.models import StrategyConfig

logger = structlog.get_logger(__name__)

SIGNALS = ("buy", "sell", "hold")
MAX_SUMMARY_LENGTH = 4000
MAX_FUTURE_SKEW_SECONDS = 60


ANALYSIS_SCHEMA = {
    "type": "object",
    "required": ["symbol", "signal", "confidence", "timestamp"],
    "properties": {
        "symbol": {
            "type": "string",
            "minLength": 1,
            "description": "Symbol the analysis refers to; must belong to the strategy"
        },
        "signal": {
            "type": "string",
            "enum": list(SIGNALS),
            "description": "Recommended action"
        },
        "confidence": {
            "type": "number",
            "minimum": 0,
            "maximum": 1,
            "description": "Producer confidence in the signal"
        },
        "timestamp": {
            "type": "string",
            "format": "date-time",
            "description": "Time the analysis refers to (epoch ms also accepted)"
        },
        "summary": {
            "type": "string",
            "maxLength": MAX_SUMMARY_LENGTH,
            "description": "Human-readable reasoning"
        },
        "data": {
            "type": "object",
            "description": "Free-form indicator values and sub-agent output"
        }
    },
    "additionalProperties": False
}


class AnalysisValidator:
    """Validates analysis records against the schema and their strategy."""

    def __init__(self, max_future_skew_seconds: int = MAX_FUTURE_SKEW_SECONDS):
        self.logger = logger
        self.schema = ANALYSIS_SCHEMA
        self.max_future_skew = timedelta(seconds=max_future_skew_seconds)

    def validate(
        self,
        record: dict[str, Any],
        strategy: Optional["StrategyConfig"] = None
    ) -> list[ValidationError]:
        """
        Validate an analysis record.

        Args:
            record: Raw record as posted
            strategy: Owning strategy; when given, the symbol must be one of its symbols

        Returns:
            List of validation errors, empty when the record is valid
        """
        if not isinstance(record, dict):
            return [ValidationError(field="record", message="Must be an object", value=record)]

        errors = []

        missing = [name for name in self.schema["required"] if name not in record]
        for name in missing:
            errors.append(ValidationError(field=name, message="Required", value=None))

        for name in record:
            if name not in self.schema["properties"]:
                errors.append(ValidationError(field=name, message="Unknown field", value=record[name]))

        symbol = record.get("symbol")
        if "symbol" in record:
            if not isinstance(symbol, str) or not symbol.strip():
                errors.append(ValidationError(field="symbol", message="Must be a non-empty string", value=symbol))
            elif strategy is not None and symbol.strip().upper() not in strategy.symbols:
                errors.append(ValidationError(
                    field="symbol",
                    message=f"Not a symbol of strategy '{strategy.name}'",
                    value=symbol
                ))

        if "signal" in record and record["signal"] not in SIGNALS:
            errors.append(ValidationError(
                field="signal",
                message=f"Must be one of {', '.join(SIGNALS)}",
                value=record["signal"]
            ))

        if "confidence" in record:
            confidence = record["confidence"]
            if (not isinstance(confidence, (int, float)) or isinstance(confidence, bool)
                    or not (0 <= confidence <= 1)):
                errors.append(ValidationError(
                    field="confidence",
                    message="Must be a number between 0 and 1",
                    value=confidence
                ))

        if "timestamp" in record:
            errors.extend(self._validate_timestamp(record["timestamp"]))

        if "summary" in record:
            summary = record["summary"]
            if not isinstance(summary, str):
                errors.append(ValidationError(field="summary", message="Must be a string", value=summary))
            elif len(summary) > MAX_SUMMARY_LENGTH:
                errors.append(ValidationError(
                    field="summary",
                    message=f"Must be at most {MAX_SUMMARY_LENGTH} characters",
                    value=len(summary)
                ))

        if "data" in record:
            errors.extend(self._validate_data(record["data"]))

        if errors:
            self.logger.debug(
                "Analysis record rejected",
                strategy_id=strategy.name if strategy else None,
                errors=[f"{e.field}: {e.message}" for e in errors]
            )

        return errors

    def _validate_data(self, data: Any) -> list[ValidationError]:
        if not isinstance(data, dict):
            return [ValidationError(field="data", message="Must be an object", value=data)]

        # Stored as JSON and served back verbatim, so it must survive strict encoding
        try:
            json.dumps(data, allow_nan=False)
        except (TypeError, ValueError) as e:
            return [ValidationError(field="data", message=f"Must contain only finite JSON values: {e}", value=None)]

        return []

    def _validate_timestamp(self, value: Any) -> list[ValidationError]:
        try:
            ts = parse_timestamp(value)
        except MalformedDataError as e:
            return [ValidationError(field="timestamp", message=str(e), value=value)]

        if ts - utc_now() > self.max_future_skew:
            return [ValidationError(field="timestamp", message="Must not be in the future", value=value)]

        return []

    def normalize(self, record: dict[str, Any]) -> dict[str, Any]:
        """
        Produce the canonical stored form of a validated record.

        Symbols are uppercased, timestamps formatted as ISO-8601 UTC and
        optional fields defaulted.
        """
        return {
            "symbol": record["symbol"].strip().upper(),
            "signal": record["signal"],
            "confidence": float(record["confidence"]),
            "timestamp": format_timestamp(parse_timestamp(record["timestamp"])),
            "summary": record.get("summary", ""),
            "data": dict(record.get("data") or {}),
        }
