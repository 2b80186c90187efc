"""Configuration validation utilities."""

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from ..utils.time import parse_interval

STRATEGY_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{1,62}$")
SYMBOL_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9._/-]{0,31}$")
MAX_SYMBOLS = 50
MAX_DESCRIPTION_LENGTH = 2000

STRATEGY_FIELDS = frozenset({"name", "description", "symbols", "interval", "risk_params"})

# field -> (lower bound, lower inclusive, upper bound, upper inclusive)
RISK_BOUNDS = {
    "stop_loss": (0.0, False, 1.0, False),
    "take_profit": (0.0, False, 10.0, True),
    "max_position_pct": (0.0, False, 1.0, True),
    "max_daily_loss": (0.0, False, 1.0, True),
}


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def normalize_symbols(symbols: Any) -> Any:
    """Uppercase and strip symbol strings; leave anything else for validation to report."""
    if not isinstance(symbols, (list, tuple)):
        return symbols
    return [s.strip().upper() if isinstance(s, str) else s for s in symbols]


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_risk_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate strategy risk parameters."""
        errors = []

        for key in params:
            if key not in RISK_BOUNDS:
                errors.append(ValidationError(
                    field=f"risk_params.{key}",
                    message="Unknown risk parameter",
                    value=params[key]
                ))

        for key, (low, low_incl, high, high_incl) in RISK_BOUNDS.items():
            if key not in params:
                continue

            value = params[key]
            if not _is_number(value):
                errors.append(ValidationError(
                    field=f"risk_params.{key}",
                    message="Must be a number",
                    value=value
                ))
                continue

            above_low = value >= low if low_incl else value > low
            below_high = value <= high if high_incl else value < high
            if not (above_low and below_high):
                left = "[" if low_incl else "("
                right = "]" if high_incl else ")"
                errors.append(ValidationError(
                    field=f"risk_params.{key}",
                    message=f"Must be in range {left}{low:g}, {high:g}{right}",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_symbols(symbols: Any) -> list[ValidationError]:
        """Validate a strategy's symbol list (already normalized)."""
        errors = []

        if not isinstance(symbols, (list, tuple)):
            return [ValidationError(field="symbols", message="Must be a list of strings", value=symbols)]

        if not symbols:
            errors.append(ValidationError(field="symbols", message="At least one symbol is required", value=symbols))
        elif len(symbols) > MAX_SYMBOLS:
            errors.append(ValidationError(
                field="symbols",
                message=f"At most {MAX_SYMBOLS} symbols are allowed",
                value=len(symbols)
            ))

        seen = set()
        for symbol in symbols:
            if not isinstance(symbol, str) or not SYMBOL_PATTERN.match(symbol):
                errors.append(ValidationError(field="symbols", message="Invalid symbol", value=symbol))
                continue
            if symbol in seen:
                errors.append(ValidationError(field="symbols", message="Duplicate symbol", value=symbol))
            seen.add(symbol)

        return errors

    @staticmethod
    def validate_strategy_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a merged strategy configuration (snake_case keys)."""
        errors = []

        for key in config:
            if key not in STRATEGY_FIELDS:
                errors.append(ValidationError(field=key, message="Unknown field", value=config[key]))

        name = config.get("name")
        if not isinstance(name, str) or not STRATEGY_NAME_PATTERN.match(name):
            errors.append(ValidationError(
                field="name",
                message="Must be 2-63 chars of lowercase letters, digits, '-' or '_', starting alphanumeric",
                value=name
            ))

        description = config.get("description", "")
        if not isinstance(description, str):
            errors.append(ValidationError(field="description", message="Must be a string", value=description))
        elif len(description) > MAX_DESCRIPTION_LENGTH:
            errors.append(ValidationError(
                field="description",
                message=f"Must be at most {MAX_DESCRIPTION_LENGTH} characters",
                value=len(description)
            ))

        if "symbols" not in config:
            errors.append(ValidationError(field="symbols", message="Required", value=None))
        else:
            errors.extend(ConfigValidator.validate_symbols(config["symbols"]))

        interval = config.get("interval")
        try:
            parse_interval(interval)
        except ValueError as e:
            errors.append(ValidationError(field="interval", message=str(e), value=interval))

        risk_params = config.get("risk_params", {})
        if not isinstance(risk_params, dict):
            errors.append(ValidationError(field="risk_params", message="Must be an object", value=risk_params))
        else:
            errors.extend(ConfigValidator.validate_risk_params(risk_params))

        return errors

    @staticmethod
    def validate_settings(settings: dict[str, Any]) -> list[ValidationError]:
        """Validate merged service settings."""
        errors = []

        cache = settings.get("cache", {})
        if "max_items" in cache and not _is_positive_int(cache["max_items"]):
            errors.append(ValidationError(
                field="cache.max_items", message="Must be a positive integer", value=cache["max_items"]
            ))
        if "ttl_seconds" in cache:
            value = cache["ttl_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="cache.ttl_seconds", message="Must be a non-negative number", value=value
                ))

        breaker = settings.get("breaker", {})
        for key in ("failure_threshold", "half_open_max_calls", "success_threshold"):
            if key in breaker and not _is_positive_int(breaker[key]):
                errors.append(ValidationError(
                    field=f"breaker.{key}", message="Must be a positive integer", value=breaker[key]
                ))
        if "reset_timeout_seconds" in breaker:
            value = breaker["reset_timeout_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="breaker.reset_timeout_seconds", message="Must be a positive number", value=value
                ))

        storage = settings.get("storage", {})
        if "retention_days" in storage and not _is_positive_int(storage["retention_days"]):
            errors.append(ValidationError(
                field="storage.retention_days", message="Must be a positive integer", value=storage["retention_days"]
            ))

        market_data = settings.get("market_data", {})
        for index, source in enumerate(market_data.get("sources", []) or []):
            prefix = f"market_data.sources[{index}]"
            if not isinstance(source, dict):
                errors.append(ValidationError(field=prefix, message="Must be an object", value=source))
                continue
            if not isinstance(source.get("name"), str) or not source.get("name"):
                errors.append(ValidationError(
                    field=f"{prefix}.name", message="Must be a non-empty string", value=source.get("name")
                ))
            url = source.get("url")
            parsed = urlparse(url) if isinstance(url, str) else None
            if parsed is None or parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(ValidationError(field=f"{prefix}.url", message="Must be an http(s) URL", value=url))
            elif "{symbol}" not in url:
                errors.append(ValidationError(
                    field=f"{prefix}.url", message="Must contain a {symbol} placeholder", value=url
                ))

        notifications = settings.get("notifications", {})
        if "retry_attempts" in notifications:
            value = notifications["retry_attempts"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="notifications.retry_attempts", message="Must be a non-negative integer", value=value
                ))
        if "retry_backoff" in notifications:
            value = notifications["retry_backoff"]
            if not _is_number(value) or value < 1:
                errors.append(ValidationError(
                    field="notifications.retry_backoff", message="Must be a number >= 1", value=value
                ))

        return errors
