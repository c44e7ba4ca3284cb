"""Validation of agent configuration mappings loaded from disk."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from actions.types import ActionType

_ACTION_NAMES = frozenset(action.value for action in ActionType)


class ConfigValidationError(ValueError):
    """Raised when configuration validation fails."""


def validate_market_id(config: Mapping[str, Any]) -> None:
    if "market_id" not in config:
        raise ConfigValidationError("Missing required field: market_id")
    market_id = config["market_id"]
    if not isinstance(market_id, str) or not market_id.strip():
        raise ConfigValidationError("market_id must be a non-empty string")


def _as_decimal(field: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ConfigValidationError(f"{field} must be a valid number, got: {value}")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ConfigValidationError(
            f"{field} must be a valid number, got: {value}"
        ) from exc
    if not number.is_finite():
        raise ConfigValidationError(f"{field} must be a finite number, got: {value}")
    return number


def validate_positive_decimal(
    config: Mapping[str, Any], field: str, *, required: bool = True
) -> None:
    if field not in config:
        if required:
            raise ConfigValidationError(f"Missing required field: {field}")
        return
    value = _as_decimal(field, config[field])
    if value <= 0:
        raise ConfigValidationError(f"{field} must be positive, got: {value}")


def validate_integer(
    config: Mapping[str, Any], field: str, *, minimum: int = 0, required: bool = False
) -> None:
    if field not in config:
        if required:
            raise ConfigValidationError(f"Missing required field: {field}")
        return
    value = config[field]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigValidationError(
            f"{field} must be an integer, got: {type(value).__name__}"
        )
    if value < minimum:
        raise ConfigValidationError(f"{field} must be >= {minimum}, got: {value}")


def validate_bool(config: Mapping[str, Any], field: str) -> None:
    if field in config and not isinstance(config[field], bool):
        raise ConfigValidationError(f"{field} must be a boolean if provided.")


def validate_url(config: Mapping[str, Any], field: str = "base_url") -> None:
    if field not in config:
        return
    url = config[field]
    if not isinstance(url, str) or not url.strip():
        raise ConfigValidationError(f"{field} must be a non-empty string")
    if not re.match(r"^https?://", url, re.IGNORECASE):
        raise ConfigValidationError(
            f"{field} must start with http:// or https://, got: {url}"
        )


def validate_weights(config: Mapping[str, Any]) -> None:
    if "weights" not in config:
        return
    weights = config["weights"]
    if not isinstance(weights, Mapping):
        raise ConfigValidationError("weights must be a mapping of action -> weight")
    for name, weight in weights.items():
        if name not in _ACTION_NAMES:
            raise ConfigValidationError(f"weights: unknown action '{name}'")
        if _as_decimal(f"weights.{name}", weight) < 0:
            raise ConfigValidationError(
                f"weights.{name} must be non-negative, got: {weight}"
            )


def validate_enabled_actions(config: Mapping[str, Any]) -> None:
    if "enabled_actions" not in config:
        return
    enabled = config["enabled_actions"]
    if not isinstance(enabled, (list, tuple)):
        raise ConfigValidationError("enabled_actions must be a list of action names")
    unknown = sorted(str(name) for name in enabled if name not in _ACTION_NAMES)
    if unknown:
        raise ConfigValidationError(
            f"enabled_actions: unknown actions {', '.join(unknown)}"
        )


def validate_amount_range(config: Mapping[str, Any]) -> None:
    if "amount_range_usd" not in config:
        return
    bounds = config["amount_range_usd"]
    if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
        raise ConfigValidationError("amount_range_usd must be a [min, max] pair")
    low = _as_decimal("amount_range_usd[0]", bounds[0])
    high = _as_decimal("amount_range_usd[1]", bounds[1])
    if low <= 0 or high < low:
        raise ConfigValidationError(
            f"amount_range_usd must satisfy 0 < min <= max, got: [{low}, {high}]"
        )


def validate_agent_config(config: Mapping[str, Any]) -> None:
    """Validate an agent config mapping.

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    if not isinstance(config, Mapping):
        raise ConfigValidationError("Configuration must be a dictionary")
    if not config:
        raise ConfigValidationError("Configuration cannot be empty")

    validate_market_id(config)
    validate_url(config)
    validate_integer(config, "delay_ms", minimum=0)
    validate_integer(config, "jitter_ms", minimum=0)
    validate_weights(config)
    validate_enabled_actions(config)
    validate_amount_range(config)
    validate_bool(config, "auto_deposit")
    validate_bool(config, "dry_run")
    validate_bool(config, "verify_ssl")
    validate_integer(config, "log_capacity", minimum=1)
    if "seed" in config and config["seed"] is not None:
        validate_integer(config, "seed", minimum=0)
    validate_positive_decimal(config, "rest_timeout_sec", required=False)
    validate_integer(config, "rest_retries", minimum=0)
    if "rest_backoff_factor" in config:
        if _as_decimal("rest_backoff_factor", config["rest_backoff_factor"]) < 0:
            raise ConfigValidationError("rest_backoff_factor must be non-negative")
    if "api_token" in config and config["api_token"] is not None:
        if not isinstance(config["api_token"], str) or not config["api_token"].strip():
            raise ConfigValidationError("api_token must be a non-empty string")
