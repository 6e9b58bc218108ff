"""Configuration validation utilities."""

from dataclasses import dataclass
from datetime import time
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .defaults import get_default_config

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a merged configuration dictionary."""
        errors = []
        errors.extend(ConfigValidator.validate_known_keys(config))
        errors.extend(ConfigValidator.validate_session_params(config.get("session", {})))
        errors.extend(ConfigValidator.validate_sync_params(config.get("sync", {})))
        errors.extend(ConfigValidator.validate_market_hours(config.get("market_hours", {})))
        errors.extend(ConfigValidator.validate_indicator_params(config.get("indicators", {})))
        errors.extend(ConfigValidator.validate_screen_params(config.get("screen", {})))
        errors.extend(ConfigValidator.validate_logging_params(config.get("logging", {})))
        return errors

    @staticmethod
    def validate_known_keys(config: dict[str, Any]) -> list[ValidationError]:
        """Reject sections and keys that do not exist in the defaults."""
        errors = []
        defaults = get_default_config()

        for section, values in config.items():
            default_section = getattr(defaults, section, None)
            if default_section is None or not hasattr(default_section, "__dataclass_fields__"):
                errors.append(ValidationError(
                    field=section,
                    message="Unknown configuration section",
                    value=values
                ))
                continue
            if not isinstance(values, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=values
                ))
                continue
            for key in values:
                if key not in default_section.__dataclass_fields__:
                    errors.append(ValidationError(
                        field=f"{section}.{key}",
                        message="Unknown configuration key",
                        value=values[key]
                    ))

        return errors

    @staticmethod
    def validate_session_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate market-data session parameters."""
        errors = []

        if "host" in params and (not isinstance(params["host"], str) or not params["host"]):
            errors.append(ValidationError(
                field="session.host",
                message="Must be a non-empty string",
                value=params["host"]
            ))

        if "port" in params:
            value = params["port"]
            if not _is_positive_int(value) or value > 65535:
                errors.append(ValidationError(
                    field="session.port",
                    message="Must be an integer between 1 and 65535",
                    value=value
                ))

        if "client_id" in params and (not isinstance(params["client_id"], int)
                                      or isinstance(params["client_id"], bool)):
            errors.append(ValidationError(
                field="session.client_id",
                message="Must be an integer",
                value=params["client_id"]
            ))

        return errors

    @staticmethod
    def validate_sync_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate request scheduling parameters."""
        errors = []

        for key in ("concurrency_limit", "full_span_days"):
            if key in params and not _is_positive_int(params[key]):
                errors.append(ValidationError(
                    field=f"sync.{key}",
                    message="Must be a positive integer",
                    value=params[key]
                ))

        if "concurrency_buffer" in params:
            value = params["concurrency_buffer"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="sync.concurrency_buffer",
                    message="Must be a non-negative integer",
                    value=value
                ))

        if "poll_interval_seconds" in params:
            value = params["poll_interval_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="sync.poll_interval_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "resync_on_missing_baseline" in params and not isinstance(params["resync_on_missing_baseline"], bool):
            errors.append(ValidationError(
                field="sync.resync_on_missing_baseline",
                message="Must be a boolean",
                value=params["resync_on_missing_baseline"]
            ))

        return errors

    @staticmethod
    def validate_market_hours(params: dict[str, Any]) -> list[ValidationError]:
        """Validate exchange hours and timezone."""
        errors = []

        if "timezone" in params:
            try:
                ZoneInfo(params["timezone"])
            except (ZoneInfoNotFoundError, ValueError, TypeError):
                errors.append(ValidationError(
                    field="market_hours.timezone",
                    message="Must be an IANA timezone name",
                    value=params["timezone"]
                ))

        parsed = {}
        for key in ("session_open", "session_close", "settle_until"):
            if key not in params:
                continue
            value = params[key]
            if isinstance(value, time):
                parsed[key] = value
                continue
            try:
                if isinstance(value, int) and not isinstance(value, bool):
                    parsed[key] = time(*divmod(value, 60))
                else:
                    parsed[key] = time.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(ValidationError(
                    field=f"market_hours.{key}",
                    message="Must be a time of day in HH:MM format",
                    value=value
                ))

        if {"session_open", "settle_until"} <= parsed.keys():
            if parsed["session_open"] >= parsed["settle_until"]:
                errors.append(ValidationError(
                    field="market_hours.settle_until",
                    message="Must be later than session_open",
                    value=params["settle_until"]
                ))

        return errors

    @staticmethod
    def validate_indicator_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate indicator windows and periods."""
        errors = []

        for key in ("sma_windows", "ema_windows"):
            if key not in params:
                continue
            value = params[key]
            if not isinstance(value, (list, tuple)) or not all(_is_positive_int(w) for w in value):
                errors.append(ValidationError(
                    field=f"indicators.{key}",
                    message="Must be a list of positive integers",
                    value=value
                ))

        for key in ("di_period", "adx_period", "adxr_period", "rsi_period",
                    "stoch_k_len", "stoch_k_smoothing", "stoch_d_smoothing"):
            if key in params and not _is_positive_int(params[key]):
                errors.append(ValidationError(
                    field=f"indicators.{key}",
                    message="Must be a positive integer",
                    value=params[key]
                ))

        return errors

    @staticmethod
    def validate_screen_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate trend screening parameters."""
        errors = []

        for key in ("ema_period", "stoch_k_len", "stoch_k_smoothing",
                    "stoch_d_smoothing", "adx_period"):
            if key in params and not _is_positive_int(params[key]):
                errors.append(ValidationError(
                    field=f"screen.{key}",
                    message="Must be a positive integer",
                    value=params[key]
                ))

        if "stoch_threshold" in params:
            value = params["stoch_threshold"]
            if not _is_number(value) or value < 0 or value > 50:
                errors.append(ValidationError(
                    field="screen.stoch_threshold",
                    message="Must be a number between 0 and 50",
                    value=value
                ))

        if "adx_floor" in params:
            value = params["adx_floor"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="screen.adx_floor",
                    message="Must be a non-negative number",
                    value=value
                ))

        for key in ("loose", "force"):
            if key in params and not isinstance(params[key], bool):
                errors.append(ValidationError(
                    field=f"screen.{key}",
                    message="Must be a boolean",
                    value=params[key]
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in VALID_LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {sorted(VALID_LOG_LEVELS)}",
                    value=value
                ))

        return errors
