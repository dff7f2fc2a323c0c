"""Configuration validation utilities."""

from dataclasses import dataclass, fields
from typing import Any

from .defaults import FeedParams, LedgerParams, TransportParams


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_ledger_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate ledger parameters."""
        errors = []

        if "max_trades" in params:
            value = params["max_trades"]
            if not _is_int(value) or value <= 0:
                errors.append(ValidationError(
                    field="max_trades",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_transport_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate transport parameters."""
        errors = []

        if "url" in params:
            value = params["url"]
            if not isinstance(value, str) or not value.startswith(("ws://", "wss://")):
                errors.append(ValidationError(
                    field="url",
                    message="Must be a ws:// or wss:// URL",
                    value=value
                ))

        if "reconnect_attempts" in params:
            value = params["reconnect_attempts"]
            if not _is_int(value) or value < 0:
                errors.append(ValidationError(
                    field="reconnect_attempts",
                    message="Must be a non-negative integer",
                    value=value
                ))

        if "reconnect_interval_ms" in params:
            value = params["reconnect_interval_ms"]
            if not _is_int(value) or value < 0:
                errors.append(ValidationError(
                    field="reconnect_interval_ms",
                    message="Must be a non-negative integer",
                    value=value
                ))

        if "ping_interval_s" in params:
            value = params["ping_interval_s"]
            if not _is_int(value) or value < 0:
                errors.append(ValidationError(
                    field="ping_interval_s",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_feed_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate feed parameters."""
        errors = []

        for name in ("trade_feed", "snapshot_feed", "initial_instrument"):
            if name in params:
                value = params[name]
                if not isinstance(value, str) or not value:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-empty string",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a complete merged configuration."""
        errors = []

        sections = {
            "ledger": (LedgerParams, ConfigValidator.validate_ledger_params),
            "transport": (TransportParams, ConfigValidator.validate_transport_params),
            "feed": (FeedParams, ConfigValidator.validate_feed_params),
        }

        for section, (params_cls, validator) in sections.items():
            params = config.get(section, {})
            if not isinstance(params, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=params
                ))
                continue

            known = {f.name for f in fields(params_cls)}
            for key in params:
                if key not in known:
                    errors.append(ValidationError(
                        field=f"{section}.{key}",
                        message="Unknown parameter",
                        value=params[key]
                    ))

            errors.extend(validator(params))

        return errors
