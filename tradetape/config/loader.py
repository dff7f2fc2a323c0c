"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import UnrecoverableError
from .defaults import (
    DefaultConfig,
    FeedParams,
    LedgerParams,
    TransportParams,
    get_default_config,
)
from .validation import ConfigValidator

CONFIG_FILENAME = "tradetape.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load the YAML settings file, empty when it does not exist."""
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        with open(config_file) as f:
            file_config = yaml.safe_load(f)

        return file_config or {}

    def load_instrument_config(self, instrument_id: str) -> dict[str, Any]:
        """Load instrument-specific configuration overrides."""
        instruments = self.load_file_config().get("instruments") or {}
        return instruments.get(instrument_id, {})  # type: ignore[no-any-return]

    def merge_config(
        self,
        instrument_id: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Runtime overrides (highest priority)
        2. Settings file, with instrument-specific sections applied on top
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        file_config = self.load_file_config()
        file_config = {k: v for k, v in file_config.items() if k != "instruments"}
        config = self._deep_merge(config, file_config)

        if instrument_id:
            config = self._deep_merge(config, self.load_instrument_config(instrument_id))

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def build(
        self,
        instrument_id: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None
    ) -> DefaultConfig:
        """Merge, validate and convert configuration back into dataclasses."""
        merged = self.merge_config(instrument_id, overrides)

        errors = ConfigValidator.validate_config(merged)
        if errors:
            details = "; ".join(f"{err.field}: {err.message} (got: {err.value})" for err in errors)
            raise UnrecoverableError(f"Invalid configuration: {details}")

        return DefaultConfig(
            ledger=LedgerParams(**merged.get("ledger", {})),
            transport=TransportParams(**merged.get("transport", {})),
            feed=FeedParams(**merged.get("feed", {})),
        )

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
