"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass, fields, replace
from datetime import time
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import AppConfig, get_default_config
from .validation import ConfigValidator

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "tickerbars" / "config.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_path: Optional[Path]
    defaults: AppConfig

    @classmethod
    def create(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_path is None and DEFAULT_CONFIG_PATH.exists():
            config_path = DEFAULT_CONFIG_PATH

        return cls(
            config_path=Path(config_path) if config_path is not None else None,
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from the YAML config file, if any."""
        if self.config_path is None:
            return {}

        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path) as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if file_config is None:
            return {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")
        return file_config

    def merge_config(self, cli_overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Command line overrides (highest priority)
        2. Config file overrides
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config.pop("config_path", None)

        config = self._deep_merge(config, self.load_file_config())

        if cli_overrides:
            config = self._deep_merge(config, self._drop_none(cli_overrides))

        return config

    def load(self, cli_overrides: Optional[dict[str, Any]] = None) -> AppConfig:
        """Merge, validate and build the application configuration."""
        merged = self.merge_config(cli_overrides)

        errors = ConfigValidator.validate_config(merged)
        if errors:
            details = "; ".join(f"{err.field}: {err.message} (got: {err.value})" for err in errors)
            raise ConfigurationError(f"Invalid configuration: {details}", errors=errors)

        sections = {}
        for section in fields(self.defaults):
            if section.name == "config_path":
                continue
            default_section = getattr(self.defaults, section.name)
            values = {
                name: self._coerce(value, getattr(default_section, name))
                for name, value in merged[section.name].items()
            }
            sections[section.name] = replace(default_section, **values)

        return AppConfig(config_path=self.config_path, **sections)

    def _coerce(self, value: Any, default: Any) -> Any:
        """Convert YAML/CLI scalars to the type of the default value."""
        if isinstance(default, time) and isinstance(value, str):
            return time.fromisoformat(value)
        # YAML 1.1 reads unquoted HH:MM without a leading zero as base-60 minutes
        if isinstance(default, time) and isinstance(value, int) and not isinstance(value, bool):
            return time(*divmod(value, 60))
        if isinstance(default, tuple) and isinstance(value, list):
            return tuple(value)
        if isinstance(default, Path) and isinstance(value, str):
            return Path(value).expanduser()
        if isinstance(default, float) and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
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

    def _drop_none(self, overrides: dict[str, Any]) -> dict[str, Any]:
        """Remove unset command line options so they do not mask lower tiers."""
        result = {}
        for key, value in overrides.items():
            if isinstance(value, dict):
                value = self._drop_none(value)
                if value:
                    result[key] = value
            elif value is not None:
                result[key] = value
        return result
