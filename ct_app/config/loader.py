"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import DefaultConfig, get_default_config

SETTINGS_FILE = "settings.yaml"


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

    def load_settings_file(self) -> dict[str, Any]:
        """Load the settings.yaml overrides, or an empty dict when absent."""
        settings_file = self.config_dir / SETTINGS_FILE

        if not settings_file.exists():
            return {}

        with open(settings_file) as f:
            settings = yaml.safe_load(f)

        if settings is None:
            return {}
        if not isinstance(settings, dict):
            raise ValueError(f"{settings_file} must contain a mapping at the top level")

        return settings

    def load_settings(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge service settings with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. settings.yaml in the config directory
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_settings_file())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def merge_strategy_config(
        self,
        payload: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge a strategy creation payload over the strategy defaults.

        Priority order:
        1. Request payload (highest priority)
        2. ``strategy_defaults`` section of settings.yaml
        3. Global strategy defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults.strategy_defaults)

        file_defaults = self.load_settings_file().get("strategy_defaults", {})
        if file_defaults:
            config = self._deep_merge(config, file_defaults)

        if payload:
            config = self._deep_merge(config, payload)

        return config

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, tuple):
                    result[field_name] = list(value)
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
