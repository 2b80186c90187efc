#!/usr/bin/env python3
"""Configuration validation script.

Usage: validate_config.py [CONFIG_DIR]
"""

import json
import sys
from pathlib import Path
from typing import Optional

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ct_app.config.loader import ConfigLoader
from ct_app.config.validation import ConfigValidator, ValidationError
from ct_app.errors import MalformedDataError
from ct_app.strategies.models import StrategyConfig
from ct_app.strategies.registry import CONFIG_FILENAME


def validate_strategy_file(path: Path) -> list[ValidationError]:
    """Validate one stored strategy config.json."""
    try:
        with open(path, encoding="utf-8") as f:
            strategy = StrategyConfig.from_dict(json.load(f))
    except (OSError, ValueError, MalformedDataError) as e:
        return [ValidationError(str(path), f"Unreadable strategy config: {e}", None)]

    errors = ConfigValidator.validate_strategy_config(strategy.to_params())
    if strategy.name != path.parent.name:
        errors.append(ValidationError("name", "Must match the strategy directory name", strategy.name))
    return errors


def main(config_dir: Optional[str] = None) -> int:
    """Validate settings and all stored strategies; returns the exit code."""
    print("🔍 Validating CT App configuration...")

    loader = ConfigLoader.create(Path(config_dir) if config_dir else None)

    try:
        settings = loader.load_settings()
    except (OSError, ValueError) as e:
        print(f"❌ Cannot load settings from {loader.config_dir}: {e}")
        return 1

    all_valid = True

    print(f"\n⚙️  Validating settings in {loader.config_dir}...")
    errors = ConfigValidator.validate_settings(settings)
    if errors:
        print(f"❌ Found {len(errors)} validation errors:")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        all_valid = False
    else:
        print("✅ Settings are valid")

    strategies_dir = Path(settings["storage"]["strategies_dir"])
    config_files = sorted(strategies_dir.glob(f"*/{CONFIG_FILENAME}")) if strategies_dir.is_dir() else []

    print(f"\n📊 Validating {len(config_files)} strategies in {strategies_dir}...")
    for path in config_files:
        errors = validate_strategy_file(path)
        if errors:
            print(f"❌ {path.parent.name}: {len(errors)} validation errors")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print(f"✅ {path.parent.name} configuration is valid")

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        return 0

    print("\n❌ Configuration validation failed!")
    return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else None))
