"""Configuration loading and management."""

from pathlib import Path
from typing import Optional

import yaml

from .config_models import FacterConfig

CONFIG_FILENAME = "facter.yaml"


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / CONFIG_FILENAME,
        Path.home() / ".facter" / CONFIG_FILENAME,
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> FacterConfig:
    """Load configuration as Pydantic model with validation.

    Raises:
        ValueError: On invalid YAML or a config that fails validation
    """
    base_config = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")

    if not isinstance(base_config, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    try:
        return FacterConfig.from_dict(base_config)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")
