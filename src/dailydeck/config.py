"""Configuration management for dailydeck."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .core.models import CATEGORY_KEYS, DEFAULT

logger = logging.getLogger(__name__)

DAILYDECK_HOME = Path(os.environ.get("DAILYDECK_HOME", Path.home() / "dailydeck"))
CONFIG_FILE = DAILYDECK_HOME / "config" / "dailydeck.conf"
DATA_DIR = DAILYDECK_HOME / "data"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Config:
    """dailydeck configuration."""

    timezone: str = "UTC"
    data_dir: str = ""
    # Move completed cards to the end of the completed run at the front
    move_completed_to_boundary: bool = False
    default_category: str = DEFAULT


def _parse_bool(key: str, value: str, current: bool) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning(f"Ignoring {key.upper()}={value!r}: expected true/false")
    return current


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from dailydeck.conf file."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if not config_file.exists():
        return config

    for line in config_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value.startswith('"') or value.startswith("'"):
            quote = value[0]
            end_quote = value.find(quote, 1)
            value = value[1:end_quote] if end_quote != -1 else value[1:]
        elif "#" in value:
            value = value.split("#")[0].strip()

        match key:
            case "timezone":
                config.timezone = value
            case "data_dir":
                config.data_dir = value
            case "move_completed_to_boundary":
                config.move_completed_to_boundary = _parse_bool(
                    key, value, config.move_completed_to_boundary
                )
            case "default_category":
                if value in CATEGORY_KEYS:
                    config.default_category = value
                else:
                    logger.warning(f"Ignoring DEFAULT_CATEGORY={value!r}: unknown category")

    return config
