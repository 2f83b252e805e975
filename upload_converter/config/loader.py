"""
Config Loader — Load converter settings from a master key or individual env vars.

Supports two modes:
1. Master JSON key: Single UPLOAD_CONVERTER_CONFIG env var with all settings
2. Individual keys: Separate env vars for each setting (fallback)

## Usage

    # Option 1: Master config
    export UPLOAD_CONVERTER_CONFIG='{"enabled": true, "max_width": 2560, "quality": 75}'

    # Option 2: Individual keys
    export UPLOAD_CONVERTER_ENABLED=1
    export UPLOAD_CONVERTER_MAX_WIDTH=2560

The loader reads the master config first; individual env vars fill in
whatever it leaves out. Unset values fall back to the defaults below.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..models.upload import ConversionConfig
from ..validation import parse_bool, sanitize_quality, validate_dimension

logger = logging.getLogger(__name__)

MASTER_ENV_VAR = "UPLOAD_CONVERTER_CONFIG"

DEFAULT_MAX_WIDTH = 1920
DEFAULT_MAX_HEIGHT = 1080
DEFAULT_QUALITY = 80
DEFAULT_UPLOAD_DIR = "uploads"

# setting name → individual env var
ENV_VARS = {
    "enabled": "UPLOAD_CONVERTER_ENABLED",
    "max_width": "UPLOAD_CONVERTER_MAX_WIDTH",
    "max_height": "UPLOAD_CONVERTER_MAX_HEIGHT",
    "quality": "UPLOAD_CONVERTER_QUALITY",
    "debug": "UPLOAD_CONVERTER_DEBUG",
    "upload_dir": "UPLOAD_CONVERTER_UPLOAD_DIR",
    "base_url": "UPLOAD_CONVERTER_BASE_URL",
}


@dataclass
class ConverterSettings:
    """All converter settings in one place."""

    enabled: bool = False
    max_width: int = DEFAULT_MAX_WIDTH
    max_height: int = DEFAULT_MAX_HEIGHT
    quality: int = DEFAULT_QUALITY

    # Operator debug flag: gates the codec-missing warning
    debug: bool = False

    # Upload adapter (Flask app / CLI)
    upload_dir: str = DEFAULT_UPLOAD_DIR
    base_url: str = "/uploads"

    def conversion_config(self) -> ConversionConfig:
        """The per-call values handed to the converter."""
        return ConversionConfig(
            enabled=self.enabled,
            max_width=self.max_width,
            max_height=self.max_height,
            quality=self.quality,
        )

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_dir)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(environ: Optional[Mapping[str, str]] = None) -> ConverterSettings:
    """
    Load settings from master key or individual env vars.

    Priority:
    1. UPLOAD_CONVERTER_CONFIG (master JSON)
    2. Individual environment variables
    3. Defaults

    Raises:
        ValidationError: If a width/height setting is out of range or
            a value cannot be parsed.
    """
    env = os.environ if environ is None else environ
    raw: Dict[str, Any] = {}

    master_config = env.get(MASTER_ENV_VAR)
    if master_config:
        try:
            raw = _parse_master_config(json.loads(master_config))
            logger.info(f"Loaded configuration from {MASTER_ENV_VAR}")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid {MASTER_ENV_VAR} JSON: {e}")
        except AttributeError:
            logger.error(f"{MASTER_ENV_VAR} must be a JSON object")

    # Fill in missing values from individual env vars
    for name, var in ENV_VARS.items():
        if raw.get(name) is None and env.get(var) is not None:
            raw[name] = env[var]

    return settings_from_dict(raw)


def _parse_master_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """Accept both snake_case keys and the env var names."""
    return {
        name: data.get(name, data.get(var))
        for name, var in ENV_VARS.items()
    }


def settings_from_dict(raw: Mapping[str, Any]) -> ConverterSettings:
    """Sanitize raw setting values into ConverterSettings."""
    settings = ConverterSettings()

    if raw.get("enabled") is not None:
        settings.enabled = parse_bool(raw["enabled"], "enabled")
    if raw.get("max_width") is not None:
        settings.max_width = validate_dimension(raw["max_width"], "max_width")
    if raw.get("max_height") is not None:
        settings.max_height = validate_dimension(raw["max_height"], "max_height")
    if raw.get("quality") is not None:
        settings.quality = sanitize_quality(raw["quality"], "quality")
    if raw.get("debug") is not None:
        settings.debug = parse_bool(raw["debug"], "debug")
    if raw.get("upload_dir"):
        settings.upload_dir = str(raw["upload_dir"])
    if raw.get("base_url") is not None:
        settings.base_url = str(raw["base_url"]).rstrip("/")

    return settings


def generate_master_config_template() -> str:
    """Generate a template for UPLOAD_CONVERTER_CONFIG."""
    template = {
        "enabled": True,
        "max_width": DEFAULT_MAX_WIDTH,
        "max_height": DEFAULT_MAX_HEIGHT,
        "quality": DEFAULT_QUALITY,
        "debug": False,
        "upload_dir": DEFAULT_UPLOAD_DIR,
        "base_url": "/uploads",
    }
    return json.dumps(template, indent=2)
