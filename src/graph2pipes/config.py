"""Settings for the serializer, deserializer and auto-layout.

Settings are read from a YAML file: an explicit path, the file named by
``GRAPH2PIPES_CONFIG``, or ``graph2pipes.yaml`` in the working directory.
Missing keys keep their defaults.

Only the CLI loads a file. Library calls take a ``Settings`` argument and use
``Settings()`` when none is given, so they never touch the filesystem.
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GRAPH2PIPES_CONFIG"
DEFAULT_CONFIG_FILE = "graph2pipes.yaml"


class LayoutSettings(BaseModel):
    origin_x: float = 50
    origin_y: float = 50
    x_spacing: float = 300
    y_spacing: float = 150


class Settings(BaseModel):
    default_version: str = "0.0.1"
    flow_type: str = "NORMAL"
    default_flow_name: str = "Untitled flow"
    default_headers: Dict[str, Any] = Field(default_factory=lambda: {"Content-Type": "application/json"})
    value_type: str = "string"
    layout: LayoutSettings = Field(default_factory=LayoutSettings)


def _config_path(path: Optional[Union[str, Path]]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env)
    local = Path(DEFAULT_CONFIG_FILE)
    return local if local.exists() else None


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    cfg_path = _config_path(path)
    if cfg_path is None:
        return Settings()
    try:
        raw = yaml.safe_load(cfg_path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read settings file '{cfg_path}': {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file '{cfg_path}' must contain a mapping")
    try:
        settings = Settings(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in '{cfg_path}': {e}") from e
    logger.debug("Loaded settings from %s", cfg_path)
    return settings

