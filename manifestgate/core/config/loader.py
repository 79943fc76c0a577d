"""
Configuration loader — reads .manifestgate.yml into GateSettings.

The settings file is optional. When present it provides defaults for
a repository's validation runs; CLI options override it field by field.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from manifestgate.core.errors import ConfigurationError
from manifestgate.core.models.settings import GateSettings

logger = logging.getLogger(__name__)

# Default config filenames, first match wins
SETTINGS_FILES = (".manifestgate.yml", ".manifestgate.yaml")


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for a settings file starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the settings file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        for name in SETTINGS_FILES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path | None = None) -> GateSettings:
    """Load and validate gate settings.

    Args:
        path: Explicit path to a settings file. If None, searches upward;
            when nothing is found, defaults are returned.

    Returns:
        Validated GateSettings model.

    Raises:
        ConfigurationError: If an explicit file is missing or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_settings_file()

    if path is None:
        logger.debug("No settings file found, using defaults")
        return GateSettings()

    if not path.is_file():
        if explicit:
            raise ConfigurationError(f"Settings file not found: {path}")
        return GateSettings()

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = GateSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings


def apply_overrides(settings: GateSettings, **overrides: Any) -> GateSettings:
    """Return a copy of ``settings`` with every non-None override applied.

    Empty tuples (click's value for an unused ``multiple=True`` option)
    count as unset.
    """
    data = settings.model_dump()
    for key, value in overrides.items():
        if value is None or value == ():
            continue
        data[key] = list(value) if isinstance(value, tuple) else value

    try:
        return GateSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid options: {e}") from e
