"""Tool settings for AI Factory.

Loads settings from:
1. ai-factory.toml (defaults, searched from the project directory upwards)
2. Environment variables (overrides, .env supported)
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

SETTINGS_FILENAME = "ai-factory.toml"


@dataclass
class Settings:
    """Runtime settings for fetching and logging."""

    # npm-compatible registry used for bare package names
    registry_url: str = "https://registry.npmjs.org"
    # Upper bound in seconds for each git clone / registry request
    fetch_timeout: float = 120.0
    git_bin: str = "git"
    log_level: str = "WARNING"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Create Settings from dictionary, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        settings = cls(**known)
        settings.fetch_timeout = float(settings.fetch_timeout)
        return settings


def find_settings_file(start: Path | None = None) -> Path | None:
    """Find ai-factory.toml in the start directory or its parents."""
    current = (start or Path.cwd()).resolve()

    for directory in [current, *current.parents]:
        settings_path = directory / SETTINGS_FILENAME
        if settings_path.exists():
            return settings_path

    return None


def load_settings(
    project_dir: Path | None = None,
    settings_path: Path | str | None = None,
) -> Settings:
    """Load settings from file and environment.

    Args:
        project_dir: Directory to start the settings file search from.
        settings_path: Optional explicit path to ai-factory.toml.

    Returns:
        Settings with environment overrides applied.
    """
    load_dotenv()

    data: dict[str, Any] = {}

    if settings_path is None:
        settings_path = find_settings_file(project_dir)

    if settings_path is not None:
        path = Path(settings_path)
        if path.exists():
            with open(path, "rb") as f:
                data = dict(tomllib.load(f).get("ai-factory", {}))

    env_overrides = {
        "registry_url": os.getenv("AIF_REGISTRY_URL"),
        "fetch_timeout": _float_or_none(os.getenv("AIF_FETCH_TIMEOUT")),
        "git_bin": os.getenv("AIF_GIT_BIN"),
        "log_level": os.getenv("AIF_LOG_LEVEL"),
    }
    for key, value in env_overrides.items():
        if value is not None:
            data[key] = value

    return Settings.from_dict(data)


def _float_or_none(value: str | None) -> float | None:
    """Convert string to float, or return None."""
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
