"""
Configuration management for Braindump.

Uses XDG base directories:
- Config: ~/.config/braindump/config.toml
- Data: ~/braindump/ (database lives here)
"""

from pathlib import Path
from typing import Any
import os

# XDG defaults
DEFAULT_CONFIG_HOME = Path.home() / ".config"
DEFAULT_DATA_HOME = Path.home() / "braindump"


def get_config_dir() -> Path:
    """Get the config directory (XDG_CONFIG_HOME/braindump)."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", DEFAULT_CONFIG_HOME))
    return base / "braindump"


def get_braindump_home() -> Path:
    """Get the data directory (~/braindump or BRAINDUMP_HOME)."""
    if env_home := os.environ.get("BRAINDUMP_HOME"):
        return Path(env_home)
    return DEFAULT_DATA_HOME


def get_config_path() -> Path:
    """Get the path to config.toml."""
    return get_config_dir() / "config.toml"


def get_db_path() -> Path:
    """Get the path to braindump.db."""
    return get_braindump_home() / "braindump.db"


def ensure_dirs() -> None:
    """Ensure all required directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_braindump_home().mkdir(parents=True, exist_ok=True)


def load_config(path: Path | None = None) -> dict[str, Any]:
    """
    Load configuration from config.toml.

    Missing sections and keys fall back to the defaults.
    """
    config_path = path or get_config_path()
    config = get_default_config()

    if not config_path.exists():
        return config

    # Lazy import tomli only when needed
    import tomli

    with open(config_path, "rb") as f:
        loaded = tomli.load(f)

    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values
    return config


def get_default_config() -> dict[str, Any]:
    """Return default configuration."""
    return {
        "braindump": {
            "home": str(get_braindump_home()),
            "owner": "default",
        },
        "organizer": {
            "timezone": "UTC",
            "timeout_seconds": 60.0,
            "classifier": "llm",  # or "rules" for the offline classifier
        },
        "llm": {
            "provider": "anthropic",  # or "openai"
            "model": "claude-haiku-4-5-20251001",
            "max_retries": 2,
        },
    }
