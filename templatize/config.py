import copy
import json
import logging
import os
from pathlib import Path

import toml
from rich.console import Console
from rich.logging import RichHandler

# Initialize Rich Console
console = Console(stderr=True)

# Configure logging to use RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True)]
)

logger = logging.getLogger("templatize")


def get_config_path():
    """Path of the user settings file (TEMPLATIZE_CONFIG overrides ~/.templatizerc)."""
    override = os.environ.get("TEMPLATIZE_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".templatizerc"


def get_default_config():
    """Default user settings."""
    return {
        "placeholder_format": "mustache",
        "workers": 4,
        "ignore": [".git", "node_modules", "__pycache__", ".venv", "dist", "build"],
        "logging": {
            "level": "INFO",
        },
    }


def _merge(base, override):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config():
    """
    Loads user settings merged over the defaults.

    Returns:
        dict: The effective settings.
    """
    config = get_default_config()
    path = get_config_path()
    if not path.exists():
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix == ".toml":
                user_config = toml.load(f)
            else:
                user_config = json.load(f)
    except (json.JSONDecodeError, toml.TomlDecodeError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return config

    if isinstance(user_config, dict):
        _merge(config, copy.deepcopy(user_config))
    return config


def save_config(config):
    """Writes user settings as JSON (or TOML when the settings path ends in .toml)."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if path.suffix == ".toml":
            toml.dump(config, f)
        else:
            json.dump(config, f, indent=2)
    return path


def set_verbose(verbose):
    """Switches the templatize logger between INFO and DEBUG."""
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
