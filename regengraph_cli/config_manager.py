"""Configuration manager for the RegenGraph CLI using TOML files."""

from __future__ import annotations

import logging
from typing import Any, Dict

import toml

from . import config
from .models import TIERS

logger = logging.getLogger(__name__)


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not config.CONFIG_FILE.exists():
        return {}
    try:
        with open(config.CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config.CONFIG_FILE, exc)
        return {}


def _save_full_config(data: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    try:
        config.CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
            toml.dump(data, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", config.CONFIG_FILE, exc)
        return False


def load_config() -> Dict[str, Any]:
    """Load the ``[cli]`` section merged over the defaults.

    Unknown tiers or output formats in the file fall back to the defaults.
    """
    merged = dict(config.DEFAULT_CLI_CONFIG)
    section = load_full_config().get("cli", {})
    if isinstance(section, dict):
        merged.update(section)
    if merged.get("default_tier") not in TIERS:
        merged["default_tier"] = config.DEFAULT_CLI_CONFIG["default_tier"]
    if merged.get("output") not in config.OUTPUT_FORMATS:
        merged["output"] = config.DEFAULT_CLI_CONFIG["output"]
    return merged


def load_log_level() -> str:
    section = load_full_config().get("logging", {})
    level = str(section.get("level", config.DEFAULT_LOG_LEVEL)).upper() if isinstance(section, dict) else ""
    return level if level in config.LOG_LEVELS else config.DEFAULT_LOG_LEVEL


def save_config(default_tier: str = "", output: str = "") -> bool:
    """Save CLI defaults to the ``[cli]`` section.

    Preserves other sections (e.g. ``[logging]``) in the file.

    Args:
        default_tier: Context tier used when ``--tier`` is omitted.
        output: ``text`` or ``json``.

    Returns:
        True if saved successfully, False otherwise
    """
    data = load_full_config()
    section = dict(data.get("cli") or {})
    if default_tier:
        section["default_tier"] = default_tier
    if output:
        section["output"] = output
    data["cli"] = section
    return _save_full_config(data)
