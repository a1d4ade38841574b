"""Configuration paths and defaults for the RegenGraph CLI."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("REGENGRAPH_HOME", str(Path.home() / ".regengraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

OUTPUT_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CLI_CONFIG = {
    "default_tier": "local",
    "output": "text",
}
DEFAULT_LOG_LEVEL = "WARNING"
