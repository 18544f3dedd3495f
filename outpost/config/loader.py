"""Config file loading."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from outpost.config.schema import OutpostConfig

_DEFAULT_CONFIG_FILE = Path.home() / ".outpost" / "config.json"


def load_config(path: Path | None = None) -> OutpostConfig:
    """Load config from a JSON file, falling back to defaults if it is missing.

    Environment variables with the OUTPOST_ prefix override file values.
    Nested keys use __ as delimiter (e.g. OUTPOST_DISPATCH__SENDING_INTERVAL).
    """
    config_path = (path or _DEFAULT_CONFIG_FILE).expanduser().resolve()

    if config_path.exists():
        raw = json.loads(config_path.read_text(encoding="utf-8"))
        logger.debug("Loaded config from {}", config_path)
        return OutpostConfig(**raw)

    return OutpostConfig()
