"""Configuration models and loading."""

from outpost.config.loader import load_config
from outpost.config.schema import DispatchConfig, OutpostConfig

__all__ = ["DispatchConfig", "OutpostConfig", "load_config"]
