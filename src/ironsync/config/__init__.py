"""
Configuration management: YAML loading, environment overlays and placeholder resolution.
"""

from ironsync.config.loader import Config, load_config
from ironsync.config.resolver import resolve_config

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
]
