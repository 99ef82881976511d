"""
Configuration management.

Configuration file parsing, environment variable resolution and defaults.
"""

from shipflow.config.loader import DEFAULTS, Config, load_config
from shipflow.config.resolver import apply_env_overrides, resolve_config

__all__ = [
    "DEFAULTS",
    "load_config",
    "Config",
    "resolve_config",
    "apply_env_overrides",
]
