"""
Configuration file loading.

Loads ``shipflow.yaml`` (optional), merges it over the built-in defaults and
applies environment variable overrides.
"""

import copy
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from shipflow.config.resolver import apply_env_overrides, resolve_config
from shipflow.exceptions import ConfigurationError

CONFIG_FILE_NAME = "shipflow.yaml"

DEFAULTS: dict[str, Any] = {
    "storage": {
        "type": "s3",
        "region": "ap-south-1",
        "bucket": "ship-flow2",
    },
    "queue": {
        "type": "redis",
        "url": "redis://localhost:6379",
        "name": "build-queue",
        "status_key": "status",
    },
    "sync": {
        "max_concurrency": 5,
        "progress_interval_ms": 2000,
    },
    "pipeline": {
        "work_dir": "output",
        "output_dir": "dist",
        "build_commands": [["npm", "install"], ["npm", "run", "build"]],
        "error_delay_s": 5.0,
        "record_failures": False,
        "exclude_dirs": [".git"],
    },
    "service": {
        "host": "0.0.0.0",
        "port": 3002,
    },
    "content": {
        "host": "0.0.0.0",
        "port": 3000,
        "key_template": "dist/{id}{path}",
    },
    "logging": {
        "level": "INFO",
    },
}


class Config:
    """Shipflow configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        # Convenience properties for common config sections
        self.storage = data.get("storage", {})
        self.queue = data.get("queue", {})
        self.sync = data.get("sync", {})
        self.pipeline = data.get("pipeline", {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        keys = key.split(".")
        value = self.data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested.key']."""
        if isinstance(key, str) and "." in key:
            return self.get(key)
        if key in self.data:
            value = self.data[key]
            # Return nested dicts as Config objects for chaining
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        if isinstance(key, str) and "." in key:
            value = self.data
            for k in key.split("."):
                if not isinstance(value, dict) or k not in value:
                    return False
                value = value[k]
            return True
        return key in self.data

    def __iter__(self) -> Iterator[str]:
        """Iterate over top-level keys."""
        return iter(self.data)

    def validate(self) -> None:
        """Validate configuration structure and content."""
        errors = []

        if not isinstance(self.data, dict):
            raise ConfigurationError(f"Configuration must be a dictionary/mapping, got {type(self.data).__name__}")

        for section in ("storage", "queue", "sync", "pipeline", "service", "content"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a dictionary, got {type(value).__name__}")

        if self.get("storage.type") == "s3" and not self.get("storage.bucket"):
            errors.append("Configuration 'storage.bucket' is required for s3 storage")

        concurrency = self.get("sync.max_concurrency")
        if not isinstance(concurrency, int) or concurrency < 1:
            errors.append(f"Configuration 'sync.max_concurrency' must be a positive integer, got {concurrency!r}")

        commands = self.get("pipeline.build_commands")
        if not isinstance(commands, list) or not all(isinstance(c, list) and c for c in commands):
            errors.append("Configuration 'pipeline.build_commands' must be a list of non-empty argument lists")

        if errors:
            raise ConfigurationError("\n".join(errors))


def load_config(path: str | Path | None = None, env: str | None = None) -> Config:
    """
    Load Shipflow configuration.

    Args:
        path: Explicit config file. When omitted, ``shipflow.yaml`` in the current
            directory is used if it exists, otherwise only defaults apply.
        env: Environment name; ``shipflow.{env}.yaml`` next to the base file is
            merged on top when present.

    Returns:
        Validated Config instance
    """
    config_data = copy.deepcopy(DEFAULTS)

    if path is None:
        candidate = Path.cwd() / CONFIG_FILE_NAME
        config_path = candidate if candidate.exists() else None
    else:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

    if config_path is not None:
        _merge_dict(config_data, _read_yaml(config_path))
        if env:
            env_path = config_path.with_name(f"{config_path.stem}.{env}{config_path.suffix}")
            if env_path.exists():
                _merge_dict(config_data, _read_yaml(env_path))

    config_data = resolve_config(config_data, env or os.getenv("SHIPFLOW_ENV", "dev"))
    config_data = apply_env_overrides(config_data)

    config = Config(config_data)
    config.validate()
    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        raise ConfigurationError(f"Error parsing {path}{where}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
