"""
Configuration resolution and environment variable substitution.
"""

import os
import re
from typing import Any

from shipflow.exceptions import ConfigurationError

# Well-known environment variables and the config path they override
ENV_OVERRIDES: dict[str, str] = {
    "AWS_REGION": "storage.region",
    "S3_BUCKET": "storage.bucket",
    "S3_ENDPOINT_URL": "storage.endpoint_url",
    "AWS_ACCESS_KEY_ID": "storage.access_key_id",
    "AWS_SECRET_ACCESS_KEY": "storage.secret_access_key",
    "AWS_SESSION_TOKEN": "storage.session_token",
    "REDIS_URL": "queue.url",
    "PORT": "service.port",
    "SHIPFLOW_WORK_DIR": "pipeline.work_dir",
    "SHIPFLOW_LOG_LEVEL": "logging.level",
}

_INT_KEYS = {"service.port"}


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """
    Resolve configuration with environment variable substitution.

    Substitutes ``${VAR_NAME}`` and ``{env}`` placeholders in string values.
    """
    return _resolve_value(config_data, env)


def _resolve_value(value: Any, env: str) -> Any:
    """Recursively resolve values in configuration."""
    if isinstance(value, dict):
        return {k: _resolve_value(v, env) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_value(item, env) for item in value]
    elif isinstance(value, str):
        result = re.sub(r"\${([^}]+)}", lambda m: os.getenv(m.group(1), m.group(0)), value)
        result = result.replace("{env}", env)
        return result
    else:
        return value


def apply_env_overrides(config_data: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Apply well-known environment variables on top of file configuration.

    Only variables that are set and non-empty take effect.
    """
    environ = dict(os.environ) if environ is None else environ
    for var, dotted in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if not raw:
            continue
        value: Any = raw
        if dotted in _INT_KEYS:
            try:
                value = int(raw)
            except ValueError:
                raise ConfigurationError(f"Environment variable {var} must be an integer, got {raw!r}") from None
        section, key = dotted.split(".", 1)
        config_data.setdefault(section, {})[key] = value
    return config_data
