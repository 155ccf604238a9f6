"""Configuration lookups shared by the storage backends.

All runtime configuration comes from explicit backend options or from
environment variables; the names of the variables each backend reads are
collected here.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from repofs.lib.env import expand_env_vars

__all__ = [
    "CREDENTIAL_PATH_ENV",
    "GCS_CREDENTIALS_ENV",
    "S3_ENV",
    "AZURE_ENV",
    "get_config_value",
    "get_optional_config_value",
]

# Location of the JSON credential file. When unset, each backend falls back
# to the provider environment variables below.
CREDENTIAL_PATH_ENV = "REPOFS_CLOUD_CREDENTIAL_PATH"

GCS_CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"

S3_ENV: Dict[str, str] = {
    "secret_key": "AWS_SECRET_ACCESS_KEY",
    "key_id": "AWS_ACCESS_KEY_ID",
    "region": "AWS_DEFAULT_REGION",
    "session_token": "AWS_SESSION_TOKEN",
    "profile": "AWS_PROFILE",
    "endpoint_url": "AWS_ENDPOINT_URL",
}

AZURE_ENV: Dict[str, str] = {
    "account_str": "AZURE_STORAGE_ACCOUNT",
    "account_key": "AZURE_STORAGE_KEY",
}


def get_config_value(
    options: Optional[Dict[str, Any]],
    key: str,
    env_var: str,
    default: str = "",
) -> str:
    """Get a configuration value from options dict or environment variable.

    Handles ${VAR} expansion for values passed in options, then falls back
    to the environment variable, then to the default.

    Example:
        >>> options = {"endpoint_url": "${MINIO_URL}"}
        >>> os.environ["MINIO_URL"] = "http://localhost:9000"
        >>> get_config_value(options, "endpoint_url", "AWS_ENDPOINT_URL")
        'http://localhost:9000'
    """
    value = options.get(key) if options else None
    if value and isinstance(value, str):
        value = expand_env_vars(value)
    if not value:
        value = os.environ.get(env_var, default)
    return value


def get_optional_config_value(
    options: Optional[Dict[str, Any]],
    key: str,
    env_var: str,
) -> Optional[str]:
    """Like ``get_config_value`` but returns None instead of an empty string."""
    return get_config_value(options, key, env_var) or None
