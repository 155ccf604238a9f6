"""Environment variable utilities.

Expands ${VAR_NAME} references found in credential files and option values,
and loads .env files for the command-line entry point.

Uses python-dotenv for .env file loading.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

__all__ = ["expand_env_vars", "expand_json_values", "load_env_file"]

# ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load environment variables from a .env file.

    Args:
        path: Path to .env file. If None, searches for .env in the current
              directory and its parents.
        override: If True, override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Expand environment variable references in a string.

    Unset variables are left as written unless ``strict`` is set, in which
    case a KeyError is raised.

    Example:
        >>> os.environ["KEY_DIR"] = "/etc/keys"
        >>> expand_env_vars("${KEY_DIR}/gcs.json")
        '/etc/keys/gcs.json'
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1) or match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is None:
            if strict:
                raise KeyError(f"Environment variable not set: {var_name}")
            return str(match.group(0))
        return env_value

    return ENV_VAR_PATTERN.sub(replacer, value)


def expand_json_values(value: Any, *, strict: bool = False) -> Any:
    """Recursively expand env var references in the string leaves of a JSON value.

    Object keys are left untouched; credential names are path prefixes and
    must match literally.
    """
    if isinstance(value, str):
        return expand_env_vars(value, strict=strict)
    if isinstance(value, dict):
        return {k: expand_json_values(v, strict=strict) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_json_values(item, strict=strict) for item in value]
    return value
