"""
Placeholder substitution for loaded configuration.

``${VAR}`` is replaced from the environment (left as-is when unset) and
``{env}`` by the active environment name. Mapping keys are resolved as well,
because resource keys are destination paths (``${HOME}/.vimrc``).
"""

import os
import re
from typing import Any

from ironsync.exceptions import ConfigurationError

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """
    Resolve placeholders in every key and string value.

    Raises:
        ConfigurationError: If two keys of one mapping resolve to the same text
    """
    return _resolve_value(config_data, env)


def _substitute(text: str, env: str) -> str:
    text = ENV_VAR_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), text)
    return text.replace("{env}", env)


def _resolve_value(value: Any, env: str) -> Any:
    if isinstance(value, dict):
        resolved: dict[Any, Any] = {}
        for key, item in value.items():
            new_key = _substitute(key, env) if isinstance(key, str) else key
            if new_key in resolved:
                raise ConfigurationError(f"Key '{key}' resolves to '{new_key}', which is already defined")
            resolved[new_key] = _resolve_value(item, env)
        return resolved
    if isinstance(value, list):
        return [_resolve_value(item, env) for item in value]
    if isinstance(value, str):
        return _substitute(value, env)
    return value
