"""
Configuration file loading.

Loads ``config.yaml`` from the project directory, overlays
``config.{env}.yaml`` when present, then resolves placeholders.
"""

import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from ironsync.config.resolver import resolve_config
from ironsync.exceptions import ConfigurationError

CONFIG_FILENAME = "config.yaml"
OCTAL_LITERAL = re.compile(r"0[0-7_]+")


class UniqueKeyLoader(yaml.SafeLoader):
    """
    SafeLoader that rejects duplicate mapping keys (e.g. two connections with one
    name) and keeps leading-zero integers such as ``0644`` as text.
    """

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key '{key}'",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)

    def construct_yaml_int(self, node: yaml.ScalarNode) -> int | str:
        # YAML 1.1 reads 0644 as base-8 420; keep file modes as written
        text = self.construct_scalar(node)
        if OCTAL_LITERAL.fullmatch(text):
            return text
        return super().construct_yaml_int(node)


UniqueKeyLoader.add_constructor("tag:yaml.org,2002:int", UniqueKeyLoader.construct_yaml_int)


class Config:
    """ironsync configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        # Convenience properties for common config sections
        self.connections = data.get("connections") or {}
        self.resources = data.get("resources") or {}
        self.scheduler = data.get("scheduler") or {}
        self.defaults = data.get("defaults") or {}

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
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        if isinstance(key, str) and "." in key:
            keys = key.split(".")
            value = self.data
            for k in keys:
                if not isinstance(value, dict) or k not in value:
                    return False
                value = value[k]
            return True
        return key in self.data

    def __iter__(self) -> Iterator[str]:
        """Iterate over top-level keys."""
        return iter(self.data)

    def keys(self):
        return self.data.keys()

    def items(self):
        return self.data.items()

    def validate(self) -> None:
        """Validate configuration structure (section types only)."""
        errors = []

        if not isinstance(self.data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(self.data).__name__}")

        for section in ("connections", "resources", "scheduler", "defaults", "logging"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a mapping, got {type(value).__name__}")

        if errors:
            raise ConfigurationError("\n".join(errors))


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.load(f, Loader=UniqueKeyLoader) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            raise ConfigurationError(
                f"Error parsing {path.name} at line {mark.line + 1}, column {mark.column + 1}:\n"
                f"  {e}\n"
                f"  File: {path}"
            ) from None
        raise ConfigurationError(f"Error parsing {path.name}: {e}\n  File: {path}") from None
    except PermissionError as e:
        raise ConfigurationError(f"Permission denied reading {path}: {e}") from None

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(project_path: Path | None = None, env: str | None = None) -> Config:
    """
    Load ironsync configuration.

    Args:
        project_path: Directory holding config.yaml (default: current directory)
        env: Environment name; selects the optional config.{env}.yaml overlay

    Returns:
        Config instance with merged configuration

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    if project_path is None:
        project_path = Path.cwd()

    base_config_path = project_path / CONFIG_FILENAME
    if not base_config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a {CONFIG_FILENAME} file in your project directory"
        )

    config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = project_path / f"config.{env}.yaml"
        if env_config_path.exists():
            _merge_dict(config_data, _read_yaml(env_config_path))

    config_data = resolve_config(config_data, env or "dev")

    return Config(config_data)


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
