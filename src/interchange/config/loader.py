"""
Configuration file loading.

Loads ``config.yaml`` (or an explicit file) and an optional ``config.{env}.yaml``
overlay, then substitutes placeholders:

- ``${VAR}`` and ``${VAR:-default}`` from the process environment. A value
  that is only a placeholder for an unset variable becomes null, so an unset
  ``${PARTNER_FTP_USER}`` means anonymous login rather than a literal user.
- ``{env}`` by the active environment name.
"""

import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from interchange.exceptions import ConfigurationError

DEFAULT_CONFIG_NAME = "config.yaml"

_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


class Config:
    """Interchange configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any], path: Path | None = None):
        self.data = data
        self.path = path

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value: Any = self.data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def section(self, key: str) -> dict[str, Any]:
        """Return a nested mapping, or an empty dict when absent."""
        value = self.get(key, {})
        if not isinstance(value, dict):
            raise ConfigurationError(f"Configuration '{key}' must be a mapping, got {type(value).__name__}")
        return value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested.key']."""
        if "." in key:
            return self.get(key)
        if key in self.data:
            value = self.data[key]
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        """Check if key (or dotted path) exists in config."""
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return False
            value = value[k]
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def keys(self):
        return self.data.keys()

    def items(self):
        return self.data.items()


def load_config(
    project_path: Path | None = None,
    env: str | None = None,
    config_file: Path | None = None,
) -> Config:
    """
    Load Interchange configuration.

    Args:
        project_path: Directory holding ``config.yaml`` (default: current directory)
        env: Environment name; ``config.{env}.yaml`` overrides the base file
        config_file: Explicit config file, takes precedence over ``project_path``

    Returns:
        Config instance with merged configuration

    Raises:
        ConfigurationError: If the file is missing, unreadable or not valid YAML
    """
    if config_file is not None:
        base_config_path = Path(config_file)
    else:
        base_config_path = (project_path or Path.cwd()) / DEFAULT_CONFIG_NAME

    config_data = _read_yaml(base_config_path, required=True)

    if env:
        env_config_path = base_config_path.with_name(f"{base_config_path.stem}.{env}{base_config_path.suffix}")
        env_data = _read_yaml(env_config_path, required=False)
        _merge_dict(config_data, env_data)

    config_data = substitute_placeholders(config_data, env or "dev")
    return Config(config_data, path=base_config_path)


def _read_yaml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if not required:
            return {}
        raise ConfigurationError(
            f"Configuration file not found: {path}\n" f"  Suggestion: Create a config.yaml file in your project root",
            details={"path": str(path)},
        )
    if not path.is_file():
        raise ConfigurationError(f"Configuration path is not a file: {path}", details={"path": str(path)})

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        location = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{location}:\n  {e}\n  File: {path}", details={"path": str(path)}
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}", details={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}", details={"path": str(path)}
        )
    return data


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value


def substitute_placeholders(value: Any, env: str = "dev") -> Any:
    """
    Recursively substitute ``${VAR}``, ``${VAR:-default}`` and ``{env}``.

    An unset variable without a default is left literal inside a longer
    string, and turns the whole value into ``None`` when it is the entire
    value.

    Args:
        value: Parsed configuration (mapping, list or scalar)
        env: Current environment name

    Returns:
        The configuration with placeholders resolved
    """
    if isinstance(value, dict):
        return {k: substitute_placeholders(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_placeholders(item, env) for item in value]
    if not isinstance(value, str):
        return value

    whole = _VAR_PATTERN.fullmatch(value.strip())
    if whole is not None:
        name, default = whole.groups()
        resolved = os.getenv(name, default)
        return None if resolved is None else resolved.replace("{env}", env)

    def replace(match: re.Match) -> str:
        name, default = match.groups()
        return os.getenv(name, default if default is not None else match.group(0))

    return _VAR_PATTERN.sub(replace, value).replace("{env}", env)
