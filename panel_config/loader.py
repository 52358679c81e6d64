"""
Reading and checking YAML config files.

Each process keeps its own settings dataclass; this module only parses the
file and validates individual values.
"""
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigError(Exception):
    """Configuration validation error"""
    pass


def read_config_file(config_path: str, require: bool = False) -> Optional[Dict[str, Any]]:
    """
    Parse a YAML config file.

    Returns: the parsed mapping, or None if the file does not exist and
    `require` is False

    Raises:
        ConfigError: the file is missing (with require), unreadable or not a mapping
    """
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        if require:
            raise ConfigError(f"Config file not found: {config_path}")
        return None
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")
    return data


def section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Top-level mapping `name`; absent or empty sections read as {}"""
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return value


def positive_number(section: Mapping[str, Any], key: str, default, kind: Callable = int):
    value = section.get(key, default)
    try:
        number = kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {key}: {value!r}")
    if isinstance(value, bool) or number <= 0:
        raise ConfigError(f"Invalid {key}: {value!r}. Must be positive")
    return number


def log_level(section: Mapping[str, Any], default: str) -> str:
    level = str(section.get('level', default)).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"Invalid log level: {level}. Must be one of {list(LOG_LEVELS)}")
    return level
