"""
Configuration management utilities for the Sliceflow package.

Configuration Hierarchy:
1. Default configuration (sliceflow/core/default_config.json) - shipped with the package
2. User configuration (~/.sliceflow/config.json, or the file named by the
   SLICEFLOW_CONFIG environment variable) - deep-merged over the defaults
3. Runtime overrides - applied with set_config_value(..., save=False)

Secrets (service keys) never belong in either file; see sliceflow.core.credentials.
"""

import os
import json
from typing import Dict, Any

# Default configuration paths
DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "default_config.json")
USER_CONFIG_PATH = os.path.expanduser("~/.sliceflow/config.json")

# Configuration singleton
_config_cache = {}


def get_user_config_path() -> str:
    """
    Get the path of the user configuration file.

    Returns:
        str: SLICEFLOW_CONFIG if set, otherwise USER_CONFIG_PATH
    """
    return os.environ.get("SLICEFLOW_CONFIG", USER_CONFIG_PATH)


def get_config(reload: bool = False) -> Dict[str, Any]:
    """
    Get the configuration dictionary, loading it if necessary.

    Args:
        reload (bool): Force reload the configuration even if cached

    Returns:
        Dict[str, Any]: The configuration dictionary
    """
    global _config_cache

    if not _config_cache or reload:
        _config_cache = load_config()

    return _config_cache


def load_config() -> Dict[str, Any]:
    """
    Load configuration from the default and user-specific files.

    The user file is deep merged over the defaults so it only needs to
    contain the keys it overrides.

    Returns:
        Dict[str, Any]: The merged configuration dictionary
    """
    config = {}

    if os.path.exists(DEFAULT_CONFIG_PATH):
        with open(DEFAULT_CONFIG_PATH, 'r') as f:
            config.update(json.load(f))

    user_config_path = get_user_config_path()
    if os.path.exists(user_config_path):
        with open(user_config_path, 'r') as f:
            deep_merge(config, json.load(f))

    return config


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """
    Recursively merge override dictionary into base dictionary.

    Nested dictionaries are merged key by key; any other value in override
    replaces the value in base.

    Args:
        base (Dict[str, Any]): Base dictionary to be updated
        override (Dict[str, Any]): Dictionary with values to override
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value


def save_user_config(config: Dict[str, Any]) -> None:
    """
    Save configuration to the user config file and refresh the cache.

    Args:
        config (Dict[str, Any]): Configuration dictionary to save
    """
    user_config_path = get_user_config_path()
    os.makedirs(os.path.dirname(user_config_path), exist_ok=True)

    with open(user_config_path, 'w') as f:
        json.dump(config, f, indent=2)

    global _config_cache
    _config_cache = load_config()


def get_config_value(key: str, default: Any = None) -> Any:
    """
    Get a specific configuration value by key.

    Dot notation reaches nested sections, e.g. 'pipeline.copy_poll_timeout'
    reads config['pipeline']['copy_poll_timeout'].

    Examples:
        >>> get_config_value('pipeline.poll_interval', 2.0)
        2.0

    Args:
        key (str): The configuration key (can use dot notation for nested keys)
        default (Any): Default value if key is not found

    Returns:
        Any: The configuration value or default
    """
    config = get_config()

    if '.' in key:
        current = config
        for part in key.split('.'):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    return config.get(key, default)


def set_config_value(key: str, value: Any, save: bool = True) -> None:
    """
    Set a specific configuration value by key.

    Intermediate sections are created as needed. With save=False the change
    only lives for the current process.

    Args:
        key (str): The configuration key (can use dot notation for nested keys)
        value (Any): The value to set
        save (bool): Whether to save the updated configuration to disk
    """
    config = get_config()

    if '.' in key:
        parts = key.split('.')
        current = config
        for part in parts[:-1]:
            if part not in current or not isinstance(current[part], dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value
    else:
        config[key] = value

    global _config_cache
    _config_cache = config

    if save:
        save_user_config(config)
