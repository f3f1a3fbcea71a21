"""
Configuration loading for setup-kustomize.

Settings come from an optional YAML file, then from the runner environment,
on top of built-in defaults. Keys are upper-case as in the file.
"""

import os
from typing import Any, Dict, Optional

import platformdirs
import yaml

from setup_kustomize.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_CONNECT_RETRIES,
    KUSTOMIZE_RELEASES_URL,
    RUNNER_TEMP_ENV_VAR,
    RUNNER_TOOL_CACHE_ENV_VAR,
    TEMP_DIR_NAME,
    TOOL_CACHE_DIR_NAME,
)
from setup_kustomize.exceptions import ConfigurationError
from setup_kustomize.log_utils import logger

CONFIG_DIR = platformdirs.user_config_dir(APP_NAME)
CONFIG_FILE = os.path.join(CONFIG_DIR, CONFIG_FILE_NAME)

DEFAULT_CONFIG: Dict[str, Any] = {
    "GITHUB_TOKEN": None,
    "ALLOW_ENV_TOKEN": True,
    "RELEASES_URL": KUSTOMIZE_RELEASES_URL,
    "TOOL_CACHE_DIR": None,
    "TEMP_DIR": None,
    "DOWNLOAD_RETRIES": DEFAULT_CONNECT_RETRIES,
    "LOG_LEVEL": None,
    "LOG_DIR": None,
}


def config_exists(config_path: Optional[str] = None) -> bool:
    """Return True when a configuration file exists at the given or default path."""
    return os.path.exists(config_path or CONFIG_FILE)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the configuration, merged over the defaults.

    A missing default config file is not an error: the defaults are used. An
    explicitly requested file must exist.

    Parameters:
        config_path (str | None): Explicit YAML file to load; CONFIG_FILE when None.

    Returns:
        dict: The effective configuration, after environment overrides.

    Raises:
        ConfigurationError: If the file is missing (explicit path only), cannot be
            read, is not valid YAML, or does not contain a mapping.
    """
    config = dict(DEFAULT_CONFIG)
    path = config_path or CONFIG_FILE

    if config_exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not load configuration from {path}", details=str(e)
            ) from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration in {path} must be a mapping",
                details=f"got {type(loaded).__name__}",
            )
        unknown = sorted(set(loaded) - set(DEFAULT_CONFIG))
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        config.update({k: v for k, v in loaded.items() if k in DEFAULT_CONFIG})
        logger.debug(f"Loaded configuration from {path}")
    elif config_path:
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    return apply_environment_overrides(config)


def apply_environment_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply runner-provided locations on top of file settings.

    RUNNER_TOOL_CACHE and RUNNER_TEMP take precedence so installs land where the
    runner expects them; the GitHub token fallback is resolved at request time.
    """
    tool_cache = os.environ.get(RUNNER_TOOL_CACHE_ENV_VAR)
    if tool_cache:
        config["TOOL_CACHE_DIR"] = tool_cache
    runner_temp = os.environ.get(RUNNER_TEMP_ENV_VAR)
    if runner_temp:
        config["TEMP_DIR"] = runner_temp
    return config


def get_tool_cache_dir(config: Dict[str, Any]) -> str:
    """Return the tool cache root, falling back to the user cache directory."""
    return config.get("TOOL_CACHE_DIR") or os.path.join(
        platformdirs.user_cache_dir(APP_NAME), TOOL_CACHE_DIR_NAME
    )


def get_temp_dir(config: Dict[str, Any]) -> str:
    """Return the directory that holds in-flight downloads."""
    return config.get("TEMP_DIR") or os.path.join(
        platformdirs.user_cache_dir(APP_NAME), TEMP_DIR_NAME
    )
