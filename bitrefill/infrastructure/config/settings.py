"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML
configuration file (~/.bitrefill/config.yaml by default).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from bitrefill.domain.models.common import (
    DEFAULT_BASE_URL, DEFAULT_BATCH_SIZE, DEFAULT_PAGE_SIZE, DEFAULT_POLL_ATTEMPTS,
    DEFAULT_POLL_DELAY_SECONDS, PaginationConfig, PollingConfig
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".bitrefill"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
DEFAULT_REQUEST_TIMEOUT = 30.0

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turns nested YAML mappings into dotted keys ('pagination.page_size')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False keeps real environment variables on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets everything loaded or set so far."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _coerce(value: str) -> Any:
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by key.

    Dotted keys are looked up in the environment with dots turned into
    underscores, e.g. 'pagination.page_size' -> BITREFILL_PAGINATION_PAGE_SIZE,
    then as-is upper-cased (PAGINATION_PAGE_SIZE).

    Priority:
    1. Environment variable
    2. Values set via set_config or loaded from YAML
    3. Default value
    """
    env_key = key.upper().replace(".", "_")
    for candidate in (f"BITREFILL_{env_key}", env_key):
        if candidate in os.environ:
            return _coerce(os.environ[candidate])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value in memory (does not touch the environment)."""
    logger.debug(f"Setting config: {key} = {value}")
    _config[key] = value


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def _credential(name: str) -> Optional[str]:
    """Env BITREFILL_<NAME> / <NAME> first, then yaml bitrefill.<name>, then top-level <name>.

    Values are returned as strings without coercion.
    """
    env_key = name.upper()
    for candidate in (f"BITREFILL_{env_key}", env_key):
        if candidate in os.environ:
            return os.environ[candidate]
    for key in (f"bitrefill.{name}", name):
        if _config.get(key) is not None:
            return str(_config[key])
    return None


def get_api_key() -> Optional[str]:
    return _credential("api_key")


def get_api_secret() -> Optional[str]:
    return _credential("api_secret")


def get_base_url() -> str:
    return str(get_config("base_url", DEFAULT_BASE_URL))


def get_request_timeout() -> float:
    return float(get_config("request.timeout", DEFAULT_REQUEST_TIMEOUT))


def get_pagination_config() -> PaginationConfig:
    return PaginationConfig(
        page_size=int(get_config("pagination.page_size", DEFAULT_PAGE_SIZE)),
        batch_size=int(get_config("pagination.batch_size", DEFAULT_BATCH_SIZE)),
    )


def get_polling_config() -> PollingConfig:
    return PollingConfig(
        max_attempts=int(get_config("polling.max_attempts", DEFAULT_POLL_ATTEMPTS)),
        delay_seconds=float(get_config("polling.delay_seconds", DEFAULT_POLL_DELAY_SECONDS)),
    )
