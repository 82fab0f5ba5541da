# scalable_exporter/config.py

"""
Handles loading and validation of application configuration.
Prioritizes environment variables for sensitive data (session cookies).
Can also load non-sensitive settings from a config file (e.g., config.json).
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .logging_utils import log_event, log_warning, log_error

DEFAULT_API_URL = "https://de.scalable.capital/broker/api/data"
DEFAULT_PORTAL_URL = "https://de.scalable.capital/broker/transactions"
DEFAULT_PAGE_SIZE = 50

DEFAULTS: Dict[str, Any] = {
    "api_url": DEFAULT_API_URL,
    "portal_url": DEFAULT_PORTAL_URL,
    "page_size": DEFAULT_PAGE_SIZE,
    "output_dir": ".",
    "log_dir": "logs",
    "request_timeout": None,
    "cookies": None,
    "cookies_file": None,
    "person_id": None,
    "portfolio_id": None,
    "page_url": None,
    "page_state_file": None,
}

# Environment variable -> config key
ENV_OVERRIDES = {
    "SCALABLE_API_URL": "api_url",
    "SCALABLE_COOKIES": "cookies",
    "SCALABLE_COOKIES_FILE": "cookies_file",
    "SCALABLE_PERSON_ID": "person_id",
    "SCALABLE_PORTFOLIO_ID": "portfolio_id",
    "SCALABLE_PAGE_URL": "page_url",
    "SCALABLE_PAGE_STATE_FILE": "page_state_file",
    "SCALABLE_OUTPUT_DIR": "output_dir",
    "SCALABLE_REQUEST_TIMEOUT": "request_timeout",
}

# --- Configuration Loading ---

def load_configuration(
    config_file: Optional[Union[str, Path]] = "config.json",
    overrides: Optional[Dict[str, Any]] = None,
    env_file: Optional[Union[str, Path]] = ".env",
) -> Dict[str, Any]:
    """
    Loads configuration from defaults, an optional JSON file, environment
    variables and explicit overrides (CLI flags), in increasing priority.
    """
    config = dict(DEFAULTS)

    # 1. Load from .env file (for environment variables)
    if env_file and Path(env_file).exists():
        load_dotenv(dotenv_path=env_file)
        log_event("Config", f"Loaded environment variables from {env_file}")

    # 2. Load base configuration from JSON file (optional, for non-sensitive defaults)
    if config_file:
        config_file_path = Path(config_file)
        if config_file_path.exists():
            try:
                with open(config_file_path, "r", encoding="utf-8") as f:
                    file_config = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                log_error("Config", "ConfigFileError", f"Failed to load or parse {config_file_path}", exception=e)
                raise ConfigurationError(f"Could not read configuration file {config_file_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Configuration file {config_file_path} must contain a JSON object")
            unknown = sorted(set(file_config) - set(DEFAULTS))
            if unknown:
                log_warning("Config", "UnknownKeys", f"Ignoring unknown keys in {config_file_path}: {', '.join(unknown)}")
            config.update({k: v for k, v in file_config.items() if k in DEFAULTS})
            log_event("Config", f"Loaded base configuration from {config_file_path}")

    # 3. Override/Add settings from Environment Variables (prioritized)
    for env_name, key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            config[key] = value
            log_event("Config", f"Loaded {env_name} from environment.")

    # 4. Explicit overrides, e.g. from the command line
    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})

    config = _coerce_types(config)

    # 5. Validate configuration
    is_valid, errors = validate_config(config)
    if not is_valid:
        log_error("Config", "ValidationError", f"Configuration validation failed: {'; '.join(errors)}")
        raise ConfigurationError(f"Configuration errors: {'; '.join(errors)}")

    log_event("Config", "Configuration loaded and validated successfully.")
    return config


def _coerce_types(config: Dict[str, Any]) -> Dict[str, Any]:
    """Convert numeric settings that may arrive as strings from the environment."""
    for key, converter in (("page_size", int), ("request_timeout", float)):
        value = config.get(key)
        if value is None or value == "":
            config[key] = None if key == "request_timeout" else DEFAULT_PAGE_SIZE
            continue
        try:
            config[key] = converter(value)
        except (TypeError, ValueError):
            # Left as-is so validate_config reports it
            pass
    return config

# --- Configuration Validation ---

def validate_config(config: Dict[str, Any]) -> tuple[bool, List[str]]:
    """Validates the loaded configuration dictionary."""
    errors = []

    page_size = config.get("page_size")
    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
        errors.append(f"page_size must be a positive integer, got {page_size!r}")

    timeout = config.get("request_timeout")
    if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
        errors.append(f"request_timeout must be a positive number of seconds, got {timeout!r}")

    if not config.get("api_url"):
        errors.append("Missing api_url")

    cookies_file = config.get("cookies_file")
    if cookies_file and not Path(cookies_file).exists():
        errors.append(f"Cookies file not found: {cookies_file}")

    page_state_file = config.get("page_state_file")
    if page_state_file and not Path(page_state_file).exists():
        errors.append(f"Page state file not found: {page_state_file}")

    # Not an error: the API will answer with an error status which is handled per request
    if not config.get("cookies") and not cookies_file:
        log_warning("Config", "NoSession", "No session cookies configured (SCALABLE_COOKIES or SCALABLE_COOKIES_FILE). Requests will likely be rejected.")

    return not errors, errors
