"""Configuration loading with YAML, environment override, and Docker secrets support."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml
from pydantic import ValidationError

from unifi_controller.config.settings import ControllerSettings

logger = structlog.get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    exit_code: int = 1

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        self.errors = errors or []
        super().__init__(message)


def resolve_file_secrets() -> Dict[str, str]:
    """Resolve Docker secrets pattern (_FILE suffix) from environment.

    Example:
        UNIFI_PASSWORD_FILE=/run/secrets/unifi_password
        -> Returns {"PASSWORD": "<file contents>"}
    """
    secrets: Dict[str, str] = {}
    prefix = "UNIFI_"
    suffix = "_FILE"

    for key, filepath in os.environ.items():
        if not (key.startswith(prefix) and key.endswith(suffix)):
            continue
        base_name = key[len(prefix) : -len(suffix)]
        path = Path(filepath)
        if not path.exists():
            # Validation reports the missing value itself
            logger.warning("secret_file_not_found", env_var=key, path=filepath)
            continue
        try:
            secrets[base_name] = path.read_text().strip()
        except PermissionError:
            raise ConfigurationError(
                f"Cannot read secret file '{filepath}' specified by {key}: permission denied"
            )
        except OSError as e:
            raise ConfigurationError(
                f"Error reading secret file '{filepath}' specified by {key}: {e}"
            )

    return secrets


def load_yaml_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file if specified.

    Args:
        config_path: Path to YAML config file. If None, checks CONFIG_PATH env var.

    Returns:
        Dict of configuration values from YAML, or empty dict if no file.
    """
    path = config_path or os.environ.get("CONFIG_PATH")

    if not path:
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {path}\n"
            "Ensure CONFIG_PATH points to a valid YAML file, or remove it to use environment variables only."
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file {path}: {e}")
    except PermissionError:
        raise ConfigurationError(f"Cannot read configuration file {path}: permission denied")


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """Format Pydantic validation errors into user-friendly messages."""
    messages: List[str] = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        input_val = error.get("input")

        if error.get("type") == "missing":
            hint = f"Set UNIFI_{loc.upper()} environment variable or add '{loc}:' to config file."
            messages.append(f"Configuration error: '{loc}' is required. {hint}")
        elif input_val is not None and not isinstance(input_val, dict):
            messages.append(f"Configuration error: '{loc}' {msg}, got: {input_val}")
        else:
            messages.append(f"Configuration error: '{loc}' {msg}")

    return messages


def load_config(config_path: Optional[str] = None) -> ControllerSettings:
    """Load and validate configuration.

    Configuration is loaded with the following precedence:
    1. Environment variables (highest priority)
    2. Docker secrets (_FILE pattern)
    3. YAML configuration file
    4. Default values (lowest priority)

    Args:
        config_path: Optional path to YAML config file (sets CONFIG_PATH env).

    Returns:
        Validated ControllerSettings instance.

    Raises:
        ConfigurationError: If the file cannot be read or validation fails.
    """
    if config_path:
        os.environ["CONFIG_PATH"] = config_path

    # Fail early with a readable message; the settings source itself is silent
    load_yaml_config()

    for key, value in resolve_file_secrets().items():
        env_key = f"UNIFI_{key}"
        if env_key not in os.environ:
            os.environ[env_key] = value

    try:
        settings = ControllerSettings()
    except ValidationError as e:
        messages = format_validation_errors(e.errors())
        raise ConfigurationError("\n".join(messages), errors=messages)

    return settings
