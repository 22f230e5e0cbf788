"""Configuration management for the UniFi controller client."""

from unifi_controller.config.loader import ConfigurationError, load_config
from unifi_controller.config.settings import ControllerSettings

__all__ = [
    "ConfigurationError",
    "ControllerSettings",
    "load_config",
]
