"""Pydantic settings model for the UniFi controller client."""

from __future__ import annotations

import os
from typing import Any, Dict, Literal, Tuple, Type

import yaml
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source that reads values from the YAML file named by CONFIG_PATH."""

    def get_field_value(
        self, field: Any, field_name: str
    ) -> Tuple[Any, str, bool]:
        """Get field value from YAML config."""
        yaml_config = self._load_yaml_config()
        return yaml_config.get(field_name), field_name, False

    def _load_yaml_config(self) -> Dict[str, Any]:
        config_path = os.environ.get("CONFIG_PATH")
        if not config_path:
            return {}

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (FileNotFoundError, yaml.YAMLError, PermissionError):
            # Reported with a proper message by loader.py
            return {}

    def __call__(self) -> Dict[str, Any]:
        return self._load_yaml_config()


class ControllerSettings(BaseSettings):
    """Connection settings for a UniFi Network controller.

    Configuration is loaded in the following precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (UNIFI_ prefix)
    3. .env file
    4. YAML configuration file (via CONFIG_PATH)
    5. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="UNIFI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(
        ...,
        description="Controller base URL, e.g. https://192.168.1.1:8443",
    )
    username: str = Field(
        ...,
        description="Controller admin username (local account)",
    )
    password: str = Field(
        default="",
        description="Controller admin password",
    )
    site: str = Field(
        default="default",
        description="Site (collection) id used for site-scoped calls and the push channel",
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates (set to false for self-signed certs)",
    )
    api_prefix: str = Field(
        default="",
        description="Path prefix in front of /api and /wss, '/proxy/network' on UniFi OS consoles",
    )
    timeout: float = Field(
        default=10.0,
        description="HTTP timeout in seconds",
        gt=0,
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json (production) or text (development)",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Order sources: init, environment, .env, YAML (file secrets via loader)."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate username is not empty."""
        if not v or not v.strip():
            raise ValueError("Username cannot be empty")
        return v.strip()

    @field_validator("site")
    @classmethod
    def validate_site(cls, v: str) -> str:
        v = v.strip()
        return v or "default"

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        v = v.strip().strip("/")
        return f"/{v}" if v else ""

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: DEBUG, INFO, WARNING, ERROR"
            )
        return normalized
