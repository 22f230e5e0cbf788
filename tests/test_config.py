"""Tests for ControllerSettings and configuration loading."""

import pytest
from pydantic import ValidationError

from unifi_controller.config import ConfigurationError, ControllerSettings, load_config
from unifi_controller.config.loader import format_validation_errors, resolve_file_secrets


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment variables out of these tests."""
    import os

    for key in list(os.environ):
        if key.startswith("UNIFI_") or key == "CONFIG_PATH":
            monkeypatch.delenv(key)
    monkeypatch.chdir(os.path.dirname(__file__))


class TestControllerSettings:
    def test_defaults(self) -> None:
        settings = ControllerSettings(base_url="https://192.168.1.1:8443", username="admin")

        assert settings.site == "default"
        assert settings.verify_ssl is True
        assert settings.api_prefix == ""
        assert settings.password == ""
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"

    def test_trailing_slash_removed(self) -> None:
        settings = ControllerSettings(base_url="https://unifi.local/", username="admin")

        assert settings.base_url == "https://unifi.local"

    def test_base_url_requires_http_scheme(self) -> None:
        with pytest.raises(ValidationError):
            ControllerSettings(base_url="unifi.local:8443", username="admin")

    def test_empty_username_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ControllerSettings(base_url="https://unifi.local", username="  ")

    @pytest.mark.parametrize(
        "raw,expected",
        [("proxy/network", "/proxy/network"), ("/proxy/network/", "/proxy/network"), ("", "")],
    )
    def test_api_prefix_normalized(self, raw, expected) -> None:
        settings = ControllerSettings(
            base_url="https://unifi.local", username="admin", api_prefix=raw
        )

        assert settings.api_prefix == expected

    def test_blank_site_falls_back_to_default(self) -> None:
        settings = ControllerSettings(base_url="https://unifi.local", username="admin", site=" ")

        assert settings.site == "default"

    def test_log_level_normalized(self) -> None:
        settings = ControllerSettings(
            base_url="https://unifi.local", username="admin", log_level="warn"
        )

        assert settings.log_level == "WARNING"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            ControllerSettings(base_url="https://unifi.local", username="admin", log_level="LOUD")

    def test_environment_variables(self, monkeypatch) -> None:
        monkeypatch.setenv("UNIFI_BASE_URL", "https://10.0.0.1:8443")
        monkeypatch.setenv("UNIFI_USERNAME", "ops")
        monkeypatch.setenv("UNIFI_SITE", "branch")
        monkeypatch.setenv("UNIFI_VERIFY_SSL", "false")

        settings = ControllerSettings()

        assert settings.base_url == "https://10.0.0.1:8443"
        assert settings.username == "ops"
        assert settings.site == "branch"
        assert settings.verify_ssl is False


class TestLoadConfig:
    def test_yaml_file(self, tmp_path, monkeypatch) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "base_url: https://unifi.example.com\nusername: admin\npassword: hunter2\nsite: lab\n"
        )
        monkeypatch.setenv("CONFIG_PATH", str(config_file))

        settings = load_config()

        assert settings.base_url == "https://unifi.example.com"
        assert settings.password == "hunter2"
        assert settings.site == "lab"

    def test_environment_overrides_yaml(self, tmp_path, monkeypatch) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("base_url: https://unifi.example.com\nusername: admin\n")
        monkeypatch.setenv("CONFIG_PATH", str(config_file))
        monkeypatch.setenv("UNIFI_USERNAME", "from-env")

        settings = load_config()

        assert settings.username == "from-env"

    def test_missing_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.yaml"))

        with pytest.raises(ConfigurationError, match="not found"):
            load_config()

    def test_invalid_yaml(self, tmp_path, monkeypatch) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("base_url: [unclosed\n")
        monkeypatch.setenv("CONFIG_PATH", str(config_file))

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config()

    def test_missing_required_values(self, tmp_path, monkeypatch) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("site: lab\n")
        monkeypatch.setenv("CONFIG_PATH", str(config_file))

        with pytest.raises(ConfigurationError) as exc_info:
            load_config()

        assert any("'base_url' is required" in line for line in exc_info.value.errors)
        assert any("'username' is required" in line for line in exc_info.value.errors)


class TestFileSecrets:
    def test_resolves_file_suffix(self, tmp_path, monkeypatch) -> None:
        secret = tmp_path / "password"
        secret.write_text("s3cret\n")
        monkeypatch.setenv("UNIFI_PASSWORD_FILE", str(secret))

        assert resolve_file_secrets() == {"PASSWORD": "s3cret"}

    def test_missing_secret_file_skipped(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("UNIFI_PASSWORD_FILE", str(tmp_path / "nope"))

        assert resolve_file_secrets() == {}


class TestFormatValidationErrors:
    def test_missing_field_hint(self) -> None:
        messages = format_validation_errors(
            [{"type": "missing", "loc": ("base_url",), "msg": "Field required"}]
        )

        assert messages == [
            "Configuration error: 'base_url' is required. "
            "Set UNIFI_BASE_URL environment variable or add 'base_url:' to config file."
        ]

    def test_invalid_value(self) -> None:
        messages = format_validation_errors(
            [{"type": "value_error", "loc": ("timeout",), "msg": "must be > 0", "input": -1}]
        )

        assert messages == ["Configuration error: 'timeout' must be > 0, got: -1"]
