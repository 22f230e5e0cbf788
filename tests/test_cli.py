"""Tests for the unifi-controller command line entry point."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from unifi_controller.__main__ import event_to_json, main, parse_args, run
from unifi_controller.api.exceptions import AuthenticationError, CertificateError
from unifi_controller.models import classify_event


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])

        assert args.test is False
        assert args.config is None
        assert args.site is None

    def test_options(self) -> None:
        args = parse_args(["--test", "--config", "/etc/unifi.yaml", "--site", "lab"])

        assert args.test is True
        assert args.config == "/etc/unifi.yaml"
        assert args.site == "lab"


class TestEventToJson:
    def test_serializes_variant_name_and_payload(self) -> None:
        event = classify_event("EVT_WU_Connected", {"key": "EVT_WU_Connected", "user": "aa"})

        line = json.loads(event_to_json(event))

        assert line == {
            "type": "ClientEvent",
            "name": "EVT_WU_Connected",
            "payload": {"key": "EVT_WU_Connected", "user": "aa"},
        }


class TestRun:
    def _client(self, error: Exception) -> MagicMock:
        client = MagicMock()
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=None)
        client.authenticate = AsyncMock(side_effect=error)
        return client

    @pytest.mark.parametrize(
        "error,exit_code",
        [(AuthenticationError(), 3), (CertificateError(), 4)],
    )
    def test_errors_map_to_exit_codes(self, settings, error, exit_code) -> None:
        with patch("unifi_controller.api.ControllerClient", return_value=self._client(error)):
            assert asyncio.run(run(settings, test=True)) == exit_code


class TestMain:
    def test_configuration_error_exits_1(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.yaml"))

        assert main([]) == 1
        assert "not found" in capsys.readouterr().err
