"""Tests for relay.config and relay.api.cli."""

from unittest.mock import AsyncMock, patch

import pytest

from relay.api import cli
from relay.config import DEEPAI_PROVIDER, STABILITY_PROVIDER, RelaySettings, load_settings
from relay.heartbeat import HeartbeatConfig

ENV_VARS = [
    "MESSAGE_TOKEN",
    "TELEGRAM_API_TOKEN",
    "TELEGRAM_SECRET_KEY",
    "STABILITY_KEY",
    "DEEP_AI_KEY",
    "PREFER_DEEPAI",
    "PREFFER_DEEPAI",
    "DEEPAI_SPLIT_IMAGES",
    "DEEPAI_OUTPUT_DIR",
    "TILE_SIZE",
    "HEARTBEAT_INTERVAL_SECONDS",
    "HEARTBEAT_MAX_TICKS",
    "PORT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadSettings:
    def test_defaults(self, clean_env) -> None:
        settings = load_settings()

        assert settings.message_token == ""
        assert not settings.prefer_deepai
        assert not settings.deepai_split_images
        assert settings.heartbeat_interval_seconds == 4.5
        assert settings.heartbeat_max_ticks == 6
        assert settings.port == 3001
        assert settings.image_provider == STABILITY_PROVIDER

    def test_reads_environment(self, clean_env) -> None:
        clean_env.setenv("MESSAGE_TOKEN", "/img ")
        clean_env.setenv("TELEGRAM_API_TOKEN", " 123:abc ")
        clean_env.setenv("PREFER_DEEPAI", "1")
        clean_env.setenv("DEEPAI_SPLIT_IMAGES", "1")
        clean_env.setenv("HEARTBEAT_MAX_TICKS", "3")
        clean_env.setenv("PORT", "8080")
        clean_env.setenv("LOG_LEVEL", "debug")

        settings = load_settings()

        assert settings.message_token == "/img "
        assert settings.telegram_api_token == "123:abc"
        assert settings.prefer_deepai
        assert settings.deepai_split_images
        assert settings.heartbeat_max_ticks == 3
        assert settings.port == 8080
        assert settings.log_level == "DEBUG"
        assert settings.image_provider == DEEPAI_PROVIDER

    @pytest.mark.parametrize("value", ["true", "yes", "0", ""])
    def test_flags_need_literal_one(self, clean_env, value) -> None:
        clean_env.setenv("PREFER_DEEPAI", value)

        assert not load_settings().prefer_deepai

    def test_legacy_prefer_spelling(self, clean_env) -> None:
        clean_env.setenv("PREFFER_DEEPAI", "1")

        assert load_settings().prefer_deepai

    def test_invalid_number_raises(self, clean_env) -> None:
        clean_env.setenv("PORT", "eighty")

        with pytest.raises(ValueError):
            load_settings()

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("HEARTBEAT_MAX_TICKS", "0"),
            ("HEARTBEAT_MAX_TICKS", "-2"),
            ("HEARTBEAT_INTERVAL_SECONDS", "0"),
            ("HEARTBEAT_INTERVAL_SECONDS", "-4.5"),
            ("TILE_SIZE", "0"),
        ],
    )
    def test_non_positive_timing_and_tile_size_fail_at_load(self, clean_env, name, value) -> None:
        clean_env.setenv(name, value)

        with pytest.raises(ValueError):
            load_settings()

    def test_heartbeat_config_follows_settings(self, clean_env) -> None:
        clean_env.setenv("HEARTBEAT_INTERVAL_SECONDS", "2")
        clean_env.setenv("HEARTBEAT_MAX_TICKS", "3")

        config = load_settings().heartbeat

        assert config == HeartbeatConfig(interval_seconds=2.0, max_ticks=3)


class TestCli:
    def test_serve_runs_uvicorn(self) -> None:
        with (
            patch("relay.api.cli.get_settings", return_value=RelaySettings(port=4000)),
            patch("relay.api.cli.configure_logging"),
            patch("uvicorn.run") as run,
        ):
            cli.main(["serve"])

        run.assert_called_once_with("relay.api.http_api:app", host="0.0.0.0", port=4000)

    def test_set_webhook_success(self, capsys) -> None:
        with (
            patch("relay.api.cli.get_settings", return_value=RelaySettings(telegram_api_token="1:a")),
            patch("relay.api.cli.configure_logging"),
            patch("relay.api.cli._register_webhook", new=AsyncMock(return_value=True)),
        ):
            cli.main(["set-webhook", "https://relay.example.com/tg"])

        assert "Webhook registered." in capsys.readouterr().out

    def test_set_webhook_failure_exits(self) -> None:
        with (
            patch("relay.api.cli.get_settings", return_value=RelaySettings()),
            patch("relay.api.cli.configure_logging"),
            patch("relay.api.cli._register_webhook", new=AsyncMock(side_effect=RuntimeError("401"))),
        ):
            with pytest.raises(SystemExit) as excinfo:
                cli.main(["set-webhook", "https://relay.example.com/tg"])

        assert excinfo.value.code == 1

    def test_requires_subcommand(self) -> None:
        with patch("relay.api.cli.get_settings", return_value=RelaySettings()):
            with pytest.raises(SystemExit):
                cli.main([])
