"""Tests for cloudmux.config."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from cloudmux.config import CloudmuxConfig, LogTailConfig, TerminalConfig

_ENV_VARS = (
    "CLOUDMUX_SHELL",
    "CLOUDMUX_AWS_CLI",
    "AWS_PROFILE",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "CLOUDMUX_POLL_INTERVAL",
    "CLOUDMUX_LOOKBACK_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep load_dotenv from picking up a developer's .env
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_terminal_defaults(self) -> None:
        config = TerminalConfig()
        assert config.shell == "/bin/sh"
        assert (config.cols, config.rows) == (80, 24)
        assert config.read_chunk_size == 4096

    def test_log_defaults(self) -> None:
        config = LogTailConfig()
        assert config.poll_interval == 2.0
        assert config.lookback_seconds == 30.0

    def test_rejects_nonpositive_interval(self) -> None:
        with pytest.raises(ValidationError):
            LogTailConfig(poll_interval=0)


class TestLoad:
    def test_load_without_file(self) -> None:
        config = CloudmuxConfig.load(None)
        assert config.aws.cli == "aws"
        assert config.aws.region == "us-east-1"

    def test_load_from_file(self, tmp_path) -> None:
        path = tmp_path / "cloudmux.json"
        path.write_text(
            json.dumps(
                {
                    "terminal": {"shell": "/bin/bash", "cols": 120},
                    "logs": {"poll_interval": 5},
                    "aws": {"profile": "prod"},
                }
            )
        )
        config = CloudmuxConfig.load(str(path))
        assert config.terminal.shell == "/bin/bash"
        assert config.terminal.cols == 120
        assert config.terminal.rows == 24
        assert config.logs.poll_interval == 5.0
        assert config.aws.profile == "prod"

    def test_missing_file_falls_back_to_defaults(self, tmp_path) -> None:
        config = CloudmuxConfig.load(str(tmp_path / "nope.json"))
        assert config.terminal.shell == "/bin/sh"

    def test_env_overrides_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "cloudmux.json"
        path.write_text(json.dumps({"aws": {"profile": "file", "region": "eu-west-1"}}))
        monkeypatch.setenv("AWS_PROFILE", "env")
        monkeypatch.setenv("CLOUDMUX_SHELL", "/bin/zsh")
        monkeypatch.setenv("CLOUDMUX_POLL_INTERVAL", "0.5")
        config = CloudmuxConfig.load(str(path))
        assert config.aws.profile == "env"
        assert config.aws.region == "eu-west-1"
        assert config.terminal.shell == "/bin/zsh"
        assert config.logs.poll_interval == 0.5

    def test_default_region_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-south-1")
        assert CloudmuxConfig.load(None).aws.region == "ap-south-1"
        monkeypatch.setenv("AWS_REGION", "us-west-2")
        assert CloudmuxConfig.load(None).aws.region == "us-west-2"
