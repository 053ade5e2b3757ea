"""Tests for cloudmux.cli helpers and command wiring."""

from __future__ import annotations

import pytest
from rich.text import Text
from typer.testing import CliRunner

from cloudmux.cli import _format_log_line, _render_log_event, _session_type, app
from cloudmux.config import CloudmuxConfig
from cloudmux.session.wire import LOGS, TERMINAL, EventType, WireEvent

runner = CliRunner()


@pytest.fixture
def config() -> CloudmuxConfig:
    config = CloudmuxConfig()
    config.aws.profile = "dev"
    config.aws.region = "eu-west-1"
    return config


class TestSessionType:
    def test_local(self, config: CloudmuxConfig) -> None:
        assert _session_type("local", config) == {"type": "local"}

    def test_ecs(self, config: CloudmuxConfig) -> None:
        payload = _session_type(
            "ecs", config, cluster="c", task="t", container="web"
        )
        assert payload == {
            "type": "ecs_exec",
            "cluster": "c",
            "task": "t",
            "container": "web",
            "profile": "dev",
            "region": "eu-west-1",
        }

    def test_forward(self, config: CloudmuxConfig) -> None:
        payload = _session_type(
            "forward", config, instance="i-1", local_port=5432, remote_port=5432
        )
        assert payload["type"] == "ssm_port_forwarding"
        assert payload["remote_host"] is None

    def test_missing_flags(self, config: CloudmuxConfig) -> None:
        with pytest.raises(ValueError, match="--task, --container"):
            _session_type("ecs", config, cluster="c", task=None, container=None)

    def test_unknown_kind(self, config: CloudmuxConfig) -> None:
        with pytest.raises(ValueError, match="Unknown kind"):
            _session_type("rdp", config)


class TestRendering:
    def test_format_log_line(self) -> None:
        line = _format_log_line(
            {"timestamp": 0, "log_stream_name": "web/1", "message": "hello\n"}
        )
        assert isinstance(line, Text)
        assert line.plain.endswith("web/1 hello")

    def test_stopped_ends_render(self) -> None:
        assert _render_log_event(WireEvent(EventType.STOPPED, LOGS, "t"))
        assert not _render_log_event(WireEvent(EventType.OUTPUT, LOGS, "t", []))

    def test_terminal_events_ignored(self) -> None:
        assert not _render_log_event(WireEvent(EventType.STOPPED, TERMINAL, "t"))


class TestApp:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "tail" in result.output
        assert "shell" in result.output

    def test_shell_rejects_missing_selectors(self) -> None:
        result = runner.invoke(app, ["shell", "--kind", "ssm"])
        assert result.exit_code == 2
