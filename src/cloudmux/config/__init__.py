"""Configuration — Pydantic models for cloudmux settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class TerminalConfig(BaseModel):
    """Pseudo-terminal session configuration."""

    shell: str = Field(
        default="/bin/sh",
        description="Shell binary for local sessions and the ECS exec --command",
    )
    cols: int = Field(default=80, gt=0)
    rows: int = Field(default=24, gt=0)
    read_chunk_size: int = Field(
        default=4096, gt=0, description="Bytes per read in the output streamer"
    )
    term: str = Field(default="xterm-256color", description="TERM for the child")


class LogTailConfig(BaseModel):
    """Log-tail polling configuration."""

    poll_interval: float = Field(
        default=2.0, gt=0, description="Seconds between polls"
    )
    lookback_seconds: float = Field(
        default=30.0,
        ge=0,
        description="How far back a new tail starts, so recent history shows up",
    )
    query_timeout: float = Field(
        default=30.0, gt=0, description="Seconds before a single query is abandoned"
    )


class AwsConfig(BaseModel):
    """Defaults handed to the aws CLI."""

    cli: str = Field(default="aws", description="Path or name of the aws CLI")
    profile: str = Field(default="default")
    region: str = Field(default="us-east-1")


class CloudmuxConfig(BaseModel):
    """Top-level cloudmux configuration."""

    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    logs: LogTailConfig = Field(default_factory=LogTailConfig)
    aws: AwsConfig = Field(default_factory=AwsConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> CloudmuxConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            CLOUDMUX_SHELL             - Shell for local sessions / ECS exec
            CLOUDMUX_AWS_CLI           - aws CLI binary
            AWS_PROFILE                - Default profile
            AWS_REGION                 - Default region (falls back to AWS_DEFAULT_REGION)
            CLOUDMUX_POLL_INTERVAL     - Log-tail poll interval in seconds
            CLOUDMUX_LOOKBACK_SECONDS  - Log-tail initial lookback in seconds
        """
        load_dotenv(override=False)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        terminal = config_data.get("terminal", {})
        logs = config_data.get("logs", {})
        aws = config_data.get("aws", {})

        env_shell = os.environ.get("CLOUDMUX_SHELL")
        if env_shell:
            terminal["shell"] = env_shell

        env_cli = os.environ.get("CLOUDMUX_AWS_CLI")
        if env_cli:
            aws["cli"] = env_cli

        env_profile = os.environ.get("AWS_PROFILE")
        if env_profile:
            aws["profile"] = env_profile

        env_region = os.environ.get("AWS_REGION") or os.environ.get(
            "AWS_DEFAULT_REGION"
        )
        if env_region:
            aws["region"] = env_region

        env_interval = os.environ.get("CLOUDMUX_POLL_INTERVAL")
        if env_interval:
            logs["poll_interval"] = float(env_interval)

        env_lookback = os.environ.get("CLOUDMUX_LOOKBACK_SECONDS")
        if env_lookback:
            logs["lookback_seconds"] = float(env_lookback)

        if terminal:
            config_data["terminal"] = terminal
        if logs:
            config_data["logs"] = logs
        if aws:
            config_data["aws"] = aws

        return cls.model_validate(config_data)
