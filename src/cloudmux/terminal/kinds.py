"""Session kinds and the fixed mapping from kind to command line."""

from __future__ import annotations

from typing import Annotated, Literal, Union, assert_never

from pydantic import BaseModel, Field


class EcsExec(BaseModel):
    """Interactive shell inside an ECS task container."""

    type: Literal["ecs_exec"] = "ecs_exec"
    cluster: str
    task: str
    container: str
    profile: str
    region: str


class SsmSession(BaseModel):
    """SSM shell on an EC2 instance."""

    type: Literal["ssm_session"] = "ssm_session"
    instance_id: str
    profile: str
    region: str


class SsmPortForwarding(BaseModel):
    """SSM port-forwarding tunnel, to the instance or through it to a host."""

    type: Literal["ssm_port_forwarding"] = "ssm_port_forwarding"
    instance_id: str
    local_port: int = Field(ge=1, le=65535)
    remote_port: int = Field(ge=1, le=65535)
    remote_host: str | None = None
    profile: str
    region: str


class LocalShell(BaseModel):
    """A plain shell on this machine."""

    type: Literal["local"] = "local"


SessionKind = Annotated[
    Union[EcsExec, SsmSession, SsmPortForwarding, LocalShell],
    Field(discriminator="type"),
]

REMOTE_HOST_DOCUMENT = "AWS-StartPortForwardingSessionToRemoteHost"
INSTANCE_DOCUMENT = "AWS-StartPortForwardingSession"


def build_command(
    kind: EcsExec | SsmSession | SsmPortForwarding | LocalShell,
    shell: str = "/bin/sh",
    aws_cli: str = "aws",
) -> list[str]:
    """Return the argv that starts a session of the given kind."""
    if isinstance(kind, EcsExec):
        return [
            aws_cli,
            "ecs",
            "execute-command",
            "--cluster",
            kind.cluster,
            "--task",
            kind.task,
            "--container",
            kind.container,
            "--interactive",
            "--command",
            shell,
            "--profile",
            kind.profile,
            "--region",
            kind.region,
        ]
    if isinstance(kind, SsmSession):
        return [
            aws_cli,
            "ssm",
            "start-session",
            "--target",
            kind.instance_id,
            "--profile",
            kind.profile,
            "--region",
            kind.region,
        ]
    if isinstance(kind, SsmPortForwarding):
        if kind.remote_host:
            document = REMOTE_HOST_DOCUMENT
            parameters = (
                f"host={kind.remote_host},portNumber={kind.remote_port},"
                f"localPortNumber={kind.local_port}"
            )
        else:
            document = INSTANCE_DOCUMENT
            parameters = (
                f"portNumber={kind.remote_port},localPortNumber={kind.local_port}"
            )
        return [
            aws_cli,
            "ssm",
            "start-session",
            "--target",
            kind.instance_id,
            "--document-name",
            document,
            "--parameters",
            parameters,
            "--profile",
            kind.profile,
            "--region",
            kind.region,
        ]
    if isinstance(kind, LocalShell):
        return [shell]
    assert_never(kind)


def default_title(kind: EcsExec | SsmSession | SsmPortForwarding | LocalShell) -> str:
    """Human-readable title used when the caller does not supply one."""
    if isinstance(kind, EcsExec):
        return f"ECS: {kind.container}"
    if isinstance(kind, SsmSession):
        return f"EC2: {kind.instance_id}"
    if isinstance(kind, SsmPortForwarding):
        return f"Port Forward: {kind.local_port} -> {kind.remote_port}"
    if isinstance(kind, LocalShell):
        return "Local Shell"
    assert_never(kind)
