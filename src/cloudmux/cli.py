"""CLI entry point for cloudmux."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import sys
import threading
from datetime import datetime
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.text import Text

from cloudmux.config import CloudmuxConfig
from cloudmux.dispatch import Dispatcher
from cloudmux.session.recorder import WireRecorder
from cloudmux.session.wire import LOGS, TERMINAL, EventType, WireEvent

app = typer.Typer(
    name="cloudmux",
    help="Terminals and log tails for cloud compute, multiplexed over one event stream.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config(
    config_file: str | None, profile: str | None, region: str | None
) -> CloudmuxConfig:
    config = CloudmuxConfig.load(config_file)
    if profile:
        config.aws.profile = profile
    if region:
        config.aws.region = region
    return config


# ---------------------------------------------------------------------------
# tail
# ---------------------------------------------------------------------------


@app.command()
def tail(
    log_group: str = typer.Argument(help="Log group to tail."),
    filter_pattern: str | None = typer.Option(
        None, "--filter", "-f", help="CloudWatch filter pattern."
    ),
    profile: str | None = typer.Option(None, "--profile", "-p", help="AWS profile."),
    region: str | None = typer.Option(None, "--region", "-r", help="AWS region."),
    record: str | None = typer.Option(
        None, "--record", help="Append every event to this JSONL file."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Follow a log group until interrupted."""
    setup_logging(verbose)
    config = _load_config(config_file, profile, region)
    try:
        code = asyncio.run(_run_tail(config, log_group, filter_pattern, record))
    except KeyboardInterrupt:
        code = 0
    raise typer.Exit(code)


async def _run_tail(
    config: CloudmuxConfig,
    log_group: str,
    filter_pattern: str | None,
    record: str | None,
) -> int:
    dispatcher = Dispatcher(config=config)
    queue = dispatcher.wire.subscribe()
    recorder = WireRecorder(dispatcher.wire, record) if record else None
    if recorder:
        recorder.start()

    try:
        result = await dispatcher.invoke(
            "start_log_tail",
            {"log_group_name": log_group, "filter_pattern": filter_pattern},
        )
        if not result.ok:
            err_console.print(f"[red]Error:[/red] {escape(result.error or '')}")
            return 1

        console.print(
            f"[bold]Tailing[/bold] {log_group} "
            f"({config.aws.profile}/{config.aws.region}) (Ctrl-C to stop)"
        )
        while True:
            event = await queue.get()
            if event is None or _render_log_event(event):
                break
    finally:
        await dispatcher.shutdown()
        if recorder:
            await recorder.wait()
    return 0


def _render_log_event(event: WireEvent) -> bool:
    """Print one log-tail event. Returns True once the tail has stopped."""
    if event.namespace != LOGS:
        return False
    if event.type == EventType.OUTPUT:
        for item in event.data or []:
            console.print(_format_log_line(item))
    elif event.type == EventType.ERROR:
        err_console.print(Text(f"[tail error] {event.data}", style="red"))
    elif event.type == EventType.STOPPED:
        console.print(Text("[tail stopped]", style="dim"))
        return True
    return False


def _format_log_line(item: dict[str, Any]) -> Text:
    ts = datetime.fromtimestamp(item.get("timestamp", 0) / 1000).strftime(
        "%H:%M:%S.%f"
    )[:-3]
    line = Text()
    line.append(ts, style="dim")
    line.append(" ")
    line.append(item.get("log_stream_name", ""), style="cyan")
    line.append(" ")
    line.append(str(item.get("message", "")).rstrip("\n"))
    return line


# ---------------------------------------------------------------------------
# shell
# ---------------------------------------------------------------------------


@app.command()
def shell(
    kind: str = typer.Option(
        "local", "--kind", "-k", help="Session kind: local, ecs, ssm or forward."
    ),
    cluster: str | None = typer.Option(None, "--cluster", help="ECS cluster."),
    task: str | None = typer.Option(None, "--task", help="ECS task id."),
    container: str | None = typer.Option(None, "--container", help="ECS container."),
    instance: str | None = typer.Option(None, "--instance", help="EC2 instance id."),
    local_port: int | None = typer.Option(None, "--local-port", help="Forward: local port."),
    remote_port: int | None = typer.Option(
        None, "--remote-port", help="Forward: remote port."
    ),
    remote_host: str | None = typer.Option(
        None, "--remote-host", help="Forward: host reached through the instance."
    ),
    profile: str | None = typer.Option(None, "--profile", "-p", help="AWS profile."),
    region: str | None = typer.Option(None, "--region", "-r", help="AWS region."),
    shell_bin: str | None = typer.Option(
        None, "--shell", help="Shell binary (local) or ECS exec command."
    ),
    title: str | None = typer.Option(None, "--title", help="Session title."),
    record: str | None = typer.Option(
        None, "--record", help="Append every event to this JSONL file."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Open a session and relay stdin/stdout line by line."""
    setup_logging(verbose)
    config = _load_config(config_file, profile, region)

    try:
        session_type = _session_type(
            kind,
            config,
            cluster=cluster,
            task=task,
            container=container,
            instance=instance,
            local_port=local_port,
            remote_port=remote_port,
            remote_host=remote_host,
        )
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(2)

    request: dict[str, Any] = {"session_type": session_type}
    if title:
        request["title"] = title
    if shell_bin:
        request["shell"] = shell_bin

    try:
        code = asyncio.run(_run_shell(config, request, record))
    except KeyboardInterrupt:
        code = 130
    raise typer.Exit(code)


def _session_type(
    kind: str, config: CloudmuxConfig, **selectors: Any
) -> dict[str, Any]:
    """Build the session_type payload for ``kind`` from CLI selectors."""
    aws = {"profile": config.aws.profile, "region": config.aws.region}

    def need(*names: str) -> None:
        missing = [n for n in names if selectors.get(n) is None]
        if missing:
            flags = ", ".join("--" + n.replace("_", "-") for n in missing)
            raise ValueError(f"--kind {kind} requires {flags}")

    if kind == "local":
        return {"type": "local"}
    if kind == "ecs":
        need("cluster", "task", "container")
        return {
            "type": "ecs_exec",
            "cluster": selectors["cluster"],
            "task": selectors["task"],
            "container": selectors["container"],
            **aws,
        }
    if kind == "ssm":
        need("instance")
        return {"type": "ssm_session", "instance_id": selectors["instance"], **aws}
    if kind == "forward":
        need("instance", "local_port", "remote_port")
        return {
            "type": "ssm_port_forwarding",
            "instance_id": selectors["instance"],
            "local_port": selectors["local_port"],
            "remote_port": selectors["remote_port"],
            "remote_host": selectors.get("remote_host"),
            **aws,
        }
    raise ValueError(f"Unknown kind: {kind} (expected local, ecs, ssm or forward)")


def _pump_stdin(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[bytes]) -> None:
    """Read stdin lines on a daemon thread; b"" marks EOF."""
    for line in iter(sys.stdin.buffer.readline, b""):
        loop.call_soon_threadsafe(queue.put_nowait, line)
    loop.call_soon_threadsafe(queue.put_nowait, b"")


async def _run_shell(
    config: CloudmuxConfig, request: dict[str, Any], record: str | None
) -> int:
    dispatcher = Dispatcher(config=config)
    events = dispatcher.wire.subscribe()
    recorder = WireRecorder(dispatcher.wire, record) if record else None
    if recorder:
        recorder.start()

    try:
        result = await dispatcher.invoke("terminal_create_session", request)
        if not result.ok:
            err_console.print(f"[red]Error:[/red] {escape(result.error or '')}")
            return 1
        session_id = result.value["session_id"]
        err_console.print(
            f"[bold]{escape(result.value['info']['title'])}[/bold] ({session_id})", style="dim"
        )

        lines: asyncio.Queue[bytes] = asyncio.Queue()
        threading.Thread(
            target=_pump_stdin,
            args=(asyncio.get_running_loop(), lines),
            name="stdin-pump",
            daemon=True,
        ).start()

        async def relay_input() -> None:
            while True:
                line = await lines.get()
                if not line:
                    await dispatcher.invoke("terminal_close", {"session_id": session_id})
                    return
                written = await dispatcher.invoke(
                    "terminal_write",
                    {
                        "session_id": session_id,
                        "data": base64.b64encode(line).decode("ascii"),
                    },
                )
                if not written.ok:
                    err_console.print(f"[red]{escape(written.error or '')}[/red]")
                    return

        input_task = asyncio.create_task(relay_input())
        code = 0
        try:
            while True:
                event = await events.get()
                if event is None:
                    break
                if event.namespace != TERMINAL or event.session_id != session_id:
                    continue
                if event.type == EventType.OUTPUT:
                    os.write(sys.stdout.fileno(), base64.b64decode(event.data))
                elif event.type == EventType.ERROR:
                    err_console.print(f"[red]Session error:[/red] {escape(str(event.data))}")
                    code = 1
                    break
                elif event.type == EventType.CLOSED:
                    break
        finally:
            input_task.cancel()
        return code
    finally:
        await dispatcher.shutdown()
        if recorder:
            await recorder.wait()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
