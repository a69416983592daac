"""Typer-powered command line for ``mtctl``.

``configure`` edits the instance registry, ``connect`` opens an interactive
remote-control session against one instance and ``list`` prints what is
registered. Every invocation is recorded in the structured operations log.
"""
from __future__ import annotations

import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import get_version
from .config import AppConfig, ConfigError, load_config
from .exit_codes import ExitCode
from .logging import OperationScope, StructuredLogger
from .prompting import console_reader
from .providers import RemoteControlClient
from .session import InteractiveSession
from .state import InstanceRegistry
from .validation import ValidationError, mask_secret
from .wizard import ConfigurationWizard

console = Console()

CONFIG_FILE_OPTION = typer.Option(
    None,
    "--config-file",
    dir_okay=False,
    help="Override the path to mtctl's YAML config file.",
)

REGISTRY_FILE_OPTION = typer.Option(
    None,
    "--registry-file",
    dir_okay=False,
    help="Override the path to the instances registry.",
)

app = typer.Typer(
    add_completion=False,
    help=textwrap.dedent(
        """
        Motor Town dedicated server control client.

        Register server instances with `configure`, then `connect` to one of
        them to chat, manage players and query server state.
        """
    ).strip(),
)


@dataclass
class RuntimeContext:
    """Aggregated runtime objects shared by commands."""

    config: AppConfig
    logger: StructuredLogger
    client: RemoteControlClient


def _ensure_runtime(
    ctx: typer.Context,
    config_file: Path | None,
    registry_file: Path | None,
) -> RuntimeContext:
    runtime = ctx.obj
    if isinstance(runtime, RuntimeContext):
        return runtime

    overrides: dict[str, object] = {}
    if registry_file is not None:
        overrides["registry_file"] = str(registry_file)

    try:
        config = load_config(config_file=config_file, overrides=overrides)
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=ExitCode.ENVIRONMENT) from exc

    runtime = RuntimeContext(
        config=config,
        logger=StructuredLogger(config.logs_dir),
        client=RemoteControlClient(timeout=config.request_timeout),
    )
    ctx.obj = runtime
    return runtime


def _get_runtime(ctx: typer.Context) -> RuntimeContext:
    runtime = ctx.obj
    if isinstance(runtime, RuntimeContext):
        return runtime
    return _ensure_runtime(ctx, None, None)


@app.callback(invoke_without_command=True)
def _root(  # noqa: D401 - Typer displays help for us, docstring optional.
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show the mtctl version and exit.",
    ),
    config_file: Path | None = CONFIG_FILE_OPTION,
    registry_file: Path | None = REGISTRY_FILE_OPTION,
) -> None:
    """Entry point callback invoked for every CLI execution."""
    runtime = _ensure_runtime(ctx, config_file, registry_file)

    if version:
        with runtime.logger.operation(
            "root --version",
            args={"version": True},
            target={"kind": "meta", "scope": "version"},
        ) as op:
            console.print(f"mtctl {get_version()}")
            op.success("Reported CLI version.", changed=0)
        raise typer.Exit(code=ExitCode.OK)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(code=ExitCode.OK)


def _command_error(
    op: OperationScope,
    message: str,
    *,
    rc: int = ExitCode.VALIDATION,
) -> NoReturn:
    """Emit a structured error and terminate the command."""
    console.print(f"[red]{escape(message)}[/red]")
    op.error(message, rc=rc)
    raise typer.Exit(code=rc)


def _load_registry(runtime: RuntimeContext, op: OperationScope) -> InstanceRegistry:
    """Load the registry or terminate with an environment error."""
    try:
        registry = InstanceRegistry.load(runtime.config.registry_file)
    except ConfigError as exc:
        _command_error(op, f"Failed to load configuration: {exc}", rc=ExitCode.ENVIRONMENT)
    op.add_step("registry.load", detail=f"{len(registry)} instance(s)")
    return registry


@app.command()
def configure(ctx: typer.Context) -> None:
    """Add, edit or delete server instances interactively."""
    runtime = _get_runtime(ctx)
    with runtime.logger.operation(
        "configure",
        target={"kind": "registry", "path": runtime.config.registry_file},
    ) as op:
        registry = _load_registry(runtime, op)
        wizard = ConfigurationWizard(
            registry,
            console=console,
            read_line=console_reader(console),
            logger=runtime.logger,
        )
        wizard.run()
        op.success("Configuration wizard closed.", context={"instances": len(registry)})


@app.command()
def connect(
    ctx: typer.Context,
    name: str | None = typer.Argument(
        None,
        help="Instance to connect to (omit to choose from a list).",
    ),
) -> None:
    """Open an interactive remote-control session with a server instance."""
    runtime = _get_runtime(ctx)
    with runtime.logger.operation(
        "connect",
        args={"name": name},
        target={"kind": "instance", "name": name},
    ) as op:
        registry = _load_registry(runtime, op)
        session = InteractiveSession(
            registry,
            runtime.client,
            console=console,
            read_line=console_reader(console),
            logger=runtime.logger,
        )

        try:
            if name is not None:
                session.bind(name)
            elif session.select() is None:
                op.success("No instance selected.", changed=0)
                return
        except ValidationError as exc:
            _command_error(op, f"Error: {exc}", rc=ExitCode.VALIDATION)

        op.add_step("session.connect", detail=session.instance_name)
        session.run()
        op.success(f"Session with '{session.instance_name}' closed.", changed=0)


@app.command("list")
def list_instances(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit instances as JSON instead of a table.",
    ),
) -> None:
    """List registered instances with their endpoints."""
    runtime = _get_runtime(ctx)
    with runtime.logger.operation(
        "list",
        args={"json": json_output},
        target={"kind": "registry", "path": runtime.config.registry_file},
    ) as op:
        registry = _load_registry(runtime, op)
        entries = []
        for name in registry.sorted_names():
            instance = registry.get(name)
            if instance is None:
                continue
            entries.append(
                {
                    "name": name,
                    "address": instance.address,
                    "port": instance.port,
                    "secret": mask_secret(instance.secret),
                }
            )

        if json_output:
            console.print_json(data={"instances": entries})
            op.success("Reported instance list as JSON.", changed=0)
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Name", style="bold")
        table.add_column("Address")
        table.add_column("Port")
        table.add_column("Secret")

        if not entries:
            table.add_row("(none)", "", "", "")
        else:
            for entry in entries:
                table.add_row(
                    escape(str(entry["name"])),
                    str(entry["address"]),
                    str(entry["port"]),
                    escape(str(entry["secret"])),
                )

        console.print(table)
        op.success("Reported instance list.", changed=0)


__all__ = ["app"]
