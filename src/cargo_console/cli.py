"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cargo_console import __version__
from cargo_console.config import CONFIG_FILE, AppConfig, load_config, save_config
from cargo_console.console import RichConsoleSink
from cargo_console.errors import ExitCode
from cargo_console.models import BuildTarget, CommandResult, ExitStatus, ProjectTemplate
from cargo_console.process.transport import AsyncioProcessTransport
from cargo_console.project import MANIFEST_NAME, find_project_root, load_properties, save_properties
from cargo_console.services.cargo import CargoRunner
from cargo_console.utils.system import check_cargo_cli, check_project_dir

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="cargo-console",
    help="Run cargo commands with streamed, timed console output.",
    add_completion=False,
)
console = Console()

RunnerAction = Callable[[CargoRunner], Awaitable[bool]]


def _load() -> AppConfig:
    config = load_config()
    log_path = Path(config.logging.file).expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.FileHandler(str(log_path))],
    )
    return config


def _resolve_project(project: Path | None) -> Path:
    root = find_project_root(project or Path.cwd())
    if root is None:
        console.print(f"[red]No {MANIFEST_NAME} found in {project or Path.cwd()} or its parents.[/red]")
        raise typer.Exit(ExitCode.INVALID_ARGS)
    return root


def _target(release: bool | None) -> BuildTarget | None:
    if release is None:
        return None
    return BuildTarget.RELEASE if release else BuildTarget.DEBUG


async def _drive(config: AppConfig, project: Path | None, action: RunnerAction) -> CommandResult | None:
    sink = RichConsoleSink(console, clear_on_start=config.console.clear_on_start)
    transport = AsyncioProcessTransport(grace_period=config.cargo.stop_grace_period)
    runner = CargoRunner(config, transport, sink, on_project_created=sink.on_project_created)
    if project is not None:
        runner.set_project_path(str(project))
        runner.properties = load_properties(project)

    loop = asyncio.get_running_loop()
    pending: set[asyncio.Task[None]] = set()

    def _signal_handler() -> None:
        logger.info("Stop signal received")
        task = loop.create_task(runner.stop())
        pending.add(task)
        task.add_done_callback(pending.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)
    try:
        await action(runner)
        result = await runner.wait()
        if pending:
            await asyncio.gather(*pending)
        return result
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


def _execute(config: AppConfig, project: Path | None, action: RunnerAction) -> None:
    result = asyncio.run(_drive(config, project, action))
    if result is None or result.error or result.exit_status is ExitStatus.CRASHED:
        raise typer.Exit(ExitCode.FAILURE)
    if result.exit_code != 0:
        raise typer.Exit(result.exit_code)


@app.command()
def new(
    name: str = typer.Argument(..., help="Project name"),
    lib: bool = typer.Option(False, "--lib", help="Create a library instead of a binary"),
    directory: str = typer.Option(None, "--dir", "-d", help="Parent directory (default: workspace.path)"),
) -> None:
    """Create a new cargo project."""
    config = _load()
    valid, resolved = check_project_dir(directory or config.workspace.path)
    if not valid:
        console.print(f"[red]{resolved}[/red]")
        raise typer.Exit(ExitCode.INVALID_ARGS)

    template = ProjectTemplate.LIBRARY if lib else ProjectTemplate.BINARY
    path = str(Path(resolved) / name)
    _execute(config, None, lambda runner: runner.create_project(template, path))


@app.command()
def build(
    release: bool | None = typer.Option(None, "--release/--debug", help="Build target (default: project properties)"),
    project: Path = typer.Option(None, "--project", "-p", help="Project directory"),
) -> None:
    """Build the project."""
    config = _load()
    root = _resolve_project(project)
    _execute(config, root, lambda runner: runner.build(_target(release)))


@app.command()
def run(
    args: list[str] = typer.Argument(None, help="Arguments passed to the program (after --)"),
    release: bool | None = typer.Option(None, "--release/--debug", help="Build target (default: project properties)"),
    project: Path = typer.Option(None, "--project", "-p", help="Project directory"),
) -> None:
    """Build and run the project."""
    config = _load()
    root = _resolve_project(project)
    _execute(config, root, lambda runner: runner.run(_target(release), args or None))


@app.command()
def clean(
    project: Path = typer.Option(None, "--project", "-p", help="Project directory"),
) -> None:
    """Remove the project's build artifacts."""
    config = _load()
    root = _resolve_project(project)
    _execute(config, root, lambda runner: runner.clean())


@app.command()
def properties(
    target: BuildTarget | None = typer.Option(None, "--target", "-t", help="Default build target"),
    arguments: str = typer.Option(None, "--args", help="Default run arguments"),
    project: Path = typer.Option(None, "--project", "-p", help="Project directory"),
) -> None:
    """View or modify project properties."""
    root = _resolve_project(project)
    props = load_properties(root)

    if target is None and arguments is None:
        table = Table(title=f"Project: {root}")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("target", props.target.value)
        table.add_row("arguments", props.arguments or "(none)")
        console.print(table)
        return

    if target is not None:
        props.target = target
    if arguments is not None:
        props.arguments = arguments
    save_properties(root, props)
    console.print(f"[green]target = {props.target.value}, arguments = {props.arguments!r}[/green]")


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., cargo.path)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    cfg = load_config()

    if key is None:
        # Show all config
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("cargo.path", cfg.cargo.path)
        table.add_row("cargo.stop_grace_period", str(cfg.cargo.stop_grace_period))
        table.add_row("workspace.path", cfg.workspace.path)
        table.add_row("console.encoding", cfg.console.encoding or "(locale)")
        table.add_row("console.clear_on_start", str(cfg.console.clear_on_start))
        table.add_row("logging.level", cfg.logging.level)
        table.add_row("logging.file", cfg.logging.file)

        console.print(table)
        return

    if value is None:
        console.print("[red]Usage: cargo-console config <key> <value>[/red]")
        raise typer.Exit(ExitCode.INVALID_ARGS)

    # Set config value
    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., cargo.path)[/red]")
        raise typer.Exit(ExitCode.INVALID_ARGS)

    section, attr = parts
    section_map = {"cargo": cfg.cargo, "workspace": cfg.workspace, "console": cfg.console, "logging": cfg.logging}

    if section not in section_map:
        console.print(f"[red]Unknown section: {section}[/red]")
        raise typer.Exit(ExitCode.CONFIG_ERROR)

    obj = section_map[section]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {key}[/red]")
        raise typer.Exit(ExitCode.CONFIG_ERROR)

    # Type coercion
    current = getattr(obj, attr)
    try:
        if isinstance(current, bool):
            typed_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, float):
            typed_value = float(value)
        else:
            typed_value = value
    except ValueError:
        console.print(f"[red]Invalid value type for {key}[/red]")
        raise typer.Exit(ExitCode.CONFIG_ERROR)

    setattr(obj, attr, typed_value)
    save_config(cfg)
    console.print(f"[green]{key} = {typed_value}[/green]")


@app.command()
def logs(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines"),
) -> None:
    """View recent log lines."""
    log_path = Path(load_config().logging.file).expanduser().resolve()
    if not log_path.exists():
        console.print("[dim]No log file found.[/dim]")
        return

    content = log_path.read_text(errors="replace")
    log_lines = content.strip().split("\n")
    for line in log_lines[-lines:]:
        console.print(line, markup=False, highlight=False)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"cargo-console v{__version__}")

    cfg = load_config()
    installed, version_info = check_cargo_cli(cfg.cargo.path)
    if installed:
        console.print(f"Cargo: {version_info}")
    else:
        console.print(f"Cargo: [yellow]{version_info}[/yellow]")

    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
