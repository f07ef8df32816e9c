"""Meta-Builder command-line interface."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .context import RuntimeContext
from .dispatcher import run_command
from .exceptions import (
    CommandUsageError,
    ConfigurationError,
    MetaBuilderError,
    UnknownIdentifierError,
)
from .models import Command
from .registry import ProjectRegistry

app = typer.Typer(
    name="meta-builder",
    help="Enterprise Governance Meta-Builder",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _get_version_string() -> str:
    """Get version string from package metadata."""
    try:
        return get_version("meta-builder")
    except PackageNotFoundError:
        return f"{__version__} (development)"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"Meta-Builder version {_get_version_string()}")
        raise typer.Exit


def _list_projects(projects_dir: Path | None) -> None:
    registry = ProjectRegistry(projects_dir)
    table = Table(title="Governance Projects")
    table.add_column("Project", style="cyan")
    table.add_column("Name")
    table.add_column("Build Tool")
    table.add_column("Focus")

    for project_id in registry.discover_projects():
        try:
            definition = registry.load_definition(project_id)
        except MetaBuilderError as e:
            table.add_row(project_id, "[red]invalid[/red]", "-", str(e))
            continue
        table.add_row(
            project_id,
            definition.display_name,
            definition.build_tool or "-",
            definition.focus,
        )

    console.print(table)


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def main(
    ctx: typer.Context,
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Project to load (e.g. 'chimera', 'sentry')",
    ),
    bootstrap: bool = typer.Option(
        False,
        "--bootstrap",
        help="Bootstrap the environment: detect OS, check and install tools",
    ),
    generate: bool = typer.Option(
        False,
        "--generate",
        help="Generate an artifact: --generate <type> <name> [path]",
    ),
    compile_target: bool = typer.Option(
        False,
        "--compile",
        help="Compile a target or the entire project: --compile [target]",
    ),
    audit: bool = typer.Option(
        False,
        "--audit",
        help="Generate a compliance report: --audit <report>",
    ),
    ai_assist: bool = typer.Option(
        False,
        "--ai-assist",
        "--ai",
        help="Run an AI-assisted task: --ai <task> [args...]",
    ),
    sync: bool = typer.Option(
        False,
        "--sync",
        help="Run privacy-aware synchronization",
    ),
    heal: bool = typer.Option(
        False,
        "--heal",
        help="Manually trigger the self-healing mechanism",
    ),
    args: list[str] | None = typer.Argument(
        None,
        help="Arguments for the command",
        show_default=False,
    ),
    list_projects: bool = typer.Option(
        False,
        "--list",
        help="List available projects and exit",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable color output",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug log lines",
    ),
    install: bool = typer.Option(
        False,
        "--install",
        help="Let --bootstrap install missing packages",
    ),
    log_dir: Path | None = typer.Option(
        None,
        "--log-dir",
        help="Directory for build and audit logs",
    ),
    projects_dir: Path | None = typer.Option(
        None,
        "--projects-dir",
        help="Directory holding project definition files",
    ),
    work_dir: Path | None = typer.Option(
        None,
        "--work-dir",
        help="Directory commands operate in",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Enterprise Governance Meta-Builder.

    Loads a governance project and runs one command against it:

        meta-builder --project <id> <command> [args...]
    """
    try:
        context = RuntimeContext.from_env(
            log_dir=log_dir,
            projects_dir=projects_dir,
            work_dir=work_dir,
            no_color=no_color,
            debug=debug,
            install_packages=install,
        )
    except ConfigurationError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if list_projects:
        _list_projects(context.projects_dir)
        return

    flags = {
        Command.BOOTSTRAP: bootstrap,
        Command.GENERATE: generate,
        Command.COMPILE: compile_target,
        Command.AUDIT: audit,
        Command.AI_ASSIST: ai_assist,
        Command.SYNC: sync,
        Command.HEAL: heal,
    }
    selected = [command for command, enabled in flags.items() if enabled]
    extra = list(args or [])

    if len(selected) > 1:
        err_console.print("[red]Error:[/red] Only one command can be specified.")
        raise typer.Exit(1)

    command: Command | str | None = selected[0] if selected else None
    if command is None and extra and extra[0].startswith("-"):
        # Unrecognized flag in command position, reported as an unknown command.
        command = extra.pop(0)

    if project is None and command is None:
        err_console.print(ctx.get_help())
        raise typer.Exit(1)

    def report_error(error: MetaBuilderError) -> None:
        if isinstance(error, (UnknownIdentifierError, CommandUsageError)):
            err_console.print(ctx.get_help())
        else:
            err_console.print("Run 'meta-builder --help' for usage.")

    try:
        exit_code = run_command(
            project,
            command,
            extra,
            context,
            console=Console(no_color=context.no_color),
            on_error=report_error,
        )
    except ConfigurationError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if exit_code:
        raise typer.Exit(exit_code)
