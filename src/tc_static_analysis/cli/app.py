import logging
import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from tc_static_analysis.core.orchestrator import BuildOrchestrator, RunResult
from tc_static_analysis.models import ExitStatus, RunConfig

app = typer.Typer(
    name="tc-static-analysis",
    help=(
        "Load the TwinCAT static code analysis with the selected Visual Studio solution "
        "and TwinCAT project, and exit 0 (success), 1 (unstable) or 2 (error)."
    ),
    add_completion=False,
    context_settings={"help_option_names": []},
)
console = Console()

_EXAMPLE = (
    'tc-static-analysis -v "C:\\Jenkins\\TcProject\\TcProject.sln" '
    '-t "C:\\Jenkins\\TcProject\\PlcProject1\\PlcProj.tsproj"'
)
_LOG_LEVEL_ENV = "TC_STATIC_ANALYSIS_LOG_LEVEL"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    override = os.getenv(_LOG_LEVEL_ENV)
    if override:
        level = logging.getLevelNamesMapping().get(override.upper(), level)
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s" if verbose else "%(message)s"
    logging.basicConfig(level=level, format=fmt, handlers=[logging.StreamHandler(sys.stdout)], force=True)


def _print_help(ctx: typer.Context) -> None:
    typer.echo(ctx.get_help())
    typer.echo(f"Example: {_EXAMPLE}")


def _help_callback(ctx: typer.Context, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    _print_help(ctx)
    raise typer.Exit(int(ExitStatus.ERROR))


def _build_orchestrator(config: RunConfig) -> BuildOrchestrator:
    if config.dry_run:
        from tc_static_analysis.automation.memory import InMemoryBuildAutomation, NullMessageFilter

        return BuildOrchestrator(lambda _ide_version: InMemoryBuildAutomation(), NullMessageFilter())

    from tc_static_analysis.automation.dte import ComMessageFilter, DteBuildAutomation

    return BuildOrchestrator(DteBuildAutomation, ComMessageFilter())


def _print_summary(result: RunResult) -> None:
    counts = result.counts
    if counts is None:
        # aborted; the orchestrator already logged the reason
        return
    if result.status == ExitStatus.SUCCESS:
        console.print("[green]Static code analysis passed.[/green]")
    elif result.status == ExitStatus.UNSTABLE:
        console.print(f"[yellow]Static code analysis unstable: {counts.warnings} warning(s).[/yellow]")
    else:
        console.print(
            f"[red]Static code analysis failed: {counts.errors} error(s), {counts.warnings} warning(s).[/red]"
        )


@app.command()
def run(
    ctx: typer.Context,
    solution_path: Annotated[
        Path | None,
        typer.Option(
            "-v",
            "--VisualStudioSolutionFilePath",
            envvar="TC_SOLUTION_PATH",
            help="Path to the Visual Studio solution (.sln).",
        ),
    ] = None,
    project_path: Annotated[
        Path | None,
        typer.Option(
            "-t",
            "--TwinCATProjectFilePath",
            envvar="TC_PROJECT_PATH",
            help="Path to the TwinCAT project (.tsproj).",
        ),
    ] = None,
    tag_prefix: Annotated[str, typer.Option(help="Description prefix of static analysis diagnostics.")] = "SA",
    dry_run: Annotated[bool, typer.Option(help="Run every stage without launching Visual Studio.")] = False,
    verbose: Annotated[bool, typer.Option(help="Log state transitions with timestamps.")] = False,
    show_help: Annotated[
        bool,
        typer.Option(
            "-h",
            "-?",
            "--help",
            callback=_help_callback,
            is_eager=True,
            help="Show this message and exit with the error status.",
        ),
    ] = False,
) -> None:
    """Build a TwinCAT solution and gate on its static code analysis results."""
    _setup_logging(verbose)
    console.print(f"tc-static-analysis : argument 1: {escape(str(solution_path))}")
    console.print(f"tc-static-analysis : argument 2: {escape(str(project_path))}")

    if solution_path is None or project_path is None:
        _print_help(ctx)
        raise typer.Exit(int(ExitStatus.ERROR))

    config = RunConfig(
        solution_path=solution_path,
        project_path=project_path,
        tag_prefix=tag_prefix,
        dry_run=dry_run,
    )
    result = _build_orchestrator(config).run(config)
    _print_summary(result)
    raise typer.Exit(int(result.status))


def main() -> None:
    app()
