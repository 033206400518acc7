"""Command-line entry point: cmdwizard COMMAND... [options]."""

import logging
import sys
from typing import List, Optional

import typer

from .engine import RealActionRunner, WizardEngine, WizardError
from .engine.loader import ConfigLoader
from .settings import Settings

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Build a command line step by step.")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )


@app.command()
def run(
    command: List[str] = typer.Argument(..., help="Command to build, e.g. 'git commit'"),
    preset: Optional[str] = typer.Option(None, "--preset", "-p", help="Use the preset with this label"),
    execute: bool = typer.Option(False, "--exec", "-x", help="Run the finished command instead of printing it"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log lookups and fetch commands to stderr"),
    fetch_timeout: Optional[float] = typer.Option(
        None, "--fetch-timeout", help="Seconds a placeholder fetch command may run"
    ),
):
    try:
        settings = Settings.from_env(verbose=verbose or None, fetch_timeout=fetch_timeout)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    configure_logging(settings.verbose)
    runner = RealActionRunner()
    engine = WizardEngine(runner, loader=ConfigLoader(settings=settings), settings=settings)

    try:
        result = engine.run(command, preset=preset)
    except WizardError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if result.cancelled:
        # Nothing is printed, copied or executed
        raise typer.Exit(code=0)

    if not execute:
        typer.echo(result.command)
        return

    logger.debug("Executing: %s", result.command)
    outcome = runner.run_shell(['sh', '-c', result.command])
    if outcome.get('stderr'):
        typer.echo(outcome['stderr'], err=True)
    raise typer.Exit(code=outcome.get('returncode', 1))


def main() -> None:
    app()
