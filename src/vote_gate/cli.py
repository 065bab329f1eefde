"""
Command line interface for Vote Gate: run the webhook server and inspect state.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from vote_gate import __version__
from vote_gate.errors import VoteGateError
from vote_gate.github_app.check_store import CheckStore
from vote_gate.utils import config_file, logging_config

# Set up logger
logger = logging.getLogger(__name__)

# Rich console for consistent output styling
console = Console()

# Main Typer application instance
app = typer.Typer(
    name="vote-gate",
    help="GitHub App that gates pull requests on a label-driven vote",
    add_completion=False,
    no_args_is_help=True,
)

_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    exists=True,
    dir_okay=False,
    help="Config file (default: search for .vote-gate.yml upwards from cwd)",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"Vote-Gate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """Vote-Gate: label-driven voting for GitHub pull requests"""
    pass


def _load_settings(config: Optional[Path], **overrides) -> config_file.Settings:
    try:
        return config_file.load_settings(config_path=config, **overrides)
    except (ValueError, VoteGateError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="DEBUG, INFO, WARNING, ERROR, CRITICAL"
    ),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file"),
    config: Optional[Path] = _CONFIG_OPTION,
):
    """
    Run the webhook server.

    Stops cleanly on SIGINT/SIGTERM.
    """
    import uvicorn

    from vote_gate.github_app import webhook_handler

    settings = _load_settings(config, host=host, port=port, log_level=log_level)
    logging_config.setup_logging(settings.log_level, log_file)

    if not settings.webhook_secret:
        console.print("[red]GITHUB_WEBHOOK_SECRET is required to verify deliveries[/red]")
        raise typer.Exit(code=1)

    webhook_handler.settings = settings
    logger.info(f"Starting Vote Gate {__version__} on http://{settings.host}:{settings.port}")
    uvicorn.run(
        webhook_handler.app,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


@app.command("init-db")
def init_db_command(config: Optional[Path] = _CONFIG_OPTION):
    """Create the check run database if it does not exist."""
    settings = _load_settings(config)
    try:
        CheckStore(settings.database_path)
    except VoteGateError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Database ready at [cyan]{settings.database_path}[/cyan]")


@app.command("checks")
def list_checks_command(
    owner: Optional[str] = typer.Option(None, "--owner", help="Filter by repository owner"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Filter by repository name"),
    sha: Optional[str] = typer.Option(None, "--sha", help="Filter by commit SHA"),
    config: Optional[Path] = _CONFIG_OPTION,
):
    """List tracked check runs."""
    settings = _load_settings(config)
    runs = CheckStore(settings.database_path).list_check_runs(owner=owner, repo=repo, head_sha=sha)

    if not runs:
        console.print("[dim]No check runs recorded.[/dim]")
        return

    table = Table()
    table.add_column("Check Run", style="cyan")
    table.add_column("Repository", style="white")
    table.add_column("Commit", style="yellow")
    table.add_column("Status", style="green")
    table.add_column("Conclusion", style="magenta")
    table.add_column("Created", style="dim")

    for run in runs:
        table.add_row(
            str(run.check_run_id),
            run.repo_full_name,
            run.head_sha[:7],
            run.status.value,
            run.conclusion.value if run.conclusion else "-",
            run.date_created,
        )

    console.print(table)


@app.command("init-config")
def init_config_command(
    path: Path = typer.Argument(
        Path(".vote-gate.yml"),
        dir_okay=False,
        help="Where to write the sample config",
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a sample configuration file."""
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists (use --force to overwrite)[/yellow]")
        raise typer.Exit(code=1)

    path.write_text(config_file.create_sample_config(), encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote sample config to [cyan]{path}[/cyan]")


if __name__ == "__main__":
    app()
