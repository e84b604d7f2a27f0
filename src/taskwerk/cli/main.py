"""
Command-line entry point for taskwerk.

The root callback builds the process-wide ConfigManager, installs it for
the rest of the process and configures logging from the ``developer``
section before any subcommand runs.
"""

import sys
from typing import Optional

import typer

from taskwerk import __version__
from taskwerk.core.config import ConfigManager, ConfigurationError, set_config_manager
from taskwerk.core.utils.logger import get_logger, setup_logging
from taskwerk.core.utils.paths import ensure_dir, expand_user_path

from .config_commands import config_app
from .exit_codes import EXIT_USER_CANCEL

LOG_FILENAME = "taskwerk.log"

app = typer.Typer(
    name="taskwerk",
    help="taskwerk - task management for the command line",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config", help="Configuration commands")


def _configure_logging(manager: ConfigManager, log_level: Optional[str]) -> None:
    """Apply ``developer.*`` logging settings; fall back to defaults if config is unusable."""
    try:
        developer = manager.get("developer", {}) or {}
    except ConfigurationError as e:
        setup_logging(level=log_level or "info")
        get_logger().debug(f"Logging uses defaults, configuration could not be read: {e}")
        return

    log_file = None
    if developer.get("logFile"):
        log_dir = expand_user_path(developer.get("logDirectory") or "~/.taskwerk/logs")
        if ensure_dir(log_dir):
            log_file = str(log_dir / LOG_FILENAME)

    setup_logging(
        level=log_level or developer.get("logLevel", "info"),
        log_file=log_file,
        console=bool(developer.get("logConsole", True)),
    )


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"taskwerk {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (error, warn, info, debug, trace)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
):
    """taskwerk - task management for the command line"""
    manager = ConfigManager()
    set_config_manager(manager)
    _configure_logging(manager, log_level)
    ctx.obj = manager


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("\nCancelled.", err=True)
        sys.exit(EXIT_USER_CANCEL)
