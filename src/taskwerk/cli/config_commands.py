"""
Configuration commands for the taskwerk CLI.

Every command goes through the public ConfigManager accessors; anything that
prints configuration values uses the masked views so secrets never reach
the terminal.
"""

import json
import logging
from typing import Any, Dict

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from taskwerk.core.config import (
    ConfigManager,
    ConfigurationError,
    ConfigValidationError,
    check_permissions,
    export_to_env,
    flatten,
    get_config_manager,
    get_in,
    lookup_node,
    mask_sensitive,
    parse_value,
)
from taskwerk.core.config.persistence import load_layer
from taskwerk.core.config.registry import has_in, set_in
from .exit_codes import CliExit

logger = logging.getLogger(__name__)
console = Console(soft_wrap=True)

config_app = typer.Typer(
    name="config",
    help="Manage taskwerk configuration",
    no_args_is_help=True,
)

def _manager(ctx: typer.Context) -> ConfigManager:
    obj = ctx.find_root().obj
    if isinstance(obj, ConfigManager):
        return obj
    return get_config_manager()


def _fail(error: Exception) -> CliExit:
    """Report a configuration error and build the exit to raise."""
    logger.debug("Configuration command failed: %s", error)
    console.print(f"[red]Error: {escape(getattr(error, 'message', str(error)))}[/red]")
    if isinstance(error, ConfigValidationError):
        for violation in error.violations:
            console.print(f"  - {escape(violation.message)}")
    return CliExit.config_error()


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _layer_data(manager: ConfigManager, layer: str) -> Dict[str, Any]:
    if layer == "global":
        return manager.get_global_masked()
    if layer == "local":
        return manager.get_local_masked()
    return manager.get_masked()


@config_app.command("show")
def show_config(
    ctx: typer.Context,
    layer: str = typer.Option(
        "merged", "--layer", "-l", help="Which view to show (merged, global, local)"
    ),
    sources: bool = typer.Option(
        False,
        "--sources",
        "-s",
        help="Show the layer each effective value comes from (merged view only)",
    ),
    format: str = typer.Option(
        "table", "--format", "-f", help="Output format (table, json, yaml)"
    ),
):
    """Show configuration with sensitive values masked."""
    if layer not in ("merged", "global", "local"):
        raise CliExit.error(f"Unknown layer '{layer}' (expected merged, global or local)")
    if format not in ("table", "json", "yaml"):
        raise CliExit.error(f"Unknown format '{format}' (expected table, json or yaml)")
    if sources and layer != "merged":
        raise CliExit.error("--sources only applies to the merged view")

    manager = _manager(ctx)
    try:
        data = _layer_data(manager, layer)
        annotated = manager.get_with_sources(masked=True) if sources else None
    except ConfigurationError as e:
        raise _fail(e)

    if format in ("json", "yaml"):
        # Round-trip through JSON so layer enums become plain strings.
        payload = json.loads(json.dumps(annotated if annotated is not None else data))
        if format == "json":
            typer.echo(json.dumps(payload, indent=2))
        else:
            typer.echo(yaml.safe_dump(payload, default_flow_style=False, sort_keys=False))
        return

    schema = manager.schema
    table = Table(title=f"taskwerk configuration ({layer})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    if sources:
        table.add_column("Source", style="magenta")
    for key, value in flatten(data, schema=schema).items():
        row = [key, escape(_render(value))]
        if sources:
            row.append(manager.get_source(key).value)
        table.add_row(*row)
    console.print(table)


@config_app.command("get")
def get_value(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Dotted configuration key, e.g. general.defaultPriority"),
):
    """Print one effective configuration value."""
    manager = _manager(ctx)
    try:
        masked = manager.get_masked()
        found = has_in(masked, key)
    except (ConfigurationError, ValueError) as e:
        raise _fail(e)
    if not found:
        raise CliExit.error(f"Configuration key '{key}' is not set")
    typer.echo(_render(get_in(masked, key)))


@config_app.command("set")
def set_value(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Dotted configuration key"),
    value: str = typer.Argument(..., help="New value (coerced to the field's type)"),
    global_: bool = typer.Option(
        False, "--global", "-g", help="Write to the per-user configuration"
    ),
):
    """Set a value in the local (or global) configuration and save it."""
    manager = _manager(ctx)
    try:
        parsed = parse_value(value, lookup_node(key))
        manager.set(key, parsed, to_global=global_)
        manager.save(to_global=global_)
    except (ConfigurationError, ValueError) as e:
        raise _fail(e)

    single: Dict[str, Any] = {}
    set_in(single, key, parsed)
    shown = get_in(mask_sensitive(single, manager.schema), key)
    target = "global" if global_ else "local"
    console.print(f"[green]Set {escape(key)} = {escape(_render(shown))} ({target})[/green]")


@config_app.command("unset")
def unset_value(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Dotted configuration key"),
    global_: bool = typer.Option(
        False, "--global", "-g", help="Remove from the per-user configuration"
    ),
):
    """Remove a value from the local (or global) configuration."""
    manager = _manager(ctx)
    target = "global" if global_ else "local"
    try:
        removed = manager.delete(key, from_global=global_)
        if removed:
            manager.save(to_global=global_)
    except (ConfigurationError, ValueError) as e:
        raise _fail(e)
    if not removed:
        raise CliExit.error(f"Configuration key '{key}' is not set in the {target} configuration")
    source = manager.get_source(key).value
    console.print(f"[green]Removed {escape(key)} from {target} configuration[/green] (now from {source})")


@config_app.command("path")
def show_paths(ctx: typer.Context):
    """Show where the global and local configuration files live."""
    manager = _manager(ctx)
    for label, path in (("global", manager.global_path), ("local", manager.local_path)):
        state = "exists" if path.exists() else "not created"
        console.print(f"{label}: {escape(str(path))} ({state})")


@config_app.command("env")
def show_env(
    ctx: typer.Context,
    comments: bool = typer.Option(True, "--comments/--no-comments", help="Include descriptions"),
):
    """Print the effective configuration as TASKWERK_* export lines."""
    manager = _manager(ctx)
    try:
        typer.echo(export_to_env(manager.get_masked(), include_comments=comments))
    except ConfigurationError as e:
        raise _fail(e)


@config_app.command("migrate")
def migrate(ctx: typer.Context):
    """Move the local configuration into the global one."""
    manager = _manager(ctx)
    try:
        manager.migrate_to_global()
    except ConfigurationError as e:
        raise _fail(e)
    console.print(f"[green]Migrated local configuration to {escape(str(manager.global_path))}[/green]")


@config_app.command("copy-from-global")
def copy_from_global(ctx: typer.Context):
    """Copy the global configuration into the local one."""
    manager = _manager(ctx)
    try:
        manager.copy_from_global()
    except ConfigurationError as e:
        raise _fail(e)
    console.print(f"[green]Copied global configuration to {escape(str(manager.local_path))}[/green]")


@config_app.command("clear")
def clear(
    ctx: typer.Context,
    global_: bool = typer.Option(False, "--global", "-g", help="Clear the per-user configuration"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Reset the local (or global) configuration to empty."""
    target = "global" if global_ else "local"
    if not yes:
        try:
            typer.confirm(f"Clear the {target} configuration?", abort=True)
        except typer.Abort:
            raise CliExit.user_cancel()
    manager = _manager(ctx)
    try:
        manager.clear(to_global=global_)
    except ConfigurationError as e:
        raise _fail(e)
    console.print(f"[green]Cleared {target} configuration[/green]")


@config_app.command("check")
def check(ctx: typer.Context):
    """Check configuration files for insecure permissions."""
    manager = _manager(ctx)
    try:
        # On-disk content: placeholders only count once a secret is stored inline.
        findings = [
            path
            for path in (manager.global_path, manager.local_path)
            if check_permissions(path, load_layer(path, schema=manager.schema), manager.schema)
        ]
    except ConfigurationError as e:
        raise _fail(e)

    if not findings:
        console.print("[green]Configuration file permissions look fine[/green]")
        return
    for path in findings:
        console.print(
            f"[yellow]{escape(str(path))} is readable by other users. "
            f'Run: chmod 600 "{escape(str(path))}"[/yellow]'
        )
    raise CliExit.error()
