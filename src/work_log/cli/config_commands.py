"""CLI commands for configuration management."""

import json
import shutil
import sys
from pathlib import Path
from typing import Any, Optional

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.markup import escape  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from work_log.core.config import ConfigManager

console = Console()
error_console = Console(stderr=True)


def get_config_manager(ctx: click.Context) -> ConfigManager:
    """Load the configuration selected by the top-level --config option."""
    obj = ctx.find_object(dict) or {}
    config_path: Optional[str] = obj.get("config_path")
    try:
        return ConfigManager(Path(config_path) if config_path else None)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(2)


@click.group()  # type: ignore[misc]
def config() -> None:
    """Manage work log configuration.

    Configuration is stored in ~/.work-log/config.yml unless --config or
    WORK_CONFIG points elsewhere.
    """
    pass


@config.command("show")  # type: ignore[misc]
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show all configuration settings.

    Example:
        work config show
        work config show --json
    """
    config_mgr = get_config_manager(ctx)

    if as_json:
        click.echo(json.dumps(config_mgr.to_dict(), indent=2))
        return

    table = Table(title="Work Log Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    def add_rows(prefix: str, data: dict[str, Any]) -> None:
        """Recursively add configuration rows."""
        for key, value in data.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                add_rows(full_key, value)
            else:
                table.add_row(full_key, escape(str(value)))

    add_rows("", config_mgr.to_dict())
    console.print(table)
    console.print(f"\nConfig file: {escape(str(config_mgr.config_path))}")


@config.command("get")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_get(ctx: click.Context, key: str) -> None:
    """Get a specific configuration value.

    Uses dot notation to access nested values.

    Example:
        work config get general.week_start
    """
    config_mgr = get_config_manager(ctx)
    value = config_mgr.get(key)

    if value is None:
        error_console.print(f"[red]Error:[/red] Configuration key '{escape(key)}' not found")
        sys.exit(1)

    if isinstance(value, dict):
        click.echo(json.dumps(value, indent=2))
    else:
        click.echo(str(value))


@config.command("set")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.argument("value")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value.

    Use 'true'/'false' for booleans.

    Example:
        work config set general.week_start sunday
        work config set display.time_format hours
    """
    config_mgr = get_config_manager(ctx)

    converted_value: Any = value
    if value.lower() in ("true", "yes"):
        converted_value = True
    elif value.lower() in ("false", "no"):
        converted_value = False

    try:
        config_mgr.set(key, converted_value)
        console.print(f"[green]✓[/green] Set {escape(key)} = {escape(str(converted_value))}")
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(2)


@config.command("reset")  # type: ignore[misc]
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_reset(ctx: click.Context, yes: bool) -> None:
    """Reset configuration to defaults.

    The current file is backed up next to it first.

    Example:
        work config reset --yes
    """
    obj = ctx.find_object(dict) or {}
    config_path = Path(obj["config_path"]) if obj.get("config_path") else None

    if not yes:
        console.print("[yellow]Warning:[/yellow] This will reset all configuration to defaults.")
        if not click.confirm("Continue?"):
            console.print("Cancelled")
            return

    # Reset without loading, so a broken file can still be replaced
    target = (config_path or ConfigManager.default_path()).expanduser()
    if target.exists():
        backup_path = target.with_suffix(".yml.backup")
        shutil.copy(target, backup_path)
        target.unlink()
        console.print(f"Backed up current config to {escape(str(backup_path))}")

    config_mgr = ConfigManager(target)
    console.print("[green]✓[/green] Configuration reset to defaults")
    console.print(f"Config file: {escape(str(config_mgr.config_path))}")


@config.command("path")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_path(ctx: click.Context) -> None:
    """Show path to configuration file.

    Example:
        work config path
    """
    obj = ctx.find_object(dict) or {}
    path = obj.get("config_path")
    click.echo(str(Path(path).expanduser() if path else ConfigManager.default_path()))
