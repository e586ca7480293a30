"""Config command for viewing and managing layerforge configuration."""

import json
from dataclasses import fields

import typer

from ..app import app, console, get_json_mode
from ...config import (
    CONFIG_FILE,
    ENV_VARS,
    GenerationSettings,
    SessionSettings,
    StorageSettings,
    get_config,
    reset_config,
    set_value,
)

_SECTIONS = {
    "generation": GenerationSettings,
    "storage": StorageSettings,
    "sessions": SessionSettings,
}

VALID_KEYS = {
    f"{section}.{f.name}" for section, cls in _SECTIONS.items() for f in fields(cls)
}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. generation.batch_size, storage.base_url)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify layerforge configuration.

    Examples:
        layerforge config show
        layerforge config set generation.batch_size 50
        layerforge config set storage.base_url https://cdn.example.com/art
        layerforge config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] layerforge config set <key> <value>")
            console.print()
            _print_valid_keys()
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _print_valid_keys():
    console.print("Available keys:")
    for k in sorted(VALID_KEYS):
        console.print(f"  {k}")


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    if get_json_mode():
        print(
            json.dumps(
                {"config": config.to_dict(), "config_file": str(CONFIG_FILE)}, indent=2
            )
        )
        return

    console.print()
    console.print("[bold]Layerforge Configuration[/bold]")
    console.print("─" * 40)

    env_by_key = {f"{s}.{k}": env for env, (s, k) in ENV_VARS.items()}
    for section, values in config.to_dict().items():
        console.print()
        console.print(f"[bold cyan]{section.capitalize()}[/bold cyan]")
        width = max(len(k) for k in values)
        for k, v in values.items():
            shown = v if v != "" else "[dim](unset)[/dim]"
            env = env_by_key.get(f"{section}.{k}")
            hint = f"  [dim]${env}[/dim]" if env else ""
            console.print(f"  {k:<{width}} = {shown}{hint}")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print()
        _print_valid_keys()
        raise typer.Exit(1)

    config = get_config()
    section, field_name = key.split(".", 1)
    try:
        set_value(config, section, field_name, value)
    except ValueError:
        console.print(f"[red]Invalid integer value:[/red] {value}")
        raise typer.Exit(1)

    config.save()
    reset_config()  # Clear cached singleton so next get_config() reloads

    console.print(f"[green]✓[/green] Set {key} = {value}")
    console.print(f"  Saved to {CONFIG_FILE}")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        reset_config()
        console.print("[green]✓[/green] Config reset to defaults")
        console.print(f"  Removed {CONFIG_FILE}")
    else:
        console.print("Config already at defaults (no config file exists)")
