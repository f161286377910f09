"""Config command for viewing and managing storefront configuration."""

import typer

from ..app import app, console
from ...config import (
    CONFIG_FILE,
    CustomProviderConfig,
    get_api_key_for_provider,
    get_config,
    reset_config,
)


VALID_KEYS = {
    "oracle.model",
    "oracle.timeout_seconds",
    "oracle.max_retries",
    "oracle.max_tokens",
    "simulation.batch_size",
    "simulation.max_concurrent",
    "simulation.seed",
    "defaults.db_path",
    "defaults.catalog_path",
}

INT_FIELDS = {
    "max_retries",
    "max_tokens",
    "batch_size",
    "max_concurrent",
    "seed",
}

FLOAT_FIELDS = {"timeout_seconds"}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. oracle.model, simulation.batch_size)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify storefront configuration.

    Examples:
        storefront config show
        storefront config set oracle.model anthropic/claude-haiku-4-5-20251001
        storefront config set simulation.batch_size 5
        storefront config set providers.local.base_url http://localhost:8000/v1
        storefront config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] storefront config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    console.print()
    console.print("[bold]Storefront Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Oracle[/bold cyan] (persona decisions)")
    console.print(f"  model           = {config.oracle.model}")
    console.print(f"  timeout_seconds = {config.oracle.timeout_seconds}")
    console.print(f"  max_retries     = {config.oracle.max_retries}")
    console.print(f"  max_tokens      = {config.oracle.max_tokens}")

    console.print()
    console.print("[bold cyan]Simulation[/bold cyan]")
    console.print(f"  batch_size      = {config.simulation.batch_size}")
    console.print(f"  max_concurrent  = {config.simulation.max_concurrent}")
    seed = config.simulation.seed
    console.print(f"  seed            = {seed if seed is not None else '[dim](random)[/dim]'}")

    if config.providers:
        console.print()
        console.print("[bold cyan]Custom Providers[/bold cyan]")
        for name, provider_cfg in config.providers.items():
            console.print(f"  {name}:")
            console.print(f"    base_url    = {provider_cfg.base_url}")
            if provider_cfg.api_key_env:
                console.print(f"    api_key_env = {provider_cfg.api_key_env}")

    console.print()
    console.print("[bold cyan]Defaults[/bold cyan]")
    console.print(f"  db_path         = {config.defaults.db_path}")
    catalog = config.defaults.catalog_path or "[dim](built-in)[/dim]"
    console.print(f"  catalog_path    = {catalog}")

    console.print()
    console.print("[bold cyan]API Keys[/bold cyan] (from env vars)")
    _show_key_status("openai", "OPENAI_API_KEY")
    _show_key_status("anthropic", "ANTHROPIC_API_KEY")
    _show_key_status("gemini", "GEMINI_API_KEY")
    _show_key_status("openrouter", "OPENROUTER_API_KEY")
    _show_key_status("deepseek", "DEEPSEEK_API_KEY")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _show_key_status(provider: str, env_var_label: str):
    key = get_api_key_for_provider(provider)
    if key:
        masked = key[:8] + "..." + key[-4:] if len(key) > 16 else "***"
        console.print(f"  {env_var_label}: [green]{masked}[/green]")
    else:
        console.print(f"  {env_var_label}: [dim]not set[/dim]")


def _set_config(key: str, value: str):
    """Set a config value and save."""
    is_provider_key = key.startswith("providers.")
    if key not in VALID_KEYS and not is_provider_key:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print()
        console.print("Available keys:")
        for k in sorted(VALID_KEYS):
            console.print(f"  {k}")
        console.print("  providers.<name>.base_url")
        console.print("  providers.<name>.api_key_env")
        raise typer.Exit(1)

    config = get_config()

    if is_provider_key:
        parts = key.split(".", 2)
        if len(parts) != 3 or parts[2] not in ("base_url", "api_key_env"):
            console.print(
                f"[red]Invalid provider key:[/red] {key}\n"
                "Expected: providers.<name>.base_url or providers.<name>.api_key_env"
            )
            raise typer.Exit(1)
        provider_name = parts[1]
        if provider_name not in config.providers:
            config.providers[provider_name] = CustomProviderConfig()
        setattr(config.providers[provider_name], parts[2], value)
    else:
        zone, field_name = key.split(".", 1)
        target = {
            "oracle": config.oracle,
            "simulation": config.simulation,
            "defaults": config.defaults,
        }[zone]

        try:
            if field_name in INT_FIELDS:
                setattr(target, field_name, int(value))
            elif field_name in FLOAT_FIELDS:
                setattr(target, field_name, float(value))
            else:
                setattr(target, field_name, value)
        except ValueError:
            console.print(f"[red]Invalid numeric value:[/red] {value}")
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
