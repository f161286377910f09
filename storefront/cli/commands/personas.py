"""Personas command: list the persona catalog."""

from pathlib import Path

import typer

from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output


@app.command("personas")
def personas_command(
    catalog: Path | None = typer.Option(
        None, "--catalog", help="Persona catalog YAML (default: built-in catalog)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """List the personas that take part in every turn."""
    from ...config import get_config
    from ...population import CatalogError, load_catalog

    out = Output(console=console, json_mode=json_output or get_json_mode())

    try:
        personas = load_catalog(catalog or get_config().defaults.catalog_path or None)
    except CatalogError as e:
        out.error(str(e), exit_code=ExitCode.FILE_NOT_FOUND)
        raise typer.Exit(out.finish())

    if out.json_mode:
        out.set_data("count", len(personas))
        out.set_data("personas", [p.model_dump(mode="json") for p in personas])
    else:
        out.table(
            f"Personas ({len(personas)})",
            ["ID", "Name", "Archetype", "Price Sens.", "Loyalty", "Budget"],
            [
                [
                    str(p.id),
                    p.name,
                    p.archetype.value,
                    f"{p.base_price_sensitivity:.2f}",
                    f"{p.brand_loyalty:.2f}",
                    f"${p.budget_range[0]:.0f}-${p.budget_range[1]:.0f}",
                ]
                for p in personas
            ],
        )

    raise typer.Exit(out.finish())
