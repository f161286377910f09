"""Reset command: forget every persona's memory."""

from pathlib import Path

import typer

from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output


@app.command("reset")
def reset_command(
    db: Path | None = typer.Option(None, "--db", help="Memory database path"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Reset all persona memory. Trust, history and flags are lost."""
    from ...config import get_config
    from ...simulation import MemoryStore

    out = Output(console=console, json_mode=get_json_mode())
    config = get_config()
    db_path = db or Path(config.defaults.db_path)

    if not db_path.exists():
        out.success("Nothing to reset", db_path=str(db_path), reset=False)
        raise typer.Exit(out.finish())

    if not yes:
        if out.json_mode:
            out.error("Refusing to reset without --yes in JSON mode")
            raise typer.Exit(out.finish())
        if not typer.confirm(f"Reset all persona memory in {db_path}?"):
            out.error("Cancelled", exit_code=ExitCode.USER_CANCELLED)
            raise typer.Exit(out.finish())

    store = MemoryStore(db_path, policy=config.policy)
    try:
        store.reset_all()
    finally:
        store.close()

    out.success(f"Memory reset ({db_path})", db_path=str(db_path), reset=True)
    raise typer.Exit(out.finish())
