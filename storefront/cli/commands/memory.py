"""Memory command: show what a persona remembers about the business."""

from pathlib import Path

import typer

from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output


def _money(value: float | None) -> str:
    return f"${value:.2f}" if value is not None else "-"


@app.command("memory")
def memory_command(
    persona_id: int = typer.Argument(..., help="Persona id"),
    db: Path | None = typer.Option(None, "--db", help="Memory database path"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Show a persona's memory snapshot.

    Example:
        storefront memory 7
        storefront memory 7 --db ./storage/cafe.db --json
    """
    from ...config import get_config
    from ...simulation import MemoryStore

    out = Output(console=console, json_mode=json_output or get_json_mode())
    config = get_config()
    db_path = db or Path(config.defaults.db_path)

    if not db_path.exists():
        out.error(
            f"No memory store at {db_path}",
            suggestion="Run 'storefront simulate' first",
            exit_code=ExitCode.FILE_NOT_FOUND,
        )
        raise typer.Exit(out.finish())

    store = MemoryStore(db_path, policy=config.policy)
    try:
        if persona_id not in store.persona_ids():
            out.error(
                f"No memory for persona {persona_id}",
                exit_code=ExitCode.FILE_NOT_FOUND,
            )
            raise typer.Exit(out.finish())
        state = store.snapshot(persona_id)
    finally:
        store.close()

    out.set_data("persona_id", persona_id)
    out.set_data("memory", state.model_dump(mode="json"))

    if not out.json_mode:
        stats = state.lifetime_stats
        anchors = state.price_anchoring
        flags = state.flags
        exp = state.experience_tracking

        console.print()
        console.print(f"[bold]Persona {persona_id}[/bold]  trust {state.trust_score}/100")
        status = []
        if flags.is_permanently_gone:
            status.append("[red]permanently gone[/red]")
        elif flags.is_on_last_chance:
            status.append("[yellow]on last chance[/yellow]")
        if exp.has_routine:
            status.append("[green]has routine[/green]")
        if status:
            console.print("  " + ", ".join(status))
        console.print()
        console.print(
            f"Visits: {stats.total_visits} "
            f"(buy {stats.total_buys}, skip {stats.total_skips}, "
            f"switch {stats.total_switches}), spent {_money(stats.total_spent)}"
        )
        console.print(
            f"Prices: first {_money(anchors.initial_price)}, "
            f"last paid {_money(anchors.last_price_paid)}, "
            f"range {_money(anchors.lowest_price_seen)}-{_money(anchors.highest_price_seen)}"
        )
        if exp.peak_experience:
            peak = exp.peak_experience
            console.print(
                f"Peak: quality {peak.quality:g}/10 at {_money(peak.price)} (turn {peak.turn})"
            )
        console.print()

        if state.visit_history:
            out.table(
                "Recent Visits",
                ["Turn", "Decision", "Price", "Quality", "Emotion"],
                [
                    [
                        str(v.turn),
                        v.decision.value,
                        _money(v.price),
                        f"{v.quality:g}",
                        v.emotion,
                    ]
                    for v in state.visit_history
                ],
            )

    raise typer.Exit(out.finish())
