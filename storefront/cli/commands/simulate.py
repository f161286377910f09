"""Simulate command: run one business turn against the persona population."""

import copy
import logging
import time
from pathlib import Path
from threading import Event, Thread

import typer
from pydantic import ValidationError
from rich.live import Live
from rich.logging import RichHandler
from rich.spinner import Spinner
from rich.text import Text

from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, format_elapsed


_BAR_WIDTH = 20


def _build_progress_display(snap: dict, elapsed: float) -> Text:
    """Build a Rich Text renderable showing live turn progress.

    Args:
        snap: Snapshot dict from TurnProgress.snapshot()
        elapsed: Elapsed seconds since the turn started
    """
    text = Text()

    done = snap.get("personas_done", 0)
    total = snap.get("personas_total", 0)
    batch = snap.get("batch_index", 0)
    batches = snap.get("batches_total", 0)

    if total > 0:
        pct = done / total * 100
        header = (
            f"Turn {snap.get('turn_number', 0)} | "
            f"Batch {batch + 1}/{batches} | "
            f"{done}/{total} personas ({pct:.0f}%) | "
            f"{format_elapsed(elapsed)}"
        )
    else:
        header = f"Starting... | {format_elapsed(elapsed)}"
    text.append(header, style="cyan bold")

    errors = snap.get("errors", 0)
    if errors:
        text.append(f"  {errors} failed", style="red")

    counts = snap.get("decision_counts", {})
    if counts:
        counted = sum(counts.values()) or 1
        for decision, count in sorted(counts.items(), key=lambda x: -x[1]):
            pct = count / counted * 100
            filled = round(pct / 100 * _BAR_WIDTH)
            bar = "█" * filled + "░" * (_BAR_WIDTH - filled)
            text.append(f"\n  {decision:<7} {pct:>3.0f}% ", style="bold")
            text.append(bar, style="cyan")

    return text


def setup_logging(verbose: bool = False, debug: bool = False):
    """Configure logging for simulation."""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )

    for name in ["storefront.simulation", "storefront.core"]:
        logging.getLogger(name).setLevel(level)


def _format_validation_error(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
    )


def _pct(value: float) -> str:
    return f"{value:.0%}"


def _render_result(out: Output, result) -> None:
    summary = result.summary
    out.table(
        "Decisions",
        ["Decision", "Count", "Rate"],
        [
            ["Buy", str(summary.buy_count), _pct(summary.buy_rate)],
            ["Skip", str(summary.skip_count), _pct(summary.skip_rate)],
            ["Switch", str(summary.switch_count), _pct(summary.switch_rate)],
        ],
    )
    if summary.error_count:
        out.text(f"[yellow]{summary.error_count} persona(s) failed and defaulted to Skip[/yellow]")

    momentum = result.momentum
    out.blank()
    out.text(
        f"Market mood: [bold]{result.market_mood}[/bold] "
        f"(leaving {_pct(momentum.leaving)}, staying {_pct(momentum.staying)}, "
        f"switching {_pct(momentum.switching)})"
    )
    out.blank()

    out.table(
        "Archetypes",
        ["Archetype", "Buy", "Skip", "Switch", "Total"],
        [
            [name, str(c.buy), str(c.skip), str(c.switch), str(c.total)]
            for name, c in sorted(result.archetype_breakdown.items())
        ],
    )

    if result.emotion_breakdown:
        out.table(
            "Emotions",
            ["Emotion", "Count"],
            [
                [emotion, str(count)]
                for emotion, count in sorted(
                    result.emotion_breakdown.items(), key=lambda x: -x[1]
                )
            ],
        )

    health = result.brand_health
    trust = result.trust_distribution
    out.blank()
    out.text(
        f"Trust: {trust.low} low / {trust.medium} medium / {trust.high} high, "
        f"average {health.average_trust:.1f}"
    )
    out.text(
        f"Brand health: {health.permanently_gone} gone, "
        f"{health.on_last_chance} on last chance, {health.has_routine} with a routine"
    )


@app.command("simulate")
def simulate_command(
    price: float = typer.Option(..., "--price", "-p", help="Price charged this turn"),
    quality: float = typer.Option(..., "--quality", "-q", help="Quality from 1 to 10"),
    event: str = typer.Option(..., "--event", "-e", help="Event label for this turn"),
    turn: int = typer.Option(1, "--turn", "-t", help="Turn number"),
    batch_size: int | None = typer.Option(
        None, "--batch-size", "-b", help="Personas per batch (default: from config)"
    ),
    model: str = typer.Option(
        "", "--model", "-m", help="Oracle model (provider/model format)"
    ),
    db: Path | None = typer.Option(None, "--db", help="Memory database path"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed"),
    catalog: Path | None = typer.Option(None, "--catalog", help="Persona catalog YAML"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
    quiet: bool = typer.Option(False, "--quiet", help="Hide the live progress display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show INFO logs"),
    debug: bool = typer.Option(False, "--debug", help="Show DEBUG logs"),
):
    """Run one turn: every persona decides to Buy, Skip or Switch.

    Example:
        storefront simulate --price 4.50 --quality 7 --event "Summer menu"
        storefront simulate -p 6 -q 5 -e "Price hike" --turn 2 --seed 42
    """
    from ...config import get_config
    from ...core.models import TurnRequest
    from ...population import CatalogError
    from ...simulation import TurnProgress, build_engine

    setup_logging(verbose=verbose, debug=debug)

    json_mode = json_output or get_json_mode()
    out = Output(console=console, json_mode=json_mode)
    start_time = time.time()

    try:
        TurnRequest(price=price, quality=quality, event=event, turn_number=turn)
    except ValidationError as e:
        out.error(f"Invalid turn input: {_format_validation_error(e)}")
        raise typer.Exit(out.finish())

    if batch_size is not None and batch_size < 1:
        out.error("--batch-size must be at least 1")
        raise typer.Exit(out.finish())

    config = copy.deepcopy(get_config())
    if batch_size is not None:
        config.simulation.batch_size = batch_size
    if model:
        config.oracle.model = model
    if seed is not None:
        config.simulation.seed = seed

    progress = TurnProgress()
    try:
        engine = build_engine(
            config=config, db_path=db, catalog_path=catalog, progress=progress
        )
    except CatalogError as e:
        out.error(str(e), exit_code=ExitCode.FILE_NOT_FOUND)
        raise typer.Exit(out.finish())

    result = None
    turn_error: Exception | None = None

    def do_turn():
        nonlocal result, turn_error
        try:
            result = engine.run_turn(
                price=price, quality=quality, event=event, turn_number=turn
            )
        except Exception as e:
            turn_error = e

    try:
        if json_mode or quiet:
            do_turn()
        else:
            turn_done = Event()

            def _run_and_signal():
                try:
                    do_turn()
                finally:
                    turn_done.set()

            turn_thread = Thread(target=_run_and_signal, daemon=True)
            turn_thread.start()
            with Live(
                Spinner("dots", text="Starting...", style="cyan"),
                console=console,
                refresh_per_second=4,
                transient=True,
            ) as live:
                while not turn_done.is_set():
                    live.update(
                        _build_progress_display(
                            progress.snapshot(), time.time() - start_time
                        )
                    )
                    time.sleep(0.25)
            turn_thread.join()
    finally:
        engine.memory.close()

    if turn_error is not None:
        out.error(f"Simulation failed: {turn_error}", exit_code=ExitCode.SIMULATION_ERROR)
        raise typer.Exit(out.finish())

    elapsed = time.time() - start_time
    out.set_data("elapsed_seconds", round(elapsed, 2))
    out.set_data("result", result.model_dump(mode="json"))

    if not result.success:
        out.error(
            f"Turn {turn} failed: {result.error}", exit_code=ExitCode.SIMULATION_ERROR
        )
        if result.results:
            _render_result(out, result)
        raise typer.Exit(out.finish())

    if not json_mode:
        console.print()
        console.print("═" * 60)
        console.print(
            f"[green]✓[/green] Turn {turn} complete: {event} "
            f"at ${price:.2f}, quality {quality:g}/10"
        )
        console.print("═" * 60)
        console.print()
        console.print(
            f"Duration: {format_elapsed(elapsed)} "
            f"({result.metadata.batches_processed} batches)"
        )
        console.print()
        _render_result(out, result)

    raise typer.Exit(out.finish())
