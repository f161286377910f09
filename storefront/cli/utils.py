"""Shared CLI helpers: exit codes and the human/JSON ``Output`` printer."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, PrivateAttr
from rich.console import Console
from rich.table import Table


class ExitCode:
    """Process exit codes.

        0 = Success
        1 = Validation error (bad input or config key)
        3 = File not found (catalog, memory store)
        6 = Simulation error (empty catalog, every oracle call failed)
        10 = User cancelled
    """

    SUCCESS = 0
    VALIDATION_ERROR = 1
    FILE_NOT_FOUND = 3
    SIMULATION_ERROR = 6
    USER_CANCELLED = 10


class Output(BaseModel):
    """Prints Rich output for people, or gathers one JSON document for ``--json``.

    Commands make the same calls in both modes and end with
    ``raise typer.Exit(out.finish())``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    console: Console
    json_mode: bool = False

    _payload: dict[str, Any] = PrivateAttr(
        default_factory=lambda: {"status": "success", "errors": []}
    )
    _code: int = PrivateAttr(default=ExitCode.SUCCESS)

    def _say(self, markup: str) -> None:
        if not self.json_mode:
            self.console.print(markup)

    def success(self, message: str, **data: Any) -> None:
        self._payload.update(data)
        self._say(f"[green]✓[/green] {message}")

    def error(
        self,
        message: str,
        *,
        suggestion: str | None = None,
        exit_code: int = ExitCode.VALIDATION_ERROR,
    ) -> None:
        """Record a failure; the last one sets the exit code."""
        self._code = exit_code
        self._payload["status"] = "error"
        entry = {"message": message}
        if suggestion:
            entry["suggestion"] = suggestion
        self._payload["errors"].append(entry)

        self._say(f"[red]✗[/red] {message}")
        if suggestion:
            self._say(f"  [dim]→ {suggestion}[/dim]")

    def text(self, message: str) -> None:
        self._say(message)

    def blank(self) -> None:
        self._say("")

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        *,
        data_key: str | None = None,
    ) -> None:
        """Render a table, or store its rows as dicts keyed by column.

        In JSON mode rows go under ``data_key``, which defaults to the
        snake_cased title.
        """
        if self.json_mode:
            key = data_key or title.lower().replace(" ", "_")
            self._payload[key] = [dict(zip(columns, row)) for row in rows]
            return

        table = Table(title=title, header_style="bold")
        table.add_column(columns[0])
        for column in columns[1:]:
            table.add_column(column, justify="right")
        for row in rows:
            table.add_row(*row)
        self.console.print(table)

    def set_data(self, key: str, value: Any) -> None:
        self._payload[key] = value

    def finish(self) -> int:
        """Print the JSON document (JSON mode) and return the exit code."""
        if self.json_mode:
            document = {**self._payload, "exit_code": self._code}
            print(json.dumps(document, indent=2, default=str))
        return self._code


def format_elapsed(seconds: float) -> str:
    """``75`` -> ``1m 15s``; under a minute -> ``42s``."""
    minutes, secs = divmod(int(seconds), 60)
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{seconds:.0f}s"
