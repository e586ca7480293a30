"""Dual-mode CLI output: rich tables for people, one JSON document for scripts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, PrivateAttr
from rich.console import Console
from rich.table import Table

from ..core.models import LayerStore, ValidationIssue, ValidationResult
from ..sessions import extract_layers, extract_layers_from_directory


class ExitCode:
    """Process exit codes.

        0 = Success
        1 = Invalid layers, config or arguments
        3 = Input file not found
        4 = Generation failed
    """

    SUCCESS = 0
    VALIDATION_ERROR = 1
    FILE_NOT_FOUND = 3
    GENERATION_ERROR = 4


class Output(BaseModel):
    """Collects a command's results and prints them for the chosen mode.

    Human mode prints as it goes. JSON mode accumulates everything and
    finish() prints a single document with status, errors and warnings.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    console: Console
    json_mode: bool = False

    _data: dict[str, Any] = PrivateAttr()
    _exit_code: int = PrivateAttr(default=ExitCode.SUCCESS)

    def model_post_init(self, __context: Any) -> None:
        self._data = {"status": "success", "warnings": [], "errors": []}

    def success(self, message: str, **data: Any) -> None:
        if self.json_mode:
            self._data.update(data)
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str, exit_code: int = ExitCode.VALIDATION_ERROR) -> None:
        """Record a failure; finish() will return `exit_code`."""
        self._fail(exit_code)
        if self.json_mode:
            self._data["errors"].append({"message": message})
        else:
            self.console.print(f"[red]✗[/red] {message}")

    def validation(self, result: ValidationResult) -> None:
        """Report every error and warning of a ValidationResult."""
        if result.errors:
            self._fail(ExitCode.VALIDATION_ERROR)
        for issue in result.errors:
            self._issue("errors", "[red]✗[/red]", issue)
        for issue in result.warnings:
            self._issue("warnings", "[yellow]⚠[/yellow]", issue)

    def _fail(self, exit_code: int) -> None:
        self._exit_code = exit_code
        self._data["status"] = "error"

    def _issue(self, key: str, marker: str, issue: ValidationIssue) -> None:
        if self.json_mode:
            entry = {"message": issue.message, "category": issue.category}
            if issue.location:
                entry["location"] = issue.location
            if issue.suggestion:
                entry["suggestion"] = issue.suggestion
            self._data[key].append(entry)
            return
        self.console.print(f"{marker} {issue.message}")
        if issue.suggestion:
            self.console.print(f"  [dim]→ {issue.suggestion}[/dim]")

    def text(self, message: str) -> None:
        if not self.json_mode:
            self.console.print(message)

    def divider(self) -> None:
        if not self.json_mode:
            self.console.print("═" * 60)

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        data_key: str | None = None,
    ) -> None:
        """Print a table, or store its rows as dicts under `data_key` in JSON mode."""
        if self.json_mode:
            key = data_key or title.lower().replace(" ", "_")
            self._data[key] = [dict(zip(columns, row)) for row in rows]
            return

        table = Table(title=title, show_header=True, header_style="bold")
        for i, column in enumerate(columns):
            table.add_column(column, justify="right" if i else "left")
        for row in rows:
            table.add_row(*row)
        self.console.print(table)

    def set_data(self, key: str, value: Any) -> None:
        self._data[key] = value

    def finish(self) -> int:
        """Print the JSON document (JSON mode) and return the exit code."""
        if self.json_mode:
            self._data["exit_code"] = self._exit_code
            print(json.dumps(self._data, indent=2, default=str))
        return self._exit_code


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as Xm Ys or Xs."""
    if seconds >= 60:
        mins = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{mins}m {secs}s"
    return f"{seconds:.0f}s"


def load_layer_source(path: Path) -> LayerStore:
    """Extract layers from a ZIP archive or an unpacked layer directory.

    Raises:
        ExtractionError: If the path is neither a readable archive nor a directory
    """
    if path.is_dir():
        return extract_layers_from_directory(path)
    return extract_layers(path.read_bytes())
