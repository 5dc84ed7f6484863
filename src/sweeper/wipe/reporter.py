"""Wipe run reporter with multiple output formats."""

from __future__ import annotations

import json
from enum import Enum
from typing import Sequence

import yaml
from rich.console import Console
from rich.table import Table

from ..models.deletion_result import DeletionOutcome, DeletionResult


class OutputFormat(Enum):
    """Report output format."""

    STRING = "string"
    JSON = "json"
    YAML = "yaml"

    @classmethod
    def parse(cls, value: str) -> "OutputFormat":
        """Parse a format name case-insensitively.

        Raises:
            ValueError: If the name is not a supported format
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = ", ".join(f.value for f in cls)
            raise ValueError(f"Unsupported output format {value!r} (allowed: {allowed})") from None


class WipeReporter:
    """Render deletion results as plain text, JSON or YAML."""

    def __init__(self, width: int = 160) -> None:
        """Initialize reporter.

        Args:
            width: Terminal width used for the plain-text table
        """
        self.width = width

    def render(self, results: Sequence[DeletionResult], fmt: OutputFormat = OutputFormat.STRING) -> str:
        """Render results in the requested format.

        Every result is rendered exactly once, in the given order.

        Args:
            results: Deletion results in execution order
            fmt: Output format

        Returns:
            Rendered report
        """
        if fmt == OutputFormat.JSON:
            return json.dumps(self.to_document(results), indent=2)
        if fmt == OutputFormat.YAML:
            return yaml.safe_dump(self.to_document(results), default_flow_style=False, sort_keys=False)
        return self.format_text(results)

    def to_document(self, results: Sequence[DeletionResult]) -> dict:
        """Build the serializable report structure."""
        return {
            "results": [result.to_dict() for result in results],
            "summary": self.generate_summary(results),
        }

    def format_text(self, results: Sequence[DeletionResult]) -> str:
        """Format results as a plain table followed by a summary line."""
        if not results:
            return "No resources matched the filter.\n"

        table = Table(title="Wipe Results")
        table.add_column("Type", overflow="fold")
        table.add_column("ID", overflow="fold")
        table.add_column("Name", overflow="fold")
        table.add_column("Outcome")
        table.add_column("Attempts", justify="right")
        table.add_column("Error", overflow="fold")

        for result in results:
            table.add_row(
                result.resource.resource_type,
                result.resource.resource_id,
                result.resource.name,
                result.outcome.value,
                str(result.attempts),
                result.error or "",
            )

        summary = self.generate_summary(results)
        summary_line = ", ".join(f"{outcome}: {count}" for outcome, count in summary["outcomes"].items() if count)

        console = Console(width=self.width, no_color=True, highlight=False, markup=False, force_terminal=False)
        with console.capture() as capture:
            console.print(table)
            console.print(f"Total: {summary['total']} ({summary_line})")

        return capture.get()

    def generate_summary(self, results: Sequence[DeletionResult]) -> dict:
        """Generate summary counts per outcome.

        Args:
            results: Deletion results

        Returns:
            Dictionary with the total and a count for every outcome
        """
        counts = {outcome.value: 0 for outcome in DeletionOutcome}
        for result in results:
            counts[result.outcome.value] += 1

        return {
            "total": len(results),
            "outcomes": counts,
        }


def render(results: Sequence[DeletionResult], fmt: OutputFormat = OutputFormat.STRING) -> str:
    """Render results with a default reporter."""
    return WipeReporter().render(results, fmt)
