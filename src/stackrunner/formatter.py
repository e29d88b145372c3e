"""Output formatters for stack events and pipeline results."""

import json
import threading

from rich.console import Console
from rich.table import Table
from rich.text import Text

from stackrunner.classifier import status_severity
from stackrunner.models import (
    EventSeverity,
    OperationResult,
    PipelineResult,
    StackEvent,
    TemplateValidation,
    UnitOutcome,
)

SEVERITY_COLORS = {
    EventSeverity.FAILURE: "red",
    EventSeverity.IN_PROGRESS: "yellow",
    EventSeverity.SUCCESS: "green",
    EventSeverity.NEUTRAL: "white",
}

# time, logical id, resource type, status, reason
EVENT_COLUMN_WIDTHS = (10, 32, 30, 46, 70)


def _escape_md_cell(value: str) -> str:
    """Escape characters that break markdown table cells."""
    return value.replace("|", "\\|").replace("\n", " ")


def events_table(events: list[StackEvent]) -> Table:
    """Build a borderless table of events with colour-coded statuses."""
    table = Table(box=None, show_header=False, pad_edge=False)
    for width in EVENT_COLUMN_WIDTHS:
        table.add_column(width=width, overflow="fold")

    for event in events:
        color = SEVERITY_COLORS[status_severity(event.status)]
        table.add_row(
            f"[{event.timestamp:%H:%M:%S}]",
            Text(event.logical_id),
            Text(event.resource_type),
            Text(event.status, style=color),
            Text(event.status_reason or ""),
        )
    return table


class EventPrinter:
    """Event observer that prints each batch of new events as a table.

    Safe to share between concurrently polled stacks: batches are printed
    whole, never interleaved.
    """

    def __init__(self, console: Console | None = None, show_stack: bool = False):
        self._console = console or Console()
        self._show_stack = show_stack
        self._lock = threading.Lock()

    def __call__(self, stack_name: str, events: list[StackEvent]) -> None:
        table = events_table(events)
        with self._lock:
            if self._show_stack:
                self._console.print(Text(stack_name, style="bold"))
            self._console.print(table)


def outcome_status(outcome: UnitOutcome) -> str:
    """Final stack status of a unit, or FAILED / VALID."""
    if outcome.error is not None:
        return "FAILED"
    if isinstance(outcome.value, OperationResult):
        return outcome.value.final_event.status
    return "VALID"


def _outcome_detail(outcome: UnitOutcome) -> str:
    if outcome.error is not None:
        return str(outcome.error)
    if isinstance(outcome.value, TemplateValidation):
        return outcome.value.description or ""
    return ""


def format_json(result: PipelineResult) -> str:
    """Format pipeline results as JSON."""
    units = []
    for outcome in result.outcomes:
        entry = {
            "identifier": outcome.unit.identifier,
            "stack_name": outcome.unit.stack_name,
            "status": outcome_status(outcome),
            "error": str(outcome.error) if outcome.error is not None else None,
        }
        if isinstance(outcome.value, OperationResult):
            entry["stack_id"] = outcome.value.stack_id
            entry["operation"] = outcome.value.kind.value
        elif isinstance(outcome.value, TemplateValidation):
            entry["description"] = outcome.value.description
            entry["parameters"] = outcome.value.parameters
            entry["capabilities"] = outcome.value.capabilities
        units.append(entry)

    return json.dumps(
        {
            "summary": {
                "total": len(result.outcomes),
                "succeeded": len(result.succeeded),
                "failed": len(result.failed),
                "halted": result.halted,
            },
            "units": units,
        },
        indent=2,
    )


def format_markdown(result: PipelineResult) -> str:
    """Format pipeline results as Markdown."""
    if not result.outcomes:
        return "No stacks processed."

    lines = [
        f"## Stack Report: {len(result.succeeded)}/{len(result.outcomes)} succeeded",
        "",
        "| Stack | Source | Status | Detail |",
        "|-------|--------|--------|--------|",
    ]
    for outcome in result.outcomes:
        lines.append(
            f"| {_escape_md_cell(outcome.unit.stack_name)} "
            f"| {_escape_md_cell(outcome.unit.identifier)} "
            f"| {outcome_status(outcome)} "
            f"| {_escape_md_cell(_outcome_detail(outcome)) or '-'} |"
        )
    if result.halted:
        lines.extend(["", "Remaining units were skipped after the first failure."])

    return "\n".join(lines)


def format_table(result: PipelineResult) -> str:
    """Format pipeline results as a Rich table, returned as a string."""
    if not result.outcomes:
        return "No stacks processed."

    console = Console(record=True, width=120)
    table = Table(title="Stack Report")
    table.add_column("Stack")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("Detail", overflow="fold")

    for outcome in result.outcomes:
        style = "green" if outcome.ok else "red"
        table.add_row(
            Text(outcome.unit.stack_name),
            Text(outcome.unit.identifier),
            Text(outcome_status(outcome), style=style),
            Text(_outcome_detail(outcome)),
        )

    console.print(table)
    if result.halted:
        console.print("Remaining units were skipped after the first failure.")
    return console.export_text()
