"""Core data models for CloudFormation stack operations."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

CREATE_TERMINAL_STATUSES = frozenset(
    {
        "CREATE_COMPLETE",
        "CREATE_FAILED",
        "ROLLBACK_COMPLETE",
        "ROLLBACK_FAILED",
        "DELETE_FAILED",
        "DELETE_COMPLETE",
    }
)
UPDATE_TERMINAL_STATUSES = frozenset(
    {
        "UPDATE_COMPLETE",
        "UPDATE_ROLLBACK_COMPLETE",
        "UPDATE_ROLLBACK_FAILED",
        "DELETE_FAILED",
        "DELETE_COMPLETE",
    }
)
DELETE_TERMINAL_STATUSES = frozenset({"DELETE_FAILED", "DELETE_COMPLETE"})


class OperationKind(StrEnum):
    """Kind of stack operation submitted to CloudFormation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def terminal_statuses(self) -> frozenset[str]:
        return _TERMINAL_STATUSES[self]

    @property
    def success_status(self) -> str:
        return _SUCCESS_STATUSES[self]

    @property
    def noun(self) -> str:
        """Noun used in progress log lines, e.g. "creation"."""
        return _NOUNS[self]


_TERMINAL_STATUSES = {
    OperationKind.CREATE: CREATE_TERMINAL_STATUSES,
    OperationKind.UPDATE: UPDATE_TERMINAL_STATUSES,
    OperationKind.DELETE: DELETE_TERMINAL_STATUSES,
}

_SUCCESS_STATUSES = {
    OperationKind.CREATE: "CREATE_COMPLETE",
    OperationKind.UPDATE: "UPDATE_COMPLETE",
    OperationKind.DELETE: "DELETE_COMPLETE",
}

_NOUNS = {
    OperationKind.CREATE: "creation",
    OperationKind.UPDATE: "update",
    OperationKind.DELETE: "deletion",
}


class EventSeverity(StrEnum):
    """Display classification of a resource status."""

    FAILURE = "failure"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class StackEvent:
    """A single entry of a stack's event history."""

    timestamp: datetime
    logical_id: str
    resource_type: str
    status: str
    status_reason: str | None = None
    event_id: str | None = None
    stack_id: str | None = None


@dataclass(frozen=True)
class DeploymentUnit:
    """One template (or stack name, for deletes) queued for an operation.

    Units built from files carry ``template_path`` and no body; the body is
    read by whichever worker picks the unit up.
    """

    identifier: str
    stack_name: str
    template_body: str | None = None
    template_path: str | None = None
    parameters: dict[str, str] = field(default_factory=dict)
    capabilities: tuple[str, ...] = ()
    tags: dict[str, str] = field(default_factory=dict)


@dataclass
class OperationContext:
    """Tracking state for one in-flight operation.

    Owned by the worker that submitted the operation. ``seen_events`` only
    ever grows, so each event reaches the classifier at most once.
    """

    stack_name: str
    stack_id: str
    kind: OperationKind
    terminal_statuses: frozenset[str]
    success_status: str
    seen_events: int = 0
    active: bool = False

    @classmethod
    def for_operation(
        cls,
        stack_name: str,
        stack_id: str,
        kind: OperationKind,
        seen_events: int = 0,
    ) -> "OperationContext":
        return cls(
            stack_name=stack_name,
            stack_id=stack_id,
            kind=kind,
            terminal_statuses=kind.terminal_statuses,
            success_status=kind.success_status,
            seen_events=seen_events,
        )


@dataclass(frozen=True)
class OperationResult:
    """A stack operation that reached its success status."""

    stack_name: str
    stack_id: str
    kind: OperationKind
    final_event: StackEvent


@dataclass(frozen=True)
class TemplateValidation:
    """Outcome of a ValidateTemplate call."""

    description: str | None
    parameters: list[str]
    capabilities: list[str]


@dataclass(frozen=True)
class UnitOutcome:
    """Result of processing one deployment unit through the pipeline."""

    unit: DeploymentUnit
    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PipelineResult:
    """Aggregate outcome of a pipeline run, in completion order."""

    outcomes: list[UnitOutcome]
    halted: bool = False

    @property
    def succeeded(self) -> list[UnitOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[UnitOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def first_error(self) -> Exception | None:
        for outcome in self.outcomes:
            if outcome.error is not None:
                return outcome.error
        return None

    @property
    def ok(self) -> bool:
        return not self.failed
