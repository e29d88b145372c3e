"""Classification of CloudFormation stack events."""

from collections.abc import Collection, Sequence
from dataclasses import dataclass

from stackrunner.models import EventSeverity, StackEvent


@dataclass(frozen=True)
class Classification:
    """Result of classifying one poll's worth of events.

    ``new_events`` is oldest-first. ``terminal_event`` is the first new event
    for the stack itself whose status is terminal, or None while the
    operation is still running.
    """

    new_events: list[StackEvent]
    terminal_event: StackEvent | None = None
    succeeded: bool | None = None

    @property
    def resolved(self) -> bool:
        return self.terminal_event is not None


def classify_events(
    events: Sequence[StackEvent],
    seen_count: int,
    terminal_statuses: Collection[str],
    success_status: str,
) -> Classification:
    """Split out events not seen before and look for the stack's terminal event.

    ``events`` is the full history, newest first, as CloudFormation returns it.
    The stack's own resource is identified by the oldest event in the history,
    which is always the stack's initial event. A terminal event must match
    that event's logical id as well as its resource type, so a nested stack
    of the same type never resolves its parent.
    """
    new_count = max(len(events) - seen_count, 0)
    new_events = list(reversed(events[:new_count]))

    if not new_events:
        return Classification(new_events=[])

    root = events[-1]
    for event in new_events:
        if (
            event.resource_type == root.resource_type
            and event.logical_id == root.logical_id
            and event.status in terminal_statuses
        ):
            return Classification(
                new_events=new_events,
                terminal_event=event,
                succeeded=event.status == success_status,
            )

    return Classification(new_events=new_events)


def status_severity(status: str) -> EventSeverity:
    """Map a resource status to the severity used for display."""
    if "ROLLBACK" in status or "FAILED" in status:
        return EventSeverity.FAILURE
    if "IN_PROGRESS" in status:
        return EventSeverity.IN_PROGRESS
    if "COMPLETE" in status and "DELETE" not in status:
        return EventSeverity.SUCCESS
    return EventSeverity.NEUTRAL
