"""Errors raised while driving stack operations."""

from stackrunner.models import OperationKind, StackEvent


class StackRunnerError(Exception):
    """Base class for errors tied to one stack or its template."""

    def __init__(self, message: str, stack_name: str, kind: OperationKind | None = None):
        super().__init__(message)
        self.stack_name = stack_name
        self.kind = kind


class SubmitError(StackRunnerError):
    """CloudFormation rejected the create, update or delete request."""

    def __init__(self, stack_name: str, kind: OperationKind, reason: str):
        super().__init__(f"Could not submit {kind} of stack {stack_name}: {reason}", stack_name, kind)
        self.reason = reason


class PollFetchError(StackRunnerError):
    """Fetching the event history failed. Polling for the stack has stopped."""

    def __init__(self, stack_name: str, kind: OperationKind, reason: str):
        super().__init__(
            f"Could not fetch events for stack {stack_name} during {kind}: {reason}",
            stack_name,
            kind,
        )
        self.reason = reason


class OperationFailed(StackRunnerError):
    """The stack reached a terminal status other than the expected success."""

    def __init__(self, stack_name: str, kind: OperationKind, event: StackEvent):
        super().__init__(f"Could not {kind} stack: {stack_name}", stack_name, kind)
        self.event = event


class PollingCancelled(StackRunnerError):
    """Polling was abandoned before the operation resolved."""

    def __init__(self, stack_name: str, kind: OperationKind):
        super().__init__(f"Stopped waiting for {kind} of stack: {stack_name}", stack_name, kind)


class TemplateError(StackRunnerError):
    """A template could not be read, or CloudFormation rejected it."""

    def __init__(self, identifier: str, stack_name: str, reason: str):
        super().__init__(f"Invalid template {identifier}: {reason}", stack_name)
        self.identifier = identifier
        self.reason = reason
