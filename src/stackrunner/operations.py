"""Submits stack operations and waits for them to resolve."""

import logging
import threading

from botocore.exceptions import BotoCoreError, ClientError

from stackrunner.aws.client import CloudFormationClient
from stackrunner.errors import OperationFailed, SubmitError, TemplateError
from stackrunner.models import (
    DeploymentUnit,
    OperationContext,
    OperationKind,
    OperationResult,
    TemplateValidation,
)
from stackrunner.poller import CompletionPoller, EventObserver
from stackrunner.templates import read_template

logger = logging.getLogger(__name__)


class StackOperator:
    """Creates, updates and deletes stacks, tracking each to completion."""

    def __init__(self, client: CloudFormationClient, poller: CompletionPoller):
        self._client = client
        self._poller = poller

    def run(
        self,
        kind: OperationKind,
        unit: DeploymentUnit,
        observer: EventObserver | None = None,
        cancel: threading.Event | None = None,
    ) -> OperationResult:
        """Dispatch to create, update or delete by operation kind."""
        handlers = {
            OperationKind.CREATE: self.create,
            OperationKind.UPDATE: self.update,
            OperationKind.DELETE: self.delete,
        }
        return handlers[kind](unit, observer=observer, cancel=cancel)

    def create(
        self,
        unit: DeploymentUnit,
        observer: EventObserver | None = None,
        cancel: threading.Event | None = None,
    ) -> OperationResult:
        unit = _with_template(unit, OperationKind.CREATE)
        try:
            stack_id = self._client.create_stack(unit)
        except (ClientError, BotoCoreError) as exc:
            raise SubmitError(unit.stack_name, OperationKind.CREATE, str(exc)) from exc

        context = OperationContext.for_operation(unit.stack_name, stack_id, OperationKind.CREATE)
        return self._track(context, observer, cancel)

    def update(
        self,
        unit: DeploymentUnit,
        observer: EventObserver | None = None,
        cancel: threading.Event | None = None,
    ) -> OperationResult:
        unit = _with_template(unit, OperationKind.UPDATE)
        try:
            # Events from earlier operations on this stack are already history.
            baseline = len(self._client.describe_stack_events(unit.stack_name))
            stack_id = self._client.update_stack(unit)
        except (ClientError, BotoCoreError) as exc:
            raise SubmitError(unit.stack_name, OperationKind.UPDATE, str(exc)) from exc

        context = OperationContext.for_operation(
            unit.stack_name, stack_id, OperationKind.UPDATE, seen_events=baseline
        )
        return self._track(context, observer, cancel)

    def delete(
        self,
        unit: DeploymentUnit,
        observer: EventObserver | None = None,
        cancel: threading.Event | None = None,
    ) -> OperationResult:
        try:
            stack_id = self._client.get_stack_id(unit.stack_name)
            baseline = len(self._client.describe_stack_events(stack_id))
            self._client.delete_stack(stack_id)
        except (ClientError, BotoCoreError) as exc:
            raise SubmitError(unit.stack_name, OperationKind.DELETE, str(exc)) from exc

        context = OperationContext.for_operation(
            unit.stack_name, stack_id, OperationKind.DELETE, seen_events=baseline
        )
        return self._track(context, observer, cancel)

    def validate(
        self,
        unit: DeploymentUnit,
        cancel: threading.Event | None = None,
    ) -> TemplateValidation:
        """Validate a unit's template without touching any stack."""
        unit = read_template(unit)
        if unit.template_body is None:
            raise ValueError(f"No template body to validate for {unit.identifier}")
        try:
            validation = self._client.validate_template(unit.template_body)
        except (ClientError, BotoCoreError) as exc:
            raise TemplateError(unit.identifier, unit.stack_name, str(exc)) from exc
        logger.info("Template is valid: %s", unit.identifier)
        return validation

    def _track(
        self,
        context: OperationContext,
        observer: EventObserver | None,
        cancel: threading.Event | None,
    ) -> OperationResult:
        noun = context.kind.noun
        logger.info("Starting %s of stack: %s", noun, context.stack_name)

        try:
            final_event = self._poller.wait(context, observer=observer, cancel=cancel)
        except OperationFailed as exc:
            logger.warning(
                "Failed %s of stack %s: %s (%s)",
                noun,
                context.stack_name,
                exc.event.status,
                exc.event.status_reason,
            )
            raise

        logger.info("Successful %s of stack: %s", noun, context.stack_name)
        return OperationResult(
            stack_name=context.stack_name,
            stack_id=context.stack_id,
            kind=context.kind,
            final_event=final_event,
        )


def _with_template(unit: DeploymentUnit, kind: OperationKind) -> DeploymentUnit:
    unit = read_template(unit)
    if unit.template_body is None:
        raise ValueError(f"A template body is required to {kind} stack {unit.stack_name}")
    return unit
