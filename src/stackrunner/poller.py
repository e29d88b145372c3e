"""Polls a stack's event history until its operation resolves."""

import logging
import threading
from collections.abc import Callable

from botocore.exceptions import BotoCoreError, ClientError

from stackrunner.aws.client import CloudFormationClient
from stackrunner.classifier import Classification, classify_events
from stackrunner.errors import OperationFailed, PollFetchError, PollingCancelled
from stackrunner.models import OperationContext, StackEvent

logger = logging.getLogger(__name__)

POLL_INTERVAL = 5.0

EventObserver = Callable[[str, list[StackEvent]], None]


class CompletionPoller:
    """Tracks one operation at a time per call to completion or failure.

    Each tick re-fetches the full history and classifies only the events
    added since the previous tick. Ticks for one context run strictly in
    sequence.
    """

    def __init__(self, client: CloudFormationClient, poll_interval: float = POLL_INTERVAL):
        self._client = client
        self._poll_interval = poll_interval

    def poll_once(
        self,
        context: OperationContext,
        observer: EventObserver | None = None,
    ) -> Classification:
        """Run a single tick: fetch, classify, advance the seen count, emit new events."""
        try:
            events = self._client.describe_stack_events(context.stack_id)
        except (ClientError, BotoCoreError) as exc:
            raise PollFetchError(context.stack_name, context.kind, str(exc)) from exc

        classification = classify_events(
            events,
            context.seen_events,
            context.terminal_statuses,
            context.success_status,
        )
        context.seen_events += len(classification.new_events)

        if classification.new_events and observer is not None:
            observer(context.stack_name, classification.new_events)

        return classification

    def wait(
        self,
        context: OperationContext,
        observer: EventObserver | None = None,
        cancel: threading.Event | None = None,
    ) -> StackEvent:
        """Poll until the stack reaches a terminal status.

        Returns the terminal event on success. Raises OperationFailed for any
        other terminal status, PollFetchError if the history cannot be
        fetched, and PollingCancelled if ``cancel`` is set between ticks.
        """
        cancel = cancel or threading.Event()
        context.active = True
        try:
            while True:
                if cancel.wait(self._poll_interval):
                    raise PollingCancelled(context.stack_name, context.kind)

                classification = self.poll_once(context, observer)
                if not classification.resolved:
                    continue

                event = classification.terminal_event
                if not classification.succeeded:
                    logger.debug(
                        "Stack %s reached %s: %s",
                        context.stack_name,
                        event.status,
                        event.status_reason,
                    )
                    raise OperationFailed(context.stack_name, context.kind, event)
                return event
        finally:
            context.active = False
