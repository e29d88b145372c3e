"""Runs deployment units through a handler with bounded concurrency."""

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from stackrunner.errors import StackRunnerError
from stackrunner.models import DeploymentUnit, PipelineResult, UnitOutcome

logger = logging.getLogger(__name__)

UnitHandler = Callable[..., Any]


class Pipeline:
    """Processes deployment units with at most ``concurrency`` in flight.

    Units are pulled from the input one at a time, and only once a slot is
    free, so a lazy iterable is never read ahead. A slot stays taken until the
    handler returns or raises, which for stack operations covers the whole
    submit/poll/resolve cycle.

    ``handler`` is called as ``handler(unit, cancel=event)``. The event is set
    if the run is interrupted, so long waits inside the handler can stop early.
    """

    def __init__(
        self,
        handler: UnitHandler,
        concurrency: int = 1,
        fail_fast: bool = False,
        on_outcome: Callable[[UnitOutcome], None] | None = None,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self._handler = handler
        self._concurrency = concurrency
        self._fail_fast = fail_fast
        self._on_outcome = on_outcome

    def run(self, units: Iterable[DeploymentUnit]) -> PipelineResult:
        """Process every unit (or, with fail_fast, until the first failure)."""
        slots = threading.BoundedSemaphore(self._concurrency)
        halt = threading.Event()
        cancel = threading.Event()
        outcomes: list[UnitOutcome] = []
        lock = threading.Lock()

        def process(unit: DeploymentUnit) -> None:
            try:
                outcome = self._process(unit, cancel)
                with lock:
                    outcomes.append(outcome)
                if not outcome.ok and self._fail_fast:
                    halt.set()
                if self._on_outcome is not None:
                    self._on_outcome(outcome)
            finally:
                slots.release()

        executor = ThreadPoolExecutor(max_workers=self._concurrency)
        pending = iter(units)
        try:
            while True:
                slots.acquire()
                unit = None if halt.is_set() else next(pending, None)
                if unit is None:
                    slots.release()
                    break
                executor.submit(process, unit)
            executor.shutdown(wait=True)
        except KeyboardInterrupt:
            # In-flight pollers stop at their next wait.
            cancel.set()
            raise
        finally:
            executor.shutdown(wait=True)

        halted = halt.is_set()
        if halted:
            logger.warning("Stopped admitting deployment units after the first failure")
        return PipelineResult(outcomes=outcomes, halted=halted)

    def _process(self, unit: DeploymentUnit, cancel: threading.Event) -> UnitOutcome:
        try:
            value = self._handler(unit, cancel=cancel)
        except StackRunnerError as exc:
            logger.error("%s", exc)
            return UnitOutcome(unit=unit, error=exc)
        except Exception as exc:
            logger.exception("Failed to process %s", unit.identifier)
            return UnitOutcome(unit=unit, error=exc)
        return UnitOutcome(unit=unit, value=value)
