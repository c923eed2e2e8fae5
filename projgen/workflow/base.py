"""Shared machinery for the phase workflows.

A phase workflow is a linear state machine over named stages.  Before each
stage it checks whether cancellation was requested, reports progress through
its :class:`~projgen.workflow.progress.ProgressTracker`, and converts the
failure of a fatal stage into a :class:`~projgen.workflow.errors.PhaseError`.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from projgen.logger import get_logger
from projgen.workflow.errors import PhaseError, WorkflowCancelledError
from projgen.workflow.models import WorkflowResult, utcnow
from projgen.workflow.progress import ProgressTracker, translate_progress

ResultT = TypeVar("ResultT", bound=WorkflowResult)

logger = get_logger(__name__)


class PhaseWorkflow(ABC, Generic[ResultT]):
    """Base class for a single-run phase workflow.

    Subclasses implement :meth:`execute`.  Cancellation is cooperative: a
    call to :meth:`request_cancel` is honoured at the next :meth:`_checkpoint`
    and never interrupts a collaborator call that is already in flight.
    """

    name = "workflow"

    def __init__(self, workflow_id: str = "") -> None:
        self.workflow_id = workflow_id
        self.tracker = ProgressTracker()
        self._cancel_event = threading.Event()

    @abstractmethod
    async def execute(self) -> ResultT:
        """Run every stage and return the result."""

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def request_cancel(self) -> None:
        """Ask the workflow to stop before its next stage."""
        self._cancel_event.set()

    def share_cancellation(self, nested: "PhaseWorkflow[Any]") -> None:
        """Make ``nested`` stop whenever this workflow is cancelled."""
        nested._cancel_event = self._cancel_event

    def _checkpoint(self, stage: str) -> None:
        if self._cancel_event.is_set():
            logger.info(
                "Workflow stopped at checkpoint",
                fields={"workflow_id": self.workflow_id, "stage": stage},
            )
            raise WorkflowCancelledError(self.workflow_id, stage)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def _update_progress(self, stage: str, step: str, percent: float, message: str) -> None:
        self.tracker.update(stage, step, percent, message)
        logger.debug(
            message,
            fields={"workflow_id": self.workflow_id, "stage": stage, "percent": percent},
        )

    def _add_warning(self, warning: str) -> None:
        self.tracker.add_warning(warning)
        logger.warning(warning, fields={"workflow_id": self.workflow_id})

    def _add_error(self, error: str) -> None:
        self.tracker.add_error(error)
        logger.error(error, fields={"workflow_id": self.workflow_id})

    # ------------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------------

    async def _run_fatal(
        self,
        result: ResultT,
        stage: str,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        """Await ``fn(*args)``; any failure aborts the workflow at ``stage``.

        A :class:`PhaseError` from a nested workflow is reported once, as
        ``<stage>/<nested stage>`` with the nested workflow's original cause.
        """
        try:
            return await fn(*args)
        except WorkflowCancelledError:
            raise
        except PhaseError as exc:
            raise self._fail(result, f"{stage}/{exc.phase}", exc.cause) from exc
        except Exception as exc:
            raise self._fail(result, stage, exc) from exc

    def _fail(self, result: ResultT, stage: str, exc: BaseException) -> PhaseError:
        """Mark ``result`` failed and build the error to raise."""
        error = PhaseError(stage, exc, result)
        self._add_error(str(error))
        result.success = False
        self._stamp(result)
        return error

    def _finish(self, result: ResultT) -> ResultT:
        result.success = True
        self._stamp(result)
        logger.info(
            f"{self.name} workflow completed",
            fields={"workflow_id": self.workflow_id, "duration": f"{result.duration:.2f}s"},
        )
        return result

    def _stamp(self, result: ResultT) -> None:
        result.workflow_id = self.workflow_id
        result.end_time = utcnow()
        result.duration = max((result.end_time - result.start_time).total_seconds(), 0.0)
        result.errors = self.tracker.errors
        result.warnings = self.tracker.warnings
        result.progress = translate_progress(self.tracker.snapshot(), self.workflow_id)
