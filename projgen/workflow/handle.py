"""Public handle returned by the workflow manager for every workflow kind."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Generic, Optional

from projgen.workflow.base import PhaseWorkflow, ResultT
from projgen.workflow.models import ProgressCallback, WorkflowKind, WorkflowProgress, WorkflowStatus
from projgen.workflow.progress import PhaseProgress, translate_progress

if TYPE_CHECKING:
    from projgen.workflow.manager import WorkflowManager


class Workflow(Generic[ResultT]):
    """Wraps a phase workflow and routes lifecycle calls through the manager.

    Progress notifications from the phase workflow are translated into
    :class:`~projgen.workflow.models.WorkflowProgress` snapshots before they
    reach callers.
    """

    def __init__(
        self,
        workflow_id: str,
        kind: WorkflowKind,
        phase: PhaseWorkflow[ResultT],
        manager: "WorkflowManager",
    ) -> None:
        self._id = workflow_id
        self.kind = kind
        self.phase = phase
        self._manager = manager
        self._remove_callback: Optional[Callable[[], None]] = None

    def __repr__(self) -> str:
        return f"Workflow(id={self._id!r}, kind={self.kind.value!r})"

    @property
    def id(self) -> str:
        return self._id

    def get_id(self) -> str:
        return self._id

    async def execute(self) -> ResultT:
        """Run the workflow to completion on the current task."""
        return await self._manager.execute(self)

    def cancel(self) -> None:
        """Cancel the workflow; it stops before its next stage."""
        self._manager.cancel(self._id)

    def get_status(self) -> WorkflowStatus:
        return self._manager.get_status(self._id)

    def get_progress(self) -> WorkflowProgress:
        return translate_progress(self.phase.tracker.snapshot(), self._id)

    def add_progress_listener(
        self, listener: Callable[[WorkflowProgress], None]
    ) -> Callable[[], None]:
        """Subscribe ``listener`` to progress updates; returns an unsubscribe function."""

        def forward(progress: PhaseProgress) -> None:
            listener(translate_progress(progress, self._id))

        return self.phase.tracker.subscribe(forward)

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        """Replace the single progress callback; ``None`` removes it."""
        if self._remove_callback is not None:
            self._remove_callback()
            self._remove_callback = None
        if callback is not None:
            self._remove_callback = self.add_progress_listener(callback)
