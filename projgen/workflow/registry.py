"""In-memory registry of active and historical workflows.

The registry is the only shared mutable state in the workflow layer.  It is
guarded by a single re-entrant lock, and every method holds it only for a
short critical section that never awaits.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Optional

from projgen.workflow.errors import WorkflowNotFoundError, WorkflowStateError
from projgen.workflow.models import (
    WorkflowInfo,
    WorkflowProgress,
    WorkflowState,
    WorkflowStatus,
    can_transition,
    utcnow,
)

DEFAULT_HISTORY_LIMIT = 100


class WorkflowRegistry:
    """Tracks ``active`` workflows and a bounded, completion-ordered ``history``."""

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self.history_limit = history_limit
        self._lock = threading.RLock()
        self._active: dict[str, WorkflowStatus] = {}
        self._history: deque[WorkflowInfo] = deque(maxlen=history_limit)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, workflow_id: str) -> WorkflowStatus:
        """Return a copy of the status, looking in ``active`` then ``history``."""
        with self._lock:
            status = self._active.get(workflow_id)
            if status is not None:
                return status.model_copy(deep=True)
            for info in reversed(self._history):
                if info.id == workflow_id:
                    return info.to_status()
        raise WorkflowNotFoundError(workflow_id)

    def is_active(self, workflow_id: str) -> bool:
        with self._lock:
            return workflow_id in self._active

    def list_active(self) -> list[WorkflowInfo]:
        with self._lock:
            return [WorkflowInfo.from_status(s) for s in self._active.values()]

    def list_history(self) -> list[WorkflowInfo]:
        with self._lock:
            return list(self._history)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register(self, status: WorkflowStatus) -> None:
        with self._lock:
            if status.id in self._active:
                raise WorkflowStateError(
                    status.id, status.state.value, f"workflow {status.id} already registered"
                )
            self._active[status.id] = status

    def mark_running(self, workflow_id: str) -> WorkflowStatus:
        """Move a ``pending`` workflow to ``running``."""
        with self._lock:
            status = self._active.get(workflow_id)
            if status is None:
                raise WorkflowNotFoundError(workflow_id)
            if not can_transition(status.state, WorkflowState.RUNNING):
                raise WorkflowStateError(
                    workflow_id,
                    status.state.value,
                    f"workflow {workflow_id} cannot start (status: {status.state.value})",
                )
            status.state = WorkflowState.RUNNING
            status.start_time = utcnow()
            return status.model_copy(deep=True)

    def update_progress(self, workflow_id: str, progress: WorkflowProgress) -> None:
        """Store the latest progress snapshot; ignored once the workflow left ``active``."""
        with self._lock:
            status = self._active.get(workflow_id)
            if status is not None:
                status.progress = progress

    def finish(
        self,
        workflow_id: str,
        state: WorkflowState,
        error: Optional[str] = None,
    ) -> Optional[WorkflowInfo]:
        """Stamp a terminal state and move the entry to history.

        Returns ``None`` without touching anything when the workflow is no
        longer active or cannot make the transition, e.g. after it has
        already been cancelled.
        """
        with self._lock:
            status = self._active.get(workflow_id)
            if status is None or not can_transition(status.state, state):
                return None
            return self._retire(status, state, error)

    def cancel(self, workflow_id: str) -> WorkflowInfo:
        """Cancel a ``running`` workflow and move it to history."""
        with self._lock:
            status = self._active.get(workflow_id)
            if status is None:
                raise WorkflowNotFoundError(workflow_id)
            if status.state != WorkflowState.RUNNING:
                raise WorkflowStateError(workflow_id, status.state.value)
            return self._retire(status, WorkflowState.CANCELLED, None)

    def _retire(
        self, status: WorkflowStatus, state: WorkflowState, error: Optional[str]
    ) -> WorkflowInfo:
        # Caller holds the lock; eviction of the oldest entry happens here too.
        status.state = state
        status.end_time = utcnow()
        status.duration = max((status.end_time - status.start_time).total_seconds(), 0.0)
        status.last_error = error
        del self._active[status.id]
        info = WorkflowInfo.from_status(status)
        self._history.append(info)
        return info
