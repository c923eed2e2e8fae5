"""Progress tracking for phase workflows.

Each phase workflow owns a :class:`ProgressTracker`.  The tracker keeps the
internal :class:`PhaseProgress` record, clamps the percentage so it never goes
backwards, and notifies any number of listeners synchronously on every
update.  :func:`translate_progress` converts the internal record into the
public :class:`~projgen.workflow.models.WorkflowProgress`.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from projgen.logger import get_logger
from projgen.workflow.models import WorkflowProgress, utcnow

logger = get_logger(__name__)


@dataclass
class PhaseProgress:
    """Mutable progress record owned by a single phase workflow."""

    stage: str = ""
    step: str = ""
    percent: float = 0.0
    message: str = ""
    start_time: datetime = field(default_factory=utcnow)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def elapsed(self) -> float:
        return max((utcnow() - self.start_time).total_seconds(), 0.0)


PhaseListener = Callable[[PhaseProgress], None]


def translate_progress(progress: PhaseProgress, workflow_id: str) -> WorkflowProgress:
    """Convert an internal progress record into the public snapshot."""
    return WorkflowProgress(
        workflow_id=workflow_id,
        stage=progress.stage,
        step=progress.step,
        percent_complete=progress.percent,
        message=progress.message,
        start_time=progress.start_time,
        elapsed_time=progress.elapsed,
        errors=list(progress.errors),
        warnings=list(progress.warnings),
    )


class ProgressTracker:
    """Holds a workflow's progress and fans updates out to listeners."""

    def __init__(self) -> None:
        self._progress = PhaseProgress()
        self._listeners: list[PhaseListener] = []

    @property
    def start_time(self) -> datetime:
        return self._progress.start_time

    @property
    def percent(self) -> float:
        return self._progress.percent

    @property
    def errors(self) -> list[str]:
        return list(self._progress.errors)

    @property
    def warnings(self) -> list[str]:
        return list(self._progress.warnings)

    def snapshot(self) -> PhaseProgress:
        """Return a deep copy of the current progress."""
        return copy.deepcopy(self._progress)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: PhaseListener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.warning("Progress listener raised", exc_info=True)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update(self, stage: str, step: str, percent: float, message: str) -> None:
        """Move to ``stage`` and notify listeners.

        ``percent`` is clamped to ``[current, 100]`` so observers never see
        progress go backwards.
        """
        self._progress.stage = stage
        self._progress.step = step
        self._progress.percent = min(max(float(percent), self._progress.percent), 100.0)
        self._progress.message = message
        self._notify()

    def add_warning(self, warning: str) -> None:
        self._progress.warnings.append(warning)

    def add_error(self, error: str) -> None:
        self._progress.errors.append(error)
