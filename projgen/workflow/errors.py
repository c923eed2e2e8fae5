"""Exceptions raised by the workflow manager and phase workflows."""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base class for every workflow-layer error."""


class WorkflowInputError(WorkflowError, ValueError):
    """Required input (configuration, path or options) is missing or invalid."""


class WorkflowNotFoundError(WorkflowError, LookupError):
    """No workflow with the given id is known to the registry."""

    def __init__(self, workflow_id: str) -> None:
        self.workflow_id = workflow_id
        super().__init__(f"workflow {workflow_id} not found")


class WorkflowStateError(WorkflowError):
    """The requested operation is not allowed in the workflow's current state."""

    def __init__(self, workflow_id: str, state: str, message: str | None = None) -> None:
        self.workflow_id = workflow_id
        self.state = state
        super().__init__(message or f"workflow {workflow_id} is not running (status: {state})")


class UnknownOperationError(WorkflowError):
    """A configuration or offline workflow was asked for an unsupported operation."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"unknown operation: {operation}")


class CollaboratorUnavailableError(WorkflowError):
    """A phase needs a collaborator the pipeline was built without."""

    def __init__(self, collaborator: str) -> None:
        self.collaborator = collaborator
        super().__init__(f"{collaborator} not available")


class WorkflowCancelledError(WorkflowError):
    """Raised inside ``execute`` when a cancelled workflow reaches its next stage."""

    def __init__(self, workflow_id: str, stage: str) -> None:
        self.workflow_id = workflow_id
        self.stage = stage
        super().__init__(f"workflow {workflow_id} cancelled before {stage}")


class PhaseError(WorkflowError):
    """A fatal phase failed and aborted the workflow.

    Attributes:
        phase: Name of the stage that failed.
        cause: The original exception raised by the phase, unchanged.
        result: The partial result object with ``success=False``.
    """

    def __init__(self, phase: str, cause: BaseException, result: Any = None) -> None:
        self.phase = phase
        self.cause = cause
        self.result = result
        super().__init__(f"Workflow failed at {phase}: {cause}")
