"""Workflow orchestration: phase workflows, pipeline, registry and manager."""

from projgen.workflow.errors import (
    CollaboratorUnavailableError,
    PhaseError,
    UnknownOperationError,
    WorkflowCancelledError,
    WorkflowError,
    WorkflowInputError,
    WorkflowNotFoundError,
    WorkflowStateError,
)
from projgen.workflow.handle import Workflow
from projgen.workflow.manager import WorkflowManager
from projgen.workflow.models import (
    AuditWorkflowOptions,
    ConfigurationWorkflowOptions,
    ConfigurationWorkflowResult,
    OfflineWorkflowOptions,
    OfflineWorkflowResult,
    ProjectWorkflowOptions,
    ProjectWorkflowResult,
    ValidationAuditWorkflowOptions,
    ValidationAuditWorkflowResult,
    ValidationWorkflowOptions,
    WorkflowInfo,
    WorkflowKind,
    WorkflowProgress,
    WorkflowState,
    WorkflowStatus,
)
from projgen.workflow.pipeline import Pipeline
from projgen.workflow.registry import WorkflowRegistry

__all__ = [
    "AuditWorkflowOptions",
    "CollaboratorUnavailableError",
    "ConfigurationWorkflowOptions",
    "ConfigurationWorkflowResult",
    "OfflineWorkflowOptions",
    "OfflineWorkflowResult",
    "PhaseError",
    "Pipeline",
    "ProjectWorkflowOptions",
    "ProjectWorkflowResult",
    "UnknownOperationError",
    "ValidationAuditWorkflowOptions",
    "ValidationAuditWorkflowResult",
    "ValidationWorkflowOptions",
    "Workflow",
    "WorkflowCancelledError",
    "WorkflowError",
    "WorkflowInfo",
    "WorkflowInputError",
    "WorkflowKind",
    "WorkflowManager",
    "WorkflowNotFoundError",
    "WorkflowProgress",
    "WorkflowRegistry",
    "WorkflowState",
    "WorkflowStateError",
    "WorkflowStatus",
]
