"""Workflow records: kinds, states, progress, status, options and results.

Everything here is plain Pydantic data with no behaviour beyond small
derived properties, so it can be handed to callers and dumped as JSON.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from projgen.models import (
    AuditOptions,
    AuditResult,
    CacheStats,
    ConfigValidationResult,
    Fix,
    ProjectConfig,
    ValidationOptions,
    ValidationResult,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class WorkflowKind(str, Enum):
    PROJECT_GENERATION = "project-generation"
    VALIDATION = "validation"
    AUDIT = "audit"
    VALIDATION_AUDIT = "validation-audit"
    CONFIGURATION = "configuration"
    OFFLINE = "offline"


class WorkflowState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {WorkflowState.COMPLETED, WorkflowState.FAILED, WorkflowState.CANCELLED}
)

_TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    WorkflowState.PENDING: frozenset({WorkflowState.RUNNING}),
    WorkflowState.RUNNING: TERMINAL_STATES,
}


def can_transition(current: WorkflowState, target: WorkflowState) -> bool:
    """Return ``True`` if ``current -> target`` is a legal state transition."""
    return target in _TRANSITIONS.get(current, frozenset())


class Stage(str, Enum):
    """Named stages shared by the phase workflows."""

    INITIALIZATION = "initialization"
    CONFIGURATION_VALIDATION = "configuration-validation"
    TEMPLATE_PREPARATION = "template-preparation"
    STRUCTURE_GENERATION = "structure-generation"
    TEMPLATE_PROCESSING = "template-processing"
    POST_VALIDATION = "post-validation"
    POST_AUDIT = "post-audit"
    VALIDATION = "validation"
    AUDIT = "audit"
    FIX_APPLICATION = "fix-application"
    REPORT_GENERATION = "report-generation"
    REPAIR = "repair"
    COMPLETION = "completion"


# ---------------------------------------------------------------------------
# Progress / status
# ---------------------------------------------------------------------------

class WorkflowProgress(BaseModel):
    """Public progress snapshot handed to callbacks and stored in status."""

    workflow_id: str = ""
    stage: str = ""
    step: str = ""
    percent_complete: float = Field(default=0.0, ge=0.0, le=100.0)
    message: str = ""
    start_time: datetime = Field(default_factory=utcnow)
    elapsed_time: float = Field(default=0.0, ge=0.0, description="Seconds since start")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


ProgressCallback = Callable[[WorkflowProgress], None]


class WorkflowStatus(BaseModel):
    """Live registry entry for one workflow."""

    id: str
    kind: WorkflowKind
    state: WorkflowState = WorkflowState.PENDING
    progress: Optional[WorkflowProgress] = None
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: float = Field(default=0.0, ge=0.0, description="Seconds")
    last_error: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def project_path(self) -> str:
        path = self.metadata.get("project_path", "")
        return path if isinstance(path, str) else str(path)


class WorkflowInfo(BaseModel):
    """Immutable summary of a workflow, used for listings and history."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: WorkflowKind
    state: WorkflowState
    project_path: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: float = 0.0
    success: bool = False
    error: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_status(cls, status: WorkflowStatus) -> "WorkflowInfo":
        return cls(
            id=status.id,
            kind=status.kind,
            state=status.state,
            project_path=status.project_path,
            start_time=status.start_time,
            end_time=status.end_time,
            duration=status.duration,
            success=status.state == WorkflowState.COMPLETED,
            error=status.last_error,
            metadata=dict(status.metadata),
        )

    def to_status(self) -> WorkflowStatus:
        return WorkflowStatus(
            id=self.id,
            kind=self.kind,
            state=self.state,
            start_time=self.start_time,
            end_time=self.end_time,
            duration=self.duration,
            last_error=self.error,
            metadata=dict(self.metadata),
        )


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

class WorkflowOptions(BaseModel):
    """Base for per-kind options; frozen so instances cannot drift once created."""

    model_config = ConfigDict(frozen=True)

    progress_callback: Optional[ProgressCallback] = Field(
        default=None, exclude=True, repr=False
    )


class ProjectWorkflowOptions(WorkflowOptions):
    output_path: str = "."
    dry_run: bool = False
    offline: bool = False
    force: bool = False
    backup_existing: bool = False
    validate_after: bool = True
    audit_after: bool = False
    generate_report: bool = False
    report_format: str = "json"
    validation_options: Optional[ValidationOptions] = None
    audit_options: Optional[AuditOptions] = None


class ValidationAuditWorkflowOptions(WorkflowOptions):
    validation_enabled: Optional[bool] = None
    audit_enabled: Optional[bool] = None
    validation_options: Optional[ValidationOptions] = None
    audit_options: Optional[AuditOptions] = None
    fix_issues: bool = False
    generate_report: bool = False
    output_format: str = "json"
    output_file: str = ""

    def resolved_toggles(self) -> tuple[bool, bool]:
        """Return ``(validation, audit)``; both default on when neither is given."""
        if self.validation_enabled is None and self.audit_enabled is None:
            return True, True
        return bool(self.validation_enabled), bool(self.audit_enabled)


class ValidationWorkflowOptions(WorkflowOptions):
    validation_options: Optional[ValidationOptions] = None
    fix_issues: bool = False
    generate_report: bool = False
    output_format: str = "json"
    output_file: str = ""


class AuditWorkflowOptions(WorkflowOptions):
    audit_options: Optional[AuditOptions] = None
    generate_report: bool = False
    output_format: str = "json"
    output_file: str = ""


class ConfigurationWorkflowOptions(WorkflowOptions):
    operation: str
    config_path: str = ""
    output_path: str = ""
    format: str = "yaml"
    validate_after_import: bool = False
    config: Optional[ProjectConfig] = None
    sources: list[str] = Field(default_factory=list)


class OfflineWorkflowOptions(WorkflowOptions):
    operation: str
    cache_update: bool = False
    repair_cache: bool = False
    project_config: Optional[ProjectConfig] = None
    output_path: str = ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class WorkflowResult(BaseModel):
    """Fields shared by every workflow result."""

    success: bool = False
    workflow_id: str = ""
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: float = 0.0
    progress: Optional[WorkflowProgress] = None
    report_path: str = ""
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ProjectWorkflowResult(WorkflowResult):
    project_path: str = ""
    generated_files: list[str] = Field(default_factory=list)
    backup_path: str = ""
    processed_files: list[str] = Field(default_factory=list)
    validation_result: Optional[ValidationResult] = None
    audit_result: Optional[AuditResult] = None


class ValidationAuditWorkflowResult(WorkflowResult):
    project_path: str = ""
    validation_result: Optional[ValidationResult] = None
    audit_result: Optional[AuditResult] = None
    fixes_applied: list[Fix] = Field(default_factory=list)
    report_generated: bool = False
    report_files: list[str] = Field(default_factory=list)


class ConfigurationWorkflowResult(WorkflowResult):
    operation: str = ""
    config_path: str = ""
    output_path: str = ""
    configuration: Optional[ProjectConfig] = None
    validation_result: Optional[ConfigValidationResult] = None


class OfflineWorkflowResult(WorkflowResult):
    operation: str = ""
    cache_stats: Optional[CacheStats] = None
    project_path: str = ""
    cache_repaired: bool = False
