"""Unit tests for workflow records (projgen.workflow.models).

Tests cover:
- WorkflowState terminal flags and legal transitions
- ValidationAuditWorkflowOptions toggle resolution
- Frozen options and the excluded progress callback
- WorkflowInfo <-> WorkflowStatus conversion
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from projgen.workflow.models import (
    ProjectWorkflowOptions,
    TERMINAL_STATES,
    ValidationAuditWorkflowOptions,
    WorkflowInfo,
    WorkflowKind,
    WorkflowProgress,
    WorkflowState,
    WorkflowStatus,
    can_transition,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# WorkflowState
# ---------------------------------------------------------------------------

class TestWorkflowState:
    def test_terminal_states(self):
        assert TERMINAL_STATES == {
            WorkflowState.COMPLETED,
            WorkflowState.FAILED,
            WorkflowState.CANCELLED,
        }
        assert WorkflowState.CANCELLED.is_terminal
        assert not WorkflowState.RUNNING.is_terminal
        assert not WorkflowState.PENDING.is_terminal

    @pytest.mark.parametrize(
        "current,target",
        [
            (WorkflowState.PENDING, WorkflowState.RUNNING),
            (WorkflowState.RUNNING, WorkflowState.COMPLETED),
            (WorkflowState.RUNNING, WorkflowState.FAILED),
            (WorkflowState.RUNNING, WorkflowState.CANCELLED),
        ],
    )
    def test_legal_transitions(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (WorkflowState.PENDING, WorkflowState.COMPLETED),
            (WorkflowState.PENDING, WorkflowState.CANCELLED),
            (WorkflowState.RUNNING, WorkflowState.PENDING),
            (WorkflowState.COMPLETED, WorkflowState.RUNNING),
            (WorkflowState.CANCELLED, WorkflowState.FAILED),
            (WorkflowState.FAILED, WorkflowState.COMPLETED),
        ],
    )
    def test_illegal_transitions(self, current, target):
        assert not can_transition(current, target)

    def test_kind_values(self):
        assert WorkflowKind("validation-audit") is WorkflowKind.VALIDATION_AUDIT
        assert WorkflowKind.PROJECT_GENERATION.value == "project-generation"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

class TestValidationAuditToggles:
    def test_both_default_on(self):
        assert ValidationAuditWorkflowOptions().resolved_toggles() == (True, True)

    def test_only_validation(self):
        opts = ValidationAuditWorkflowOptions(validation_enabled=True)
        assert opts.resolved_toggles() == (True, False)

    def test_only_audit(self):
        opts = ValidationAuditWorkflowOptions(audit_enabled=True)
        assert opts.resolved_toggles() == (False, True)

    def test_explicit_both_off(self):
        opts = ValidationAuditWorkflowOptions(validation_enabled=False, audit_enabled=False)
        assert opts.resolved_toggles() == (False, False)


class TestOptions:
    def test_project_defaults(self):
        opts = ProjectWorkflowOptions()
        assert opts.output_path == "."
        assert opts.validate_after is True
        assert opts.audit_after is False
        assert opts.force is False
        assert opts.report_format == "json"

    def test_options_are_frozen(self):
        opts = ProjectWorkflowOptions()
        with pytest.raises(ValidationError):
            opts.force = True

    def test_callback_not_serialised(self):
        opts = ProjectWorkflowOptions(progress_callback=lambda p: None)
        assert "progress_callback" not in opts.model_dump()
        assert "progress_callback" not in repr(opts)


# ---------------------------------------------------------------------------
# WorkflowInfo / WorkflowStatus
# ---------------------------------------------------------------------------

class TestWorkflowInfo:
    def test_from_status_completed(self):
        status = WorkflowStatus(
            id="workflow_1",
            kind=WorkflowKind.AUDIT,
            state=WorkflowState.COMPLETED,
            metadata={"project_path": "/tmp/demo"},
        )
        info = WorkflowInfo.from_status(status)
        assert info.success is True
        assert info.project_path == "/tmp/demo"
        assert info.error is None

    def test_from_status_failed_keeps_error(self):
        status = WorkflowStatus(
            id="workflow_2",
            kind=WorkflowKind.OFFLINE,
            state=WorkflowState.FAILED,
            last_error="boom",
        )
        info = WorkflowInfo.from_status(status)
        assert info.success is False
        assert info.error == "boom"

    def test_round_trip_to_status(self):
        status = WorkflowStatus(
            id="workflow_3",
            kind=WorkflowKind.CONFIGURATION,
            state=WorkflowState.CANCELLED,
            duration=1.5,
        )
        back = WorkflowInfo.from_status(status).to_status()
        assert back.id == "workflow_3"
        assert back.state == WorkflowState.CANCELLED
        assert back.duration == 1.5

    def test_info_is_frozen(self):
        info = WorkflowInfo.from_status(WorkflowStatus(id="w", kind=WorkflowKind.AUDIT))
        with pytest.raises(ValidationError):
            info.state = WorkflowState.FAILED


class TestWorkflowProgress:
    def test_percent_bounds(self):
        with pytest.raises(ValidationError):
            WorkflowProgress(percent_complete=101.0)
        with pytest.raises(ValidationError):
            WorkflowProgress(percent_complete=-1.0)
