"""Validation and audit of an existing project.

The ``validation`` and ``audit`` workflow kinds run this same workflow with
only one of the two toggles enabled.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from projgen.logger import get_logger
from projgen.models import AuditResult, ValidationResult
from projgen.workflow.base import PhaseWorkflow
from projgen.workflow.errors import CollaboratorUnavailableError
from projgen.workflow.models import (
    Stage,
    ValidationAuditWorkflowOptions,
    ValidationAuditWorkflowResult,
)
from projgen.workflow.reports import default_report_path, write_reports

if TYPE_CHECKING:
    from projgen.workflow.pipeline import Pipeline

logger = get_logger(__name__)


class ValidationAuditWorkflow(PhaseWorkflow[ValidationAuditWorkflowResult]):
    """Validate and/or audit a project, optionally fixing issues and writing reports."""

    name = "validation-audit"

    def __init__(
        self,
        pipeline: "Pipeline",
        project_path: str | Path,
        options: ValidationAuditWorkflowOptions,
        workflow_id: str = "",
    ) -> None:
        super().__init__(workflow_id)
        self.pipeline = pipeline
        self.project_path = Path(project_path)
        self.options = options

    async def execute(self) -> ValidationAuditWorkflowResult:
        opts = self.options
        validation_enabled, audit_enabled = opts.resolved_toggles()
        result = ValidationAuditWorkflowResult(
            start_time=self.tracker.start_time, project_path=str(self.project_path)
        )

        self._checkpoint(Stage.INITIALIZATION.value)
        self._update_progress(
            Stage.INITIALIZATION.value,
            "Initializing workflow",
            0.0,
            "Starting validation and audit workflow",
        )

        if validation_enabled:
            stage = Stage.VALIDATION.value
            self._checkpoint(stage)
            result.validation_result = await self._run_fatal(result, stage, self._validate)
            self._update_progress(
                stage,
                "Project validated",
                40.0,
                f"Validation found {len(result.validation_result.issues)} issues",
            )

        if audit_enabled:
            stage = Stage.AUDIT.value
            self._checkpoint(stage)
            result.audit_result = await self._run_fatal(result, stage, self._audit)
            self._update_progress(
                stage,
                "Project audited",
                70.0,
                f"Audit score {result.audit_result.overall_score:.1f}",
            )

        if opts.fix_issues and result.validation_result is not None:
            stage = Stage.FIX_APPLICATION.value
            self._checkpoint(stage)
            await self._apply_fixes(result, result.validation_result)
            self._update_progress(
                stage, "Fixes applied", 85.0, f"Applied {len(result.fixes_applied)} fixes"
            )

        if opts.generate_report:
            stage = Stage.REPORT_GENERATION.value
            self._checkpoint(stage)
            await self._write_report(result)
            self._update_progress(stage, "Report generated", 95.0, "Report generation completed")

        self._checkpoint(Stage.COMPLETION.value)
        self._update_progress(
            Stage.COMPLETION.value,
            "Workflow completed",
            100.0,
            "Validation and audit workflow completed successfully",
        )
        return self._finish(result)

    async def _validate(self) -> ValidationResult:
        validator = self.pipeline.validator
        if validator is None:
            raise CollaboratorUnavailableError("validation engine")
        return await validator.validate_project(self.project_path, self.options.validation_options)

    async def _audit(self) -> AuditResult:
        auditor = self.pipeline.auditor
        if auditor is None:
            raise CollaboratorUnavailableError("audit engine")
        return await auditor.audit_project(self.project_path, self.options.audit_options)

    async def _apply_fixes(
        self, result: ValidationAuditWorkflowResult, validation: ValidationResult
    ) -> None:
        validator = self.pipeline.validator
        if validator is None:
            self._add_warning("Fix application skipped: validation engine not available")
            return
        try:
            fixable = validator.get_fixable_issues(validation.issues)
            if not fixable:
                logger.debug("No fixable issues", fields={"workflow_id": self.workflow_id})
                return
            outcome = await validator.fix_validation_issues(self.project_path, fixable)
        except Exception as exc:
            self._add_warning(f"Fix application failed: {exc}")
            return

        result.fixes_applied = list(outcome.applied)
        for error in outcome.errors:
            self._add_warning(f"Fix failed: {error}")
        logger.info(
            "Fixes applied",
            fields={
                "workflow_id": self.workflow_id,
                "applied": len(outcome.applied),
                "failed": len(outcome.failed),
            },
        )

    async def _write_report(self, result: ValidationAuditWorkflowResult) -> None:
        fmt = self.options.output_format
        base = (
            Path(self.options.output_file)
            if self.options.output_file
            else default_report_path(self.project_path, fmt)
        )
        try:
            written = await write_reports(
                base,
                fmt,
                validator=self.pipeline.validator,
                auditor=self.pipeline.auditor,
                validation_result=result.validation_result,
                audit_result=result.audit_result,
            )
        except Exception as exc:
            self._add_warning(f"Report generation failed: {exc}")
            return
        if not written:
            self._add_warning("Report generation skipped: no validation or audit results")
            return
        result.report_generated = True
        result.report_files = [str(path) for path in written]
        result.report_path = result.report_files[0]
