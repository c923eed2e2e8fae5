"""Project generation workflow.

Stages, with the progress reached when each completes:

    initialization            0
    configuration-validation 10   fatal
    template-preparation     20   fatal, skipped offline
    structure-generation     60   fatal
    template-processing      70   fatal
    post-validation          85   optional, non-fatal
    post-audit               95   optional, non-fatal
    report-generation        97   optional, non-fatal
    completion              100
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from projgen.logger import get_logger
from projgen.models import ProjectConfig
from projgen.workflow.base import PhaseWorkflow
from projgen.workflow.errors import CollaboratorUnavailableError, WorkflowInputError
from projgen.workflow.models import (
    ProjectWorkflowOptions,
    ProjectWorkflowResult,
    Stage,
)
from projgen.workflow.reports import report_extension, write_reports

if TYPE_CHECKING:
    from projgen.workflow.pipeline import Pipeline

logger = get_logger(__name__)


def _list_top_level(project_path: Path) -> list[str]:
    if not project_path.is_dir():
        return []
    return sorted(str(entry) for entry in project_path.iterdir())


class ProjectGenerationWorkflow(PhaseWorkflow[ProjectWorkflowResult]):
    """Validate a configuration, scaffold the project, then check it."""

    name = "project-generation"

    def __init__(
        self,
        pipeline: "Pipeline",
        config: ProjectConfig,
        options: ProjectWorkflowOptions,
        workflow_id: str = "",
    ) -> None:
        super().__init__(workflow_id)
        self.pipeline = pipeline
        self.config = config
        self.options = options

    @property
    def project_path(self) -> Path:
        return Path(self.options.output_path or ".") / self.config.name

    async def execute(self) -> ProjectWorkflowResult:
        opts = self.options
        result = ProjectWorkflowResult(start_time=self.tracker.start_time)

        self._checkpoint(Stage.INITIALIZATION.value)
        self._update_progress(
            Stage.INITIALIZATION.value,
            "Initializing workflow",
            0.0,
            "Starting project generation workflow",
        )

        stage = Stage.CONFIGURATION_VALIDATION.value
        self._checkpoint(stage)
        await self._run_fatal(result, stage, self._validate_configuration)
        self._update_progress(stage, "Configuration validated", 10.0, "Project configuration is valid")

        stage = Stage.TEMPLATE_PREPARATION.value
        self._checkpoint(stage)
        await self._run_fatal(result, stage, self._prepare_templates)
        self._update_progress(stage, "Templates prepared", 20.0, "Templates are ready for processing")

        stage = Stage.STRUCTURE_GENERATION.value
        self._checkpoint(stage)
        generated = await self._run_fatal(result, stage, self._generate_structure, result)
        result.project_path = str(self.project_path)
        result.generated_files = generated
        self._update_progress(
            stage, "Project structure generated", 60.0, f"Generated {len(generated)} files"
        )

        if not opts.dry_run:
            stage = Stage.TEMPLATE_PROCESSING.value
            self._checkpoint(stage)
            result.processed_files = await self._run_fatal(result, stage, self._process_templates)
            self._update_progress(stage, "Templates processed", 70.0, "Project customization completed")

            if opts.validate_after:
                self._checkpoint(Stage.POST_VALIDATION.value)
                await self._post_validate(result)
                self._update_progress(
                    Stage.POST_VALIDATION.value,
                    "Project validated",
                    85.0,
                    "Post-generation validation completed",
                )

            if opts.audit_after:
                self._checkpoint(Stage.POST_AUDIT.value)
                await self._post_audit(result)
                self._update_progress(
                    Stage.POST_AUDIT.value, "Project audited", 95.0, "Post-generation audit completed"
                )

            if opts.generate_report:
                self._checkpoint(Stage.REPORT_GENERATION.value)
                await self._write_report(result)
                self._update_progress(
                    Stage.REPORT_GENERATION.value, "Report generated", 97.0, "Report generation completed"
                )

        self._checkpoint(Stage.COMPLETION.value)
        self._update_progress(
            Stage.COMPLETION.value,
            "Workflow completed",
            100.0,
            "Project generation workflow completed successfully",
        )
        logger.info(
            "Project generated",
            fields={
                "workflow_id": self.workflow_id,
                "project_path": result.project_path,
                "generated_files": len(result.generated_files),
                "validation": opts.validate_after,
                "audit": opts.audit_after,
            },
        )
        return self._finish(result)

    # ------------------------------------------------------------------
    # Fatal stages
    # ------------------------------------------------------------------

    async def _validate_configuration(self) -> None:
        if not self.config.name:
            raise WorkflowInputError("project name is required")

        validator = self.pipeline.validator
        if validator is None:
            return
        outcome = await validator.validate_configuration(self.config)
        if not outcome.valid:
            details = "; ".join(outcome.errors)
            raise WorkflowInputError(
                f"configuration validation failed with {len(outcome.errors)} errors"
                + (f": {details}" if details else "")
            )
        for warning in outcome.warnings:
            self._add_warning(f"Configuration: {warning}")

    async def _prepare_templates(self) -> None:
        if self.options.offline:
            logger.debug("Offline mode, using cached templates", fields={"workflow_id": self.workflow_id})
            return
        manager = self.pipeline.template_manager
        if manager is None:
            return
        if not await manager.is_available(self.config.template):
            raise WorkflowInputError(f"template '{self.config.template}' is not available")

    async def _generate_structure(self, result: ProjectWorkflowResult) -> list[str]:
        generator = self.pipeline.generator
        if generator is None:
            raise CollaboratorUnavailableError("generator")

        opts = self.options
        project_path = self.project_path
        exists = generator.file_exists(project_path)
        if exists and not opts.force:
            raise FileExistsError(
                f"project directory '{project_path}' already exists (use --force to overwrite)"
            )

        if opts.dry_run:
            self._add_warning(f"Dry run: no files written to {project_path}")
            return []

        if exists and opts.backup_existing:
            backup = await generator.backup_project(project_path)
            result.backup_path = str(backup)
            logger.info(
                "Backed up existing project",
                fields={"original": str(project_path), "backup": str(backup)},
            )

        created = await generator.create_project(self.config, Path(opts.output_path or "."))
        return await asyncio.to_thread(_list_top_level, Path(created))

    async def _process_templates(self) -> list[str]:
        generator = self.pipeline.generator
        if generator is None:
            raise CollaboratorUnavailableError("generator")
        return await generator.process_templates(self.project_path, self.config.template_context())

    # ------------------------------------------------------------------
    # Non-fatal stages
    # ------------------------------------------------------------------

    async def _post_validate(self, result: ProjectWorkflowResult) -> None:
        validator = self.pipeline.validator
        if validator is None:
            self._add_warning("Post-generation validation skipped: validation engine not available")
            return
        try:
            outcome = await validator.validate_project(self.project_path, self.options.validation_options)
        except Exception as exc:
            self._add_warning(f"Post-generation validation failed: {exc}")
            return
        result.validation_result = outcome
        if not outcome.valid:
            self._add_warning(
                f"Generated project has validation issues: {outcome.error_count} errors, "
                f"{outcome.warning_count} warnings"
            )

    async def _post_audit(self, result: ProjectWorkflowResult) -> None:
        auditor = self.pipeline.auditor
        if auditor is None:
            self._add_warning("Post-generation audit skipped: audit engine not available")
            return
        try:
            outcome = await auditor.audit_project(self.project_path, self.options.audit_options)
        except Exception as exc:
            self._add_warning(f"Post-generation audit failed: {exc}")
            return
        result.audit_result = outcome
        if not outcome.passed:
            self._add_warning(f"Generated project did not pass audit (score {outcome.overall_score:.1f})")

    async def _write_report(self, result: ProjectWorkflowResult) -> None:
        fmt = self.options.report_format
        base = self.project_path / f"generation-report{report_extension(fmt)}"
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
        result.report_path = str(written[0])
