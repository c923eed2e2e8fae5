"""Workflow manager.

Creates, registers, executes and cancels workflows of every kind, and
answers status queries from the shared :class:`WorkflowRegistry`.

Usage::

    manager = WorkflowManager(pipeline)
    workflow = manager.create_project_workflow(config, ProjectWorkflowOptions(output_path="out"))
    result = await workflow.execute()
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional, TypeVar, Union

from projgen.logger import get_logger
from projgen.models import CacheStats, ConfigValidationResult, ProjectConfig
from projgen.workflow.base import PhaseWorkflow, ResultT
from projgen.workflow.errors import WorkflowCancelledError, WorkflowInputError
from projgen.workflow.handle import Workflow
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
    WorkflowOptions,
    WorkflowState,
    WorkflowStatus,
)
from projgen.workflow.pipeline import Pipeline
from projgen.workflow.registry import WorkflowRegistry

logger = get_logger(__name__)

OptionsT = TypeVar("OptionsT", bound=WorkflowOptions)


def new_workflow_id() -> str:
    return f"workflow_{uuid.uuid4().hex}"


def _copy_options(options: OptionsT) -> OptionsT:
    """Deep-copy ``options`` while keeping the same progress callback object."""
    callback = options.progress_callback
    detached = options.model_copy(update={"progress_callback": None})
    return detached.model_copy(deep=True).model_copy(update={"progress_callback": callback})


class WorkflowManager:
    """Entry point for creating and running workflows.

    Args:
        pipeline: Collaborator container used to build phase workflows.
        registry: Shared registry; a private one is created when omitted.
    """

    def __init__(self, pipeline: Pipeline, registry: Optional[WorkflowRegistry] = None) -> None:
        self.pipeline = pipeline
        self.registry = registry if registry is not None else WorkflowRegistry()
        self._phases: dict[str, PhaseWorkflow[Any]] = {}
        self._phases_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_project_workflow(
        self,
        config: Optional[ProjectConfig],
        options: Optional[ProjectWorkflowOptions] = None,
    ) -> Workflow[ProjectWorkflowResult]:
        if config is None:
            raise WorkflowInputError("project configuration is required")
        opts = _copy_options(options or ProjectWorkflowOptions())
        project_path = Path(opts.output_path or ".") / config.name
        return self._register(
            WorkflowKind.PROJECT_GENERATION,
            lambda wid: self.pipeline.create_project_workflow(
                config.model_copy(deep=True), opts, workflow_id=wid
            ),
            str(project_path),
            opts,
        )

    def create_validation_workflow(
        self,
        project_path: str | Path,
        options: Optional[ValidationWorkflowOptions] = None,
    ) -> Workflow[ValidationAuditWorkflowResult]:
        opts = options or ValidationWorkflowOptions()
        combined = ValidationAuditWorkflowOptions(
            validation_enabled=True,
            audit_enabled=False,
            validation_options=opts.validation_options,
            fix_issues=opts.fix_issues,
            generate_report=opts.generate_report,
            output_format=opts.output_format,
            output_file=opts.output_file,
            progress_callback=opts.progress_callback,
        )
        return self._create_validation_audit(WorkflowKind.VALIDATION, project_path, combined)

    def create_audit_workflow(
        self,
        project_path: str | Path,
        options: Optional[AuditWorkflowOptions] = None,
    ) -> Workflow[ValidationAuditWorkflowResult]:
        opts = options or AuditWorkflowOptions()
        combined = ValidationAuditWorkflowOptions(
            validation_enabled=False,
            audit_enabled=True,
            audit_options=opts.audit_options,
            generate_report=opts.generate_report,
            output_format=opts.output_format,
            output_file=opts.output_file,
            progress_callback=opts.progress_callback,
        )
        return self._create_validation_audit(WorkflowKind.AUDIT, project_path, combined)

    def create_validation_audit_workflow(
        self,
        project_path: str | Path,
        options: Optional[ValidationAuditWorkflowOptions] = None,
    ) -> Workflow[ValidationAuditWorkflowResult]:
        return self._create_validation_audit(
            WorkflowKind.VALIDATION_AUDIT,
            project_path,
            options or ValidationAuditWorkflowOptions(),
        )

    def create_configuration_workflow(
        self, options: Optional[ConfigurationWorkflowOptions]
    ) -> Workflow[ConfigurationWorkflowResult]:
        if options is None:
            raise WorkflowInputError("configuration workflow options are required")
        opts = _copy_options(options)
        return self._register(
            WorkflowKind.CONFIGURATION,
            lambda wid: self.pipeline.create_configuration_workflow(opts, workflow_id=wid),
            opts.config_path or opts.output_path,
            opts,
        )

    def create_offline_workflow(
        self, options: Optional[OfflineWorkflowOptions]
    ) -> Workflow[OfflineWorkflowResult]:
        if options is None:
            raise WorkflowInputError("offline workflow options are required")
        opts = _copy_options(options)
        return self._register(
            WorkflowKind.OFFLINE,
            lambda wid: self.pipeline.create_offline_workflow(opts, workflow_id=wid),
            opts.output_path,
            opts,
        )

    def create_workflow(
        self,
        kind: Union[WorkflowKind, str],
        target: Any = None,
        options: Optional[WorkflowOptions] = None,
    ) -> Workflow[Any]:
        """Create a workflow of ``kind``.

        ``target`` is the :class:`ProjectConfig` for project generation, the
        project path for the validation and audit kinds, and ignored for the
        configuration and offline kinds.
        """
        try:
            kind = WorkflowKind(kind)
        except ValueError as exc:
            raise WorkflowInputError(f"unknown workflow kind: {kind}") from exc

        expected: dict[WorkflowKind, type[WorkflowOptions]] = {
            WorkflowKind.PROJECT_GENERATION: ProjectWorkflowOptions,
            WorkflowKind.VALIDATION: ValidationWorkflowOptions,
            WorkflowKind.AUDIT: AuditWorkflowOptions,
            WorkflowKind.VALIDATION_AUDIT: ValidationAuditWorkflowOptions,
            WorkflowKind.CONFIGURATION: ConfigurationWorkflowOptions,
            WorkflowKind.OFFLINE: OfflineWorkflowOptions,
        }
        if options is not None and not isinstance(options, expected[kind]):
            raise WorkflowInputError(
                f"{kind.value} workflow expects {expected[kind].__name__}, "
                f"got {type(options).__name__}"
            )

        if kind == WorkflowKind.PROJECT_GENERATION:
            return self.create_project_workflow(target, options)  # type: ignore[arg-type]
        if kind == WorkflowKind.VALIDATION:
            return self.create_validation_workflow(target, options)  # type: ignore[arg-type]
        if kind == WorkflowKind.AUDIT:
            return self.create_audit_workflow(target, options)  # type: ignore[arg-type]
        if kind == WorkflowKind.VALIDATION_AUDIT:
            return self.create_validation_audit_workflow(target, options)  # type: ignore[arg-type]
        if kind == WorkflowKind.CONFIGURATION:
            return self.create_configuration_workflow(options)  # type: ignore[arg-type]
        return self.create_offline_workflow(options)  # type: ignore[arg-type]

    def _create_validation_audit(
        self,
        kind: WorkflowKind,
        project_path: str | Path,
        options: ValidationAuditWorkflowOptions,
    ) -> Workflow[ValidationAuditWorkflowResult]:
        if not project_path or not str(project_path).strip():
            raise WorkflowInputError("project path is required")
        opts = _copy_options(options)
        return self._register(
            kind,
            lambda wid: self.pipeline.create_validation_audit_workflow(
                project_path, opts, workflow_id=wid
            ),
            str(project_path),
            opts,
        )

    def _register(
        self,
        kind: WorkflowKind,
        build: Callable[[str], PhaseWorkflow[ResultT]],
        project_path: str,
        options: WorkflowOptions,
    ) -> Workflow[ResultT]:
        workflow_id = new_workflow_id()
        phase = build(workflow_id)
        handle: Workflow[ResultT] = Workflow(workflow_id, kind, phase, self)

        handle.add_progress_listener(
            lambda progress: self.registry.update_progress(workflow_id, progress)
        )
        if options.progress_callback is not None:
            handle.set_progress_callback(options.progress_callback)

        self.registry.register(
            WorkflowStatus(
                id=workflow_id,
                kind=kind,
                progress=handle.get_progress(),
                metadata={"project_path": project_path},
            )
        )
        with self._phases_lock:
            self._phases[workflow_id] = phase

        logger.info(
            "Workflow registered",
            fields={"workflow_id": workflow_id, "kind": kind.value, "project_path": project_path},
        )
        return handle

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def execute(self, workflow: Workflow[ResultT]) -> ResultT:
        """Run ``workflow`` on the current task and record its outcome.

        Raises:
            WorkflowNotFoundError: The workflow is not active.
            WorkflowStateError: The workflow was already started.
            PhaseError: A fatal stage failed.
            WorkflowCancelledError: The workflow was cancelled while running.
        """
        self.registry.mark_running(workflow.id)
        logger.info(
            "Workflow started",
            fields={"workflow_id": workflow.id, "kind": workflow.kind.value},
        )
        try:
            result = await workflow.phase.execute()
        except WorkflowCancelledError:
            self._complete(workflow, WorkflowState.CANCELLED, None)
            raise
        except asyncio.CancelledError:
            self._complete(workflow, WorkflowState.FAILED, "execution cancelled by caller")
            raise
        except Exception as exc:
            self._complete(workflow, WorkflowState.FAILED, str(exc))
            raise
        self._complete(workflow, WorkflowState.COMPLETED, None)
        return result

    def cancel(self, workflow_id: str) -> None:
        """Cancel a running workflow.

        The registry entry moves to history immediately.  The phase workflow
        stops before its next stage; a collaborator call already in flight is
        allowed to finish.

        Raises:
            WorkflowNotFoundError: ``workflow_id`` is not active.
            WorkflowStateError: The workflow is not running.
        """
        info = self.registry.cancel(workflow_id)
        with self._phases_lock:
            phase = self._phases.pop(workflow_id, None)
        if phase is not None:
            phase.request_cancel()
        logger.info(
            "Workflow cancelled",
            fields={
                "workflow_id": workflow_id,
                "kind": info.kind.value,
                "project_path": info.project_path,
            },
        )

    def _complete(
        self, workflow: Workflow[Any], state: WorkflowState, error: Optional[str]
    ) -> None:
        with self._phases_lock:
            self._phases.pop(workflow.id, None)
        info = self.registry.finish(workflow.id, state, error)
        if info is None:
            # Already retired, e.g. by cancel().
            return
        fields = {
            "workflow_id": info.id,
            "kind": info.kind.value,
            "project_path": info.project_path,
            "state": info.state.value,
            "duration": f"{info.duration:.2f}s",
        }
        if error:
            logger.error("Workflow failed", fields={**fields, "error": error})
        else:
            logger.info("Workflow finished", fields=fields)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_status(self, workflow_id: str) -> WorkflowStatus:
        return self.registry.get(workflow_id)

    def list_active(self) -> list[WorkflowInfo]:
        return self.registry.list_active()

    def list_history(self) -> list[WorkflowInfo]:
        return self.registry.list_history()

    # ------------------------------------------------------------------
    # Convenience operations
    # ------------------------------------------------------------------

    async def execute_project_generation(
        self, config: ProjectConfig, options: Optional[ProjectWorkflowOptions] = None
    ) -> ProjectWorkflowResult:
        return await self.create_project_workflow(config, options).execute()

    async def export_configuration(
        self, config: ProjectConfig, output_path: str | Path, fmt: str = "yaml"
    ) -> Path:
        result = await self.create_configuration_workflow(
            ConfigurationWorkflowOptions(
                operation="export", config=config, output_path=str(output_path), format=fmt
            )
        ).execute()
        return Path(result.output_path)

    async def import_configuration(
        self, config_path: str | Path, validate: bool = False
    ) -> Optional[ProjectConfig]:
        result = await self.create_configuration_workflow(
            ConfigurationWorkflowOptions(
                operation="import", config_path=str(config_path), validate_after_import=validate
            )
        ).execute()
        return result.configuration

    async def validate_configuration(
        self,
        config: Optional[ProjectConfig] = None,
        config_path: str | Path = "",
    ) -> Optional[ConfigValidationResult]:
        result = await self.create_configuration_workflow(
            ConfigurationWorkflowOptions(
                operation="validate", config=config, config_path=str(config_path)
            )
        ).execute()
        return result.validation_result

    async def merge_configurations(
        self,
        sources: list[str | Path],
        output_path: str | Path = "",
        fmt: str = "yaml",
    ) -> Optional[ProjectConfig]:
        result = await self.create_configuration_workflow(
            ConfigurationWorkflowOptions(
                operation="merge",
                sources=[str(source) for source in sources],
                output_path=str(output_path),
                format=fmt,
            )
        ).execute()
        return result.configuration

    async def sync_cache(self, update: bool = True) -> Optional[CacheStats]:
        result = await self.create_offline_workflow(
            OfflineWorkflowOptions(operation="sync", cache_update=update)
        ).execute()
        return result.cache_stats

    async def validate_cache(self, repair: bool = False) -> OfflineWorkflowResult:
        return await self.create_offline_workflow(
            OfflineWorkflowOptions(operation="validate", repair_cache=repair)
        ).execute()

    async def generate_offline(
        self, config: ProjectConfig, output_path: str | Path = "."
    ) -> OfflineWorkflowResult:
        return await self.create_offline_workflow(
            OfflineWorkflowOptions(
                operation="generate", project_config=config, output_path=str(output_path)
            )
        ).execute()
