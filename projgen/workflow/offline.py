"""Offline workflow: cache sync, cache validation/repair and offline generation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from projgen.interfaces import CacheManager
from projgen.logger import get_logger
from projgen.workflow.base import PhaseWorkflow
from projgen.workflow.errors import (
    CollaboratorUnavailableError,
    UnknownOperationError,
    WorkflowInputError,
)
from projgen.workflow.models import (
    OfflineWorkflowOptions,
    OfflineWorkflowResult,
    ProjectWorkflowOptions,
    Stage,
)

if TYPE_CHECKING:
    from projgen.workflow.pipeline import Pipeline

logger = get_logger(__name__)

OPERATIONS = ("sync", "validate", "generate")


class OfflineWorkflow(PhaseWorkflow[OfflineWorkflowResult]):
    """Dispatches a single offline operation against the cache manager."""

    name = "offline"

    def __init__(
        self,
        pipeline: "Pipeline",
        options: OfflineWorkflowOptions,
        workflow_id: str = "",
    ) -> None:
        super().__init__(workflow_id)
        self.pipeline = pipeline
        self.options = options

    async def execute(self) -> OfflineWorkflowResult:
        operation = self.options.operation
        result = OfflineWorkflowResult(start_time=self.tracker.start_time, operation=operation)

        self._checkpoint(Stage.INITIALIZATION.value)
        self._update_progress(
            Stage.INITIALIZATION.value,
            "Initializing offline workflow",
            0.0,
            f"Starting {operation} operation",
        )

        self._checkpoint(operation)
        await self._run_fatal(result, operation, self._dispatch, result)

        self._checkpoint(Stage.COMPLETION.value)
        self._update_progress(
            Stage.COMPLETION.value,
            "Offline workflow completed",
            100.0,
            "Offline operation completed successfully",
        )
        return self._finish(result)

    async def _dispatch(self, result: OfflineWorkflowResult) -> None:
        cache = self.pipeline.cache_manager
        if cache is None:
            raise CollaboratorUnavailableError("cache manager")

        operation = self.options.operation
        if operation == "sync":
            await self._sync(cache, result)
        elif operation == "validate":
            await self._validate(cache, result)
        elif operation == "generate":
            await self._generate(result)
        else:
            raise UnknownOperationError(operation)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def _sync(self, cache: CacheManager, result: OfflineWorkflowResult) -> None:
        self._update_progress("sync", "Synchronizing cache", 50.0, "Updating cached templates and data")
        if self.options.cache_update:
            await cache.sync()
        result.cache_stats = await cache.get_stats()
        logger.info(
            "Cache synchronized",
            fields={
                "workflow_id": self.workflow_id,
                "entries": result.cache_stats.total_entries,
                "updated": self.options.cache_update,
            },
        )

    async def _validate(self, cache: CacheManager, result: OfflineWorkflowResult) -> None:
        self._update_progress("validate", "Validating cache", 50.0, "Checking cache integrity")
        try:
            await cache.validate_cache()
        except Exception as exc:
            if not self.options.repair_cache:
                raise
            self._add_warning(f"Cache validation failed, repairing: {exc}")
            self._checkpoint(Stage.REPAIR.value)
            self._update_progress(Stage.REPAIR.value, "Repairing cache", 75.0, "Fixing cache corruption")
            try:
                await cache.repair_cache()
            except Exception as repair_exc:
                raise repair_exc from exc
            result.cache_repaired = True

        result.cache_stats = await cache.get_stats()

    async def _generate(self, result: OfflineWorkflowResult) -> None:
        self._update_progress("generate", "Generating project offline", 50.0, "Creating project using cached resources")
        opts = self.options
        if opts.project_config is None:
            raise WorkflowInputError("project configuration required for offline generation")

        nested = self.pipeline.create_project_workflow(
            opts.project_config,
            ProjectWorkflowOptions(
                output_path=opts.output_path or ".",
                offline=True,
                validate_after=False,
                audit_after=False,
            ),
            workflow_id=self.workflow_id,
        )
        self.share_cancellation(nested)
        try:
            generated = await nested.execute()
        finally:
            for warning in nested.tracker.warnings:
                self._add_warning(warning)
        result.project_path = generated.project_path
