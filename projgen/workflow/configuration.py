"""Configuration management workflow: export, import, validate and merge."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

from projgen.interfaces import ConfigManager
from projgen.logger import get_logger
from projgen.models import ProjectConfig
from projgen.workflow.base import PhaseWorkflow
from projgen.workflow.errors import (
    CollaboratorUnavailableError,
    UnknownOperationError,
    WorkflowInputError,
)
from projgen.workflow.models import (
    ConfigurationWorkflowOptions,
    ConfigurationWorkflowResult,
    Stage,
)

if TYPE_CHECKING:
    from projgen.workflow.pipeline import Pipeline

logger = get_logger(__name__)

OPERATIONS = ("export", "import", "validate", "merge")


class ConfigurationWorkflow(PhaseWorkflow[ConfigurationWorkflowResult]):
    """Dispatches a single configuration operation to the config manager."""

    name = "configuration"

    def __init__(
        self,
        pipeline: "Pipeline",
        options: ConfigurationWorkflowOptions,
        workflow_id: str = "",
    ) -> None:
        super().__init__(workflow_id)
        self.pipeline = pipeline
        self.options = options

    async def execute(self) -> ConfigurationWorkflowResult:
        opts = self.options
        operation = opts.operation
        result = ConfigurationWorkflowResult(
            start_time=self.tracker.start_time,
            operation=operation,
            config_path=opts.config_path,
            output_path=opts.output_path,
        )

        self._checkpoint(Stage.INITIALIZATION.value)
        self._update_progress(
            Stage.INITIALIZATION.value,
            "Initializing configuration workflow",
            0.0,
            f"Starting {operation} operation",
        )

        handlers: dict[str, Callable[[ConfigurationWorkflowResult], Awaitable[None]]] = {
            "export": self._export,
            "import": self._import,
            "validate": self._validate,
            "merge": self._merge,
        }
        self._checkpoint(operation)
        await self._run_fatal(result, operation, self._dispatch, handlers, result)

        self._checkpoint(Stage.COMPLETION.value)
        self._update_progress(
            Stage.COMPLETION.value,
            "Configuration workflow completed",
            100.0,
            "Configuration operation completed successfully",
        )
        return self._finish(result)

    async def _dispatch(
        self,
        handlers: dict[str, Callable[[ConfigurationWorkflowResult], Awaitable[None]]],
        result: ConfigurationWorkflowResult,
    ) -> None:
        handler = handlers.get(self.options.operation)
        if handler is None:
            raise UnknownOperationError(self.options.operation)
        await handler(result)

    def _manager(self) -> ConfigManager:
        manager = self.pipeline.config_manager
        if manager is None:
            raise CollaboratorUnavailableError("configuration manager")
        return manager

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def _export(self, result: ConfigurationWorkflowResult) -> None:
        self._update_progress("export", "Exporting configuration", 50.0, "Saving configuration to file")
        manager = self._manager()
        opts = self.options
        if opts.config is None:
            raise WorkflowInputError("a project configuration is required for export")
        if not opts.output_path:
            raise WorkflowInputError("an output path is required for export")

        written = await manager.export_config(opts.config, opts.output_path, opts.format)
        result.output_path = str(written)
        result.configuration = opts.config
        logger.info(
            "Configuration exported",
            fields={"workflow_id": self.workflow_id, "output_path": result.output_path},
        )

    async def _import(self, result: ConfigurationWorkflowResult) -> None:
        self._update_progress("import", "Importing configuration", 50.0, "Loading configuration from file")
        manager = self._manager()
        opts = self.options
        if not opts.config_path:
            raise WorkflowInputError("a configuration path is required for import")

        config = await manager.import_config(opts.config_path)
        result.configuration = config
        if opts.validate_after_import:
            outcome = await manager.validate_config(config)
            result.validation_result = outcome
            self._warn_invalid(outcome.valid, outcome.errors)

    async def _validate(self, result: ConfigurationWorkflowResult) -> None:
        self._update_progress("validate", "Validating configuration", 50.0, "Checking configuration validity")
        manager = self._manager()
        config = await self._load_target(manager)
        outcome = await manager.validate_config(config)
        result.configuration = config
        result.validation_result = outcome
        self._warn_invalid(outcome.valid, outcome.errors)

    async def _merge(self, result: ConfigurationWorkflowResult) -> None:
        self._update_progress("merge", "Merging configurations", 50.0, "Combining multiple configuration sources")
        manager = self._manager()
        opts = self.options
        if not opts.sources:
            raise WorkflowInputError("at least one source configuration is required for merge")

        configs = [await manager.import_config(source) for source in opts.sources]
        merged = await manager.merge_configs(configs)
        result.configuration = merged
        if opts.output_path:
            written = await manager.export_config(merged, opts.output_path, opts.format)
            result.output_path = str(written)
        logger.info(
            "Configurations merged",
            fields={"workflow_id": self.workflow_id, "sources": len(configs)},
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_target(self, manager: ConfigManager) -> ProjectConfig:
        opts = self.options
        if opts.config is not None:
            return opts.config
        if opts.config_path:
            return await manager.import_config(Path(opts.config_path))
        raise WorkflowInputError("a configuration or configuration path is required for validate")

    def _warn_invalid(self, valid: bool, errors: list[str]) -> None:
        if valid:
            return
        self._add_warning(f"Configuration is invalid: {len(errors)} errors")
        for error in errors:
            self._add_warning(error)
