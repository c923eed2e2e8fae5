"""Workflow pipeline.

The :class:`Pipeline` owns the collaborators (generator, template manager,
validation engine, audit engine, cache manager and config manager) and
builds the phase workflows that use them.  Any collaborator may be ``None``;
a phase that needs a missing collaborator either skips its non-fatal work or
fails with :class:`~projgen.workflow.errors.CollaboratorUnavailableError`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from projgen.interfaces import (
    AuditEngine,
    CacheManager,
    ConfigManager,
    Generator,
    TemplateManager,
    ValidationEngine,
)
from projgen.models import ProjectConfig
from projgen.workflow.configuration import ConfigurationWorkflow
from projgen.workflow.models import (
    ConfigurationWorkflowOptions,
    OfflineWorkflowOptions,
    ProjectWorkflowOptions,
    ValidationAuditWorkflowOptions,
)
from projgen.workflow.offline import OfflineWorkflow
from projgen.workflow.project import ProjectGenerationWorkflow
from projgen.workflow.validation_audit import ValidationAuditWorkflow


class Pipeline:
    """Collaborator container and phase-workflow factory.

    Attributes:
        generator: Writes project files.
        template_manager: Answers template availability queries.
        validator: Validates configurations and generated projects.
        auditor: Audits generated projects.
        cache_manager: Offline template cache.
        config_manager: Configuration persistence.
    """

    def __init__(
        self,
        generator: Optional[Generator] = None,
        template_manager: Optional[TemplateManager] = None,
        validator: Optional[ValidationEngine] = None,
        auditor: Optional[AuditEngine] = None,
        cache_manager: Optional[CacheManager] = None,
        config_manager: Optional[ConfigManager] = None,
    ) -> None:
        self.generator = generator
        self.template_manager = template_manager
        self.validator = validator
        self.auditor = auditor
        self.cache_manager = cache_manager
        self.config_manager = config_manager

    def create_project_workflow(
        self,
        config: ProjectConfig,
        options: ProjectWorkflowOptions,
        workflow_id: str = "",
    ) -> ProjectGenerationWorkflow:
        return ProjectGenerationWorkflow(self, config, options, workflow_id=workflow_id)

    def create_validation_audit_workflow(
        self,
        project_path: str | Path,
        options: ValidationAuditWorkflowOptions,
        workflow_id: str = "",
    ) -> ValidationAuditWorkflow:
        return ValidationAuditWorkflow(self, project_path, options, workflow_id=workflow_id)

    def create_configuration_workflow(
        self,
        options: ConfigurationWorkflowOptions,
        workflow_id: str = "",
    ) -> ConfigurationWorkflow:
        return ConfigurationWorkflow(self, options, workflow_id=workflow_id)

    def create_offline_workflow(
        self,
        options: OfflineWorkflowOptions,
        workflow_id: str = "",
    ) -> OfflineWorkflow:
        return OfflineWorkflow(self, options, workflow_id=workflow_id)
