"""Collaborator contracts consumed by the workflow core.

The phase workflows only ever talk to these protocols.  Concrete
implementations live in ``projgen.scaffolder``, ``projgen.validation``,
``projgen.audit``, ``projgen.cache`` and ``projgen.config_manager``; tests
substitute lightweight fakes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from projgen.models import (
    AuditOptions,
    AuditResult,
    CacheStats,
    ConfigValidationResult,
    FixResult,
    ProjectConfig,
    TemplateInfo,
    ValidationIssue,
    ValidationOptions,
    ValidationResult,
)


@runtime_checkable
class Generator(Protocol):
    """Writes project files to disk."""

    async def create_project(self, config: ProjectConfig, output_path: str | Path) -> Path: ...

    def file_exists(self, path: str | Path) -> bool: ...

    async def backup_project(self, path: str | Path) -> Path: ...

    async def process_templates(
        self, project_path: str | Path, variables: dict[str, Any]
    ) -> list[str]: ...


@runtime_checkable
class TemplateManager(Protocol):
    """Readiness queries about the available template sets."""

    async def list_templates(self) -> list[TemplateInfo]: ...

    async def is_available(self, name: str) -> bool: ...


@runtime_checkable
class ValidationEngine(Protocol):
    """Structural validation of configurations and generated projects."""

    async def validate_configuration(self, config: ProjectConfig) -> ConfigValidationResult: ...

    async def validate_project(
        self, project_path: str | Path, options: ValidationOptions | None = None
    ) -> ValidationResult: ...

    def get_fixable_issues(self, issues: list[ValidationIssue]) -> list[ValidationIssue]: ...

    async def fix_validation_issues(
        self, project_path: str | Path, issues: list[ValidationIssue]
    ) -> FixResult: ...

    async def generate_validation_report(self, result: ValidationResult, fmt: str) -> bytes: ...


@runtime_checkable
class AuditEngine(Protocol):
    """Security, quality, licence and performance audit."""

    async def audit_project(
        self, project_path: str | Path, options: AuditOptions | None = None
    ) -> AuditResult: ...

    async def generate_audit_report(self, result: AuditResult, fmt: str) -> bytes: ...


@runtime_checkable
class CacheManager(Protocol):
    """Offline template cache."""

    async def get_stats(self) -> CacheStats: ...

    async def validate_cache(self) -> None: ...

    async def repair_cache(self) -> None: ...

    async def sync(self) -> CacheStats: ...


@runtime_checkable
class ConfigManager(Protocol):
    """Persistence of project configurations."""

    async def export_config(
        self, config: ProjectConfig, output_path: str | Path, fmt: str = "yaml"
    ) -> Path: ...

    async def import_config(self, config_path: str | Path) -> ProjectConfig: ...

    async def merge_configs(self, configs: list[ProjectConfig]) -> ProjectConfig: ...

    async def validate_config(self, config: ProjectConfig) -> ConfigValidationResult: ...
