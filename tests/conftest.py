"""Shared pytest fixtures for the projgen test suite.

Provides reusable fixtures for:
- Project configurations and temporary output directories
- Mocked collaborators (generator, template manager, validator, auditor,
  cache manager, config manager)
- A ``Pipeline`` and ``WorkflowManager`` wired to the mocks
- A ``WorkflowManager`` wired to the real collaborators
- A gate helper for pausing a collaborator mid-workflow
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from projgen.app import create_manager
from projgen.config import CacheConfig, Config
from projgen.models import (
    AuditCategory,
    AuditResult,
    CacheStats,
    ConfigValidationResult,
    Fix,
    FixResult,
    ProjectConfig,
    TemplateInfo,
    ValidationIssue,
    ValidationResult,
)
from projgen.workflow import Pipeline, WorkflowManager


# ---------------------------------------------------------------------------
# Configurations & directories
# ---------------------------------------------------------------------------

@pytest.fixture
def project_config() -> ProjectConfig:
    """A valid project configuration using the bundled default template."""
    return ProjectConfig(
        name="demo-app",
        description="A demo project.",
        author="Ada Lovelace",
        email="ada@example.com",
        components=["docker"],
        variables={"python_version": "3.12"},
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Parent directory that generated projects are written into."""
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture
def existing_project(tmp_path: Path) -> Path:
    """A small project on disk with a README but no LICENSE or .gitignore."""
    root = tmp_path / "existing"
    root.mkdir()
    (root / "README.md").write_text("# existing\n", encoding="utf-8")
    (root / "app.py").write_text("print('hello')\n", encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Result builders
# ---------------------------------------------------------------------------

def make_audit_result(score: float = 90.0, passed: bool = True) -> AuditResult:
    return AuditResult(
        project_path="demo-app",
        categories={"security": AuditCategory(name="security", score=score)},
        overall_score=score,
        passed=passed,
        summary="ok",
    )


def _fix_all(project_path: Any, issues: list[ValidationIssue]) -> FixResult:
    return FixResult(
        applied=[Fix(rule=i.rule, file=i.file, action="create") for i in issues]
    )


# ---------------------------------------------------------------------------
# Mocked collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_generator() -> MagicMock:
    """Generator that writes a README into ``<output>/<name>``."""

    async def create_project(config: ProjectConfig, output_path: Any) -> Path:
        root = Path(output_path) / config.name
        root.mkdir(parents=True, exist_ok=True)
        (root / "README.md").write_text(f"# {config.name}\n", encoding="utf-8")
        (root / "project.yaml").write_text(f"name: {config.name}\n", encoding="utf-8")
        return root

    generator = MagicMock()
    generator.file_exists.side_effect = lambda path: Path(path).exists()
    generator.create_project = AsyncMock(side_effect=create_project)
    generator.backup_project = AsyncMock(side_effect=lambda path: Path(f"{path}.backup"))
    generator.process_templates = AsyncMock(return_value=[])
    return generator


@pytest.fixture
def mock_template_manager() -> MagicMock:
    manager = MagicMock()
    manager.is_available = AsyncMock(return_value=True)
    manager.list_templates = AsyncMock(return_value=[TemplateInfo(name="default")])
    return manager


@pytest.fixture
def mock_validator() -> MagicMock:
    validator = MagicMock()
    validator.validate_configuration = AsyncMock(return_value=ConfigValidationResult())
    validator.validate_project = AsyncMock(return_value=ValidationResult(project_path="demo-app"))
    validator.get_fixable_issues.side_effect = lambda issues: [i for i in issues if i.fixable]
    validator.fix_validation_issues = AsyncMock(side_effect=_fix_all)
    validator.generate_validation_report = AsyncMock(return_value=b"validation report")
    return validator


@pytest.fixture
def mock_auditor() -> MagicMock:
    auditor = MagicMock()
    auditor.audit_project = AsyncMock(return_value=make_audit_result())
    auditor.generate_audit_report = AsyncMock(return_value=b"audit report")
    return auditor


@pytest.fixture
def mock_cache_manager() -> MagicMock:
    cache = MagicMock()
    cache.get_stats = AsyncMock(return_value=CacheStats(cache_dir="/cache", total_entries=3))
    cache.validate_cache = AsyncMock(return_value=None)
    cache.repair_cache = AsyncMock(return_value=None)
    cache.sync = AsyncMock(return_value=CacheStats(cache_dir="/cache", total_entries=3))
    return cache


@pytest.fixture
def mock_config_manager() -> MagicMock:
    manager = MagicMock()
    manager.export_config = AsyncMock(side_effect=lambda config, path, fmt="yaml": Path(path))
    manager.import_config = AsyncMock(return_value=ProjectConfig(name="imported"))
    manager.merge_configs = AsyncMock(side_effect=lambda configs: configs[-1])
    manager.validate_config = AsyncMock(return_value=ConfigValidationResult())
    return manager


@pytest.fixture
def pipeline(
    mock_generator: MagicMock,
    mock_template_manager: MagicMock,
    mock_validator: MagicMock,
    mock_auditor: MagicMock,
    mock_cache_manager: MagicMock,
    mock_config_manager: MagicMock,
) -> Pipeline:
    return Pipeline(
        generator=mock_generator,
        template_manager=mock_template_manager,
        validator=mock_validator,
        auditor=mock_auditor,
        cache_manager=mock_cache_manager,
        config_manager=mock_config_manager,
    )


@pytest.fixture
def manager(pipeline: Pipeline) -> WorkflowManager:
    return WorkflowManager(pipeline)


# ---------------------------------------------------------------------------
# Real collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path: Path) -> Config:
    """projgen settings rooted in a temporary directory."""
    return Config(
        output_dir=tmp_path / "projects",
        cache=CacheConfig(cache_dir=tmp_path / "cache"),
    )


@pytest.fixture
def real_manager(settings: Config) -> WorkflowManager:
    """WorkflowManager using the real generator, engines and managers."""
    return create_manager(settings)


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------

class Gate:
    """Pauses an async collaborator until the test releases it.

    Use ``mock.side_effect = gate.wait``.
    """

    def __init__(self, result: Any = None) -> None:
        self.entered = asyncio.Event()
        self.released = asyncio.Event()
        self.result = result

    async def wait(self, *args: Any, **kwargs: Any) -> Any:
        self.entered.set()
        await self.released.wait()
        return self.result

    def release(self) -> None:
        self.released.set()


@pytest.fixture
def gate() -> Gate:
    return Gate(ConfigValidationResult())
