"""Integration tests for the workflow manager wired to the real collaborators.

These tests generate projects from the bundled template sets, validate,
fix and audit them, and run the offline cache and configuration
workflows end-to-end on the local filesystem.

No external services are required; the remote template index is never
configured.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import yaml

from projgen.models import ProjectConfig
from projgen.workflow import (
    PhaseError,
    ProjectWorkflowOptions,
    ValidationAuditWorkflowOptions,
    WorkflowKind,
    WorkflowState,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _generate(manager, settings, name: str = "e2e-app", **config) -> Path:
    """Generate a project with the default template set and return its root."""
    result = await manager.execute_project_generation(
        ProjectConfig(name=name, author="Integration", **config),
        ProjectWorkflowOptions(output_path=str(settings.output_dir)),
    )
    assert result.success, result.errors
    return Path(result.project_path)


# ---------------------------------------------------------------------------
# Generate, check, fix
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestGenerateAndCheck:
    """Generation followed by validation, fixing and audit."""

    async def test_generated_project_is_clean(self, real_manager, settings):
        project = await _generate(real_manager, settings, components=["docker", "ci"])

        project_yaml = yaml.safe_load((project / "project.yaml").read_text(encoding="utf-8"))
        assert project_yaml["name"] == "e2e-app"
        assert project_yaml["author"] == "Integration"
        assert not list(project.rglob("*.tmpl"))

        result = await real_manager.create_validation_audit_workflow(str(project)).execute()
        assert result.validation_result.valid
        assert result.validation_result.issues == []
        assert result.audit_result.passed
        assert result.audit_result.overall_score == 100.0

    async def test_broken_project_is_fixed(self, real_manager, settings):
        project = await _generate(real_manager, settings)
        (project / "LICENSE").unlink()
        (project / "config.json").write_text("{broken", encoding="utf-8")

        result = await real_manager.create_validation_audit_workflow(
            str(project), ValidationAuditWorkflowOptions(fix_issues=True)
        ).execute()

        assert [f.file for f in result.fixes_applied] == ["LICENSE"]
        assert (project / "LICENSE").is_file()
        # the JSON error cannot be fixed automatically
        assert result.validation_result.valid is False
        assert [i.rule for i in result.validation_result.issues] == ["required-file", "json-syntax"]
        # the audit sees the project as it was before fixes
        licenses = result.audit_result.categories["licenses"]
        assert [f.rule for f in licenses.findings] == ["missing-license"]
        assert licenses.score < 100.0

    async def test_reports_written_next_to_project(self, real_manager, settings):
        project = await _generate(real_manager, settings)
        result = await real_manager.create_validation_audit_workflow(
            str(project),
            ValidationAuditWorkflowOptions(generate_report=True, output_format="text"),
        ).execute()

        assert len(result.report_files) == 2
        for report in map(Path, result.report_files):
            assert report.parent == project
            assert report.suffix == ".txt"
            assert report.read_text(encoding="utf-8")

    async def test_regeneration_requires_force(self, real_manager, settings):
        project = await _generate(real_manager, settings)
        with pytest.raises(PhaseError, match="already exists"):
            await _generate(real_manager, settings)

        result = await real_manager.execute_project_generation(
            ProjectConfig(name="e2e-app", template="minimal"),
            ProjectWorkflowOptions(
                output_path=str(settings.output_dir), force=True, backup_existing=True
            ),
        )
        assert result.success
        assert (Path(result.backup_path) / "Makefile").is_file()
        assert (project / "Makefile").is_file()


# ---------------------------------------------------------------------------
# Offline cache
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestOfflineCache:
    """Cache sync, integrity checks, repair and offline generation."""

    async def test_sync_validate_repair_generate(self, real_manager, settings, tmp_path):
        stats = await real_manager.sync_cache()
        assert {"default", "minimal"} <= set(stats.templates)
        assert stats.valid

        validated = await real_manager.validate_cache()
        assert validated.success
        assert validated.cache_repaired is False

        readme = settings.cached_templates_dir / "minimal" / "files" / "README.md.j2"
        readme.write_text("# tampered\n", encoding="utf-8")
        with pytest.raises(PhaseError, match="checksum mismatch"):
            await real_manager.validate_cache()

        repaired = await real_manager.validate_cache(repair=True)
        assert repaired.cache_repaired is True
        assert repaired.cache_stats.valid

        generated = await real_manager.generate_offline(
            ProjectConfig(name="offline-app", template="minimal"), tmp_path / "offline"
        )
        assert generated.project_path == str(tmp_path / "offline" / "offline-app")
        assert (tmp_path / "offline" / "offline-app" / "README.md").is_file()


# ---------------------------------------------------------------------------
# Configuration files
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestConfigurationRoundTrip:
    """Export, import and merge configuration files, then generate from them."""

    async def test_merge_then_generate(self, real_manager, settings, tmp_path):
        base = await real_manager.export_configuration(
            ProjectConfig(name="merged-app", components=["docker"]), tmp_path / "base.yaml"
        )
        local = tmp_path / "local.json"
        local.write_text('{"components": ["ci"], "author": "Local"}', encoding="utf-8")

        merged = await real_manager.merge_configurations([base, local], tmp_path / "merged.yaml")
        assert merged.components == ["docker", "ci"]
        assert await real_manager.import_configuration(tmp_path / "merged.yaml") == merged
        assert (await real_manager.validate_configuration(merged)).valid

        project = await _generate(
            real_manager, settings, name=merged.name, components=merged.components
        )
        assert (project / "Dockerfile").is_file()
        assert (project / ".github" / "workflows" / "ci.yml").is_file()


# ---------------------------------------------------------------------------
# Registry bookkeeping
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestHistory:
    """Every finished workflow is retired to history in completion order."""

    async def test_concurrent_workflows_recorded(self, real_manager, settings):
        names = [f"app-{i}" for i in range(3)]
        await asyncio.gather(*(_generate(real_manager, settings, name=n) for n in names))
        await real_manager.sync_cache(update=False)

        history = real_manager.list_history()
        assert real_manager.list_active() == []
        assert [h.kind for h in history].count(WorkflowKind.PROJECT_GENERATION) == 3
        assert history[-1].kind == WorkflowKind.OFFLINE
        assert all(h.state == WorkflowState.COMPLETED for h in history)
        assert {h.project_path for h in history[:3]} == {
            str(settings.output_dir / n) for n in names
        }
