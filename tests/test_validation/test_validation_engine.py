"""Unit tests for the ValidationEngine module.

Tests configuration checks, the project rules (required files, empty
README, JSON/YAML syntax), strict mode, rule selection and automatic
fixes for missing required files.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from projgen.models import ProjectConfig, ValidationIssue, ValidationOptions
from projgen.validation import REQUIRED_FILES, ValidationEngine, validate_project_config


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def engine() -> ValidationEngine:
    """Fresh ValidationEngine instance."""
    return ValidationEngine()


@pytest.fixture
def complete_project(tmp_path: Path) -> Path:
    """A project with every required file present and valid."""
    root = tmp_path / "complete"
    root.mkdir()
    (root / "README.md").write_text("# complete\n", encoding="utf-8")
    (root / ".gitignore").write_text(".venv/\n", encoding="utf-8")
    (root / "LICENSE").write_text("MIT\n", encoding="utf-8")
    (root / "package.json").write_text(json.dumps({"name": "complete"}), encoding="utf-8")
    (root / "ci.yml").write_text("on: [push]\n", encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Configuration validation
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestConfigValidation:
    """Checks on ProjectConfig fields."""

    def test_valid_config(self):
        result = validate_project_config(
            ProjectConfig(name="demo-app", email="dev@example.com", components=["docker"])
        )
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_missing_name(self):
        result = validate_project_config(ProjectConfig(name=""))
        assert not result.valid
        assert "project name is required" in result.errors

    @pytest.mark.parametrize("name", ["1app", "my app", "app!", "-app"])
    def test_invalid_name(self, name):
        result = validate_project_config(ProjectConfig(name=name))
        assert not result.valid
        assert result.errors[0].startswith(f"invalid project name '{name}'")

    def test_invalid_email(self):
        result = validate_project_config(ProjectConfig(name="demo", email="not-an-email"))
        assert result.errors == ["invalid email address 'not-an-email'"]

    def test_warnings_do_not_invalidate(self):
        result = validate_project_config(
            ProjectConfig(name="demo", license="", version="v1", components=["ci", "ci"])
        )
        assert result.valid
        assert result.warnings == [
            "no license specified",
            "version 'v1' is not a semantic version",
            "duplicate components listed",
        ]

    def test_missing_template(self):
        result = validate_project_config(ProjectConfig(name="demo", template=""))
        assert "template name is required" in result.errors

    @pytest.mark.asyncio
    async def test_engine_delegates(self, engine: ValidationEngine):
        result = await engine.validate_configuration(ProjectConfig(name=""))
        assert result.valid is False


# ---------------------------------------------------------------------------
# Project validation
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestProjectValidation:
    """The project rules."""

    @pytest.mark.asyncio
    async def test_complete_project_is_valid(self, engine, complete_project):
        result = await engine.validate_project(complete_project)
        assert result.valid
        assert result.issues == []
        assert result.project_path == str(complete_project)

    @pytest.mark.asyncio
    async def test_missing_directory(self, engine, tmp_path):
        result = await engine.validate_project(tmp_path / "nowhere")
        assert not result.valid
        assert [i.rule for i in result.issues] == ["project-exists"]

    @pytest.mark.asyncio
    async def test_missing_required_files(self, engine, tmp_path):
        result = await engine.validate_project(tmp_path)

        by_file = {i.file: i for i in result.issues}
        assert set(by_file) == {name for name, _, _ in REQUIRED_FILES}
        assert by_file["README.md"].severity == "error"
        assert by_file[".gitignore"].severity == "warning"
        assert all(i.fixable for i in result.issues)
        assert result.error_count == 1
        assert result.warning_count == 2
        assert result.fixable_count == 3
        assert not result.valid

    @pytest.mark.asyncio
    async def test_empty_readme(self, engine, complete_project):
        (complete_project / "README.md").write_text("  \n", encoding="utf-8")
        result = await engine.validate_project(complete_project)
        assert [i.rule for i in result.issues] == ["empty-file"]
        assert result.valid

    @pytest.mark.asyncio
    async def test_invalid_json(self, engine, complete_project):
        (complete_project / "config").mkdir()
        (complete_project / "config" / "bad.json").write_text('{\n  "a": 1,\n}', encoding="utf-8")
        result = await engine.validate_project(complete_project)

        assert not result.valid
        issue = result.issues[0]
        assert issue.rule == "json-syntax"
        assert issue.file == "config/bad.json"
        assert issue.line == 3

    @pytest.mark.asyncio
    async def test_invalid_yaml(self, engine, complete_project):
        (complete_project / "ci.yml").write_text("jobs:\n  test: [unclosed\n", encoding="utf-8")
        result = await engine.validate_project(complete_project)
        assert [i.rule for i in result.issues] == ["yaml-syntax"]
        assert result.issues[0].line is not None

    @pytest.mark.asyncio
    async def test_vendor_dirs_skipped(self, engine, complete_project):
        (complete_project / "node_modules").mkdir()
        (complete_project / "node_modules" / "broken.json").write_text("{", encoding="utf-8")
        result = await engine.validate_project(complete_project)
        assert result.valid

    @pytest.mark.asyncio
    async def test_strict_mode_fails_on_warnings(self, engine, complete_project):
        (complete_project / "LICENSE").unlink()
        lenient = await engine.validate_project(complete_project)
        strict = await engine.validate_project(complete_project, ValidationOptions(strict=True))
        assert lenient.valid is True
        assert strict.valid is False

    @pytest.mark.asyncio
    async def test_rule_selection(self, engine, tmp_path):
        (tmp_path / "bad.json").write_text("{", encoding="utf-8")
        result = await engine.validate_project(tmp_path, ValidationOptions(rules=["json-syntax"]))
        assert [i.rule for i in result.issues] == ["json-syntax"]


# ---------------------------------------------------------------------------
# Fixes
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestFixes:
    """Automatic fixes."""

    def test_get_fixable_issues(self, engine):
        issues = [
            ValidationIssue(rule="required-file", file="LICENSE", message="m", fixable=True),
            ValidationIssue(rule="json-syntax", file="a.json", message="m"),
        ]
        assert [i.file for i in engine.get_fixable_issues(issues)] == ["LICENSE"]

    @pytest.mark.asyncio
    async def test_creates_missing_files(self, engine, tmp_path):
        project = tmp_path / "fixme"
        project.mkdir()
        before = await engine.validate_project(project)

        fixed = await engine.fix_validation_issues(project, engine.get_fixable_issues(before.issues))

        assert sorted(f.file for f in fixed.applied) == [".gitignore", "LICENSE", "README.md"]
        assert fixed.failed == []
        assert (project / "README.md").read_text(encoding="utf-8") == "# fixme\n"
        after = await engine.validate_project(project)
        assert after.valid
        assert after.issues == []

    @pytest.mark.asyncio
    async def test_unfixable_issue_reported(self, engine, tmp_path):
        issue = ValidationIssue(rule="json-syntax", file="a.json", message="Invalid JSON")
        result = await engine.fix_validation_issues(tmp_path, [issue])
        assert result.applied == []
        assert [f.file for f in result.failed] == ["a.json"]
        assert result.errors == ["no automatic fix for json-syntax in a.json"]


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestReport:
    @pytest.mark.asyncio
    async def test_json_report(self, engine, tmp_path):
        result = await engine.validate_project(tmp_path)
        report = json.loads(await engine.generate_validation_report(result, "json"))
        assert report["error_count"] == 1
        assert len(report["issues"]) == 3
