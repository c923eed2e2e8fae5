"""Structural validation of project configurations and generated projects.

Project checks:

* ``required-file`` -- README.md, .gitignore and LICENSE must exist (fixable)
* ``empty-file``    -- README.md must not be empty
* ``json-syntax``   -- every ``*.json`` file must parse
* ``yaml-syntax``   -- every ``*.yml`` / ``*.yaml`` file must parse
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Optional

import yaml

from projgen.logger import get_logger
from projgen.models import (
    PROJECT_NAME_PATTERN,
    ConfigValidationResult,
    Fix,
    FixResult,
    ProjectConfig,
    ValidationIssue,
    ValidationOptions,
    ValidationResult,
)
from projgen.reporting import render_report

logger = get_logger(__name__)

_SKIP_DIRS = {"node_modules", "__pycache__", ".git", "dist", "build", ".venv", "venv"}

_RE_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_RE_VERSION = re.compile(r"^\d+\.\d+\.\d+(?:[-+.][0-9A-Za-z.-]+)?$")

# (file, severity, default content)
REQUIRED_FILES: list[tuple[str, str, str]] = [
    ("README.md", "error", "# {name}\n"),
    (".gitignore", "warning", "__pycache__/\n*.py[cod]\n.venv/\ndist/\nbuild/\n"),
    ("LICENSE", "warning", "Copyright (c) {name}\n\nAll rights reserved.\n"),
]


# ---------------------------------------------------------------------------
# Configuration validation
# ---------------------------------------------------------------------------

def validate_project_config(config: ProjectConfig) -> ConfigValidationResult:
    """Check a project configuration for missing or malformed fields."""
    errors: list[str] = []
    warnings: list[str] = []

    if not config.name:
        errors.append("project name is required")
    elif not PROJECT_NAME_PATTERN.match(config.name):
        errors.append(
            f"invalid project name '{config.name}': must start with a letter and contain "
            "only letters, digits, '-' or '_'"
        )
    if not config.template:
        errors.append("template name is required")
    if not config.license:
        warnings.append("no license specified")
    if config.email and not _RE_EMAIL.match(config.email):
        errors.append(f"invalid email address '{config.email}'")
    if config.version and not _RE_VERSION.match(config.version):
        warnings.append(f"version '{config.version}' is not a semantic version")
    if len(set(config.components)) != len(config.components):
        warnings.append("duplicate components listed")

    return ConfigValidationResult(valid=not errors, errors=errors, warnings=warnings)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _collect_files(root: Path, suffixes: set[str]) -> list[Path]:
    """Recursively collect files with the given suffixes, skipping build/vendor dirs."""
    results: list[Path] = []
    for child in sorted(root.iterdir()):
        if child.is_dir():
            if child.name in _SKIP_DIRS:
                continue
            results.extend(_collect_files(child, suffixes))
        elif child.suffix in suffixes:
            results.append(child)
    return results


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


# ---------------------------------------------------------------------------
# ValidationEngine
# ---------------------------------------------------------------------------

class ValidationEngine:
    """Validates configurations and generated project trees."""

    RULES = ("required-file", "empty-file", "json-syntax", "yaml-syntax")

    async def validate_configuration(self, config: ProjectConfig) -> ConfigValidationResult:
        return validate_project_config(config)

    async def validate_project(
        self, project_path: str | Path, options: Optional[ValidationOptions] = None
    ) -> ValidationResult:
        """Run every enabled rule against *project_path*."""
        options = options or ValidationOptions()
        root = Path(project_path)
        if not root.is_dir():
            return ValidationResult(
                project_path=str(root),
                valid=False,
                issues=[
                    ValidationIssue(
                        type="structure",
                        severity="error",
                        rule="project-exists",
                        file=str(root),
                        message=f"Project path does not exist: {root}",
                    )
                ],
            )

        issues = await asyncio.to_thread(self._run_rules, root, options)
        errors = [i for i in issues if i.severity == "error"]
        warnings = [i for i in issues if i.severity == "warning"]
        valid = not errors and not (options.strict and warnings)

        if options.verbose:
            logger.info(
                "Project validated",
                fields={"path": str(root), "errors": len(errors), "warnings": len(warnings)},
            )
        return ValidationResult(project_path=str(root), valid=valid, issues=issues)

    def _run_rules(self, root: Path, options: ValidationOptions) -> list[ValidationIssue]:
        enabled = set(options.rules) if options.rules else set(self.RULES)
        issues: list[ValidationIssue] = []
        if "required-file" in enabled:
            issues.extend(self._check_required_files(root))
        if "empty-file" in enabled:
            issues.extend(self._check_empty_readme(root))
        if "json-syntax" in enabled:
            issues.extend(self._check_json(root))
        if "yaml-syntax" in enabled:
            issues.extend(self._check_yaml(root))
        return issues

    # -- Rules -------------------------------------------------------------

    def _check_required_files(self, root: Path) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for name, severity, _ in REQUIRED_FILES:
            if not (root / name).exists():
                issues.append(
                    ValidationIssue(
                        type="structure",
                        severity=severity,
                        rule="required-file",
                        file=name,
                        message=f"Missing required file {name}",
                        fixable=True,
                    )
                )
        return issues

    def _check_empty_readme(self, root: Path) -> list[ValidationIssue]:
        readme = root / "README.md"
        if readme.is_file() and not readme.read_text(encoding="utf-8").strip():
            return [
                ValidationIssue(
                    type="content",
                    severity="warning",
                    rule="empty-file",
                    file="README.md",
                    message="README.md is empty",
                )
            ]
        return []

    def _check_json(self, root: Path) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for path in _collect_files(root, {".json"}):
            try:
                json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                issues.append(
                    ValidationIssue(
                        type="format",
                        severity="error",
                        rule="json-syntax",
                        file=_relative(path, root),
                        line=getattr(exc, "lineno", None),
                        message=f"Invalid JSON: {exc}",
                    )
                )
        return issues

    def _check_yaml(self, root: Path) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for path in _collect_files(root, {".yml", ".yaml"}):
            try:
                yaml.safe_load(path.read_text(encoding="utf-8"))
            except (yaml.YAMLError, UnicodeDecodeError) as exc:
                mark = getattr(exc, "problem_mark", None)
                issues.append(
                    ValidationIssue(
                        type="format",
                        severity="error",
                        rule="yaml-syntax",
                        file=_relative(path, root),
                        line=mark.line + 1 if mark is not None else None,
                        message=f"Invalid YAML: {exc}",
                    )
                )
        return issues

    # -- Fixes -------------------------------------------------------------

    def get_fixable_issues(self, issues: list[ValidationIssue]) -> list[ValidationIssue]:
        return [issue for issue in issues if issue.fixable]

    async def fix_validation_issues(
        self, project_path: str | Path, issues: list[ValidationIssue]
    ) -> FixResult:
        """Create missing required files; other issues are reported as failed."""
        return await asyncio.to_thread(self._apply_fixes, Path(project_path), issues)

    def _apply_fixes(self, root: Path, issues: list[ValidationIssue]) -> FixResult:
        defaults = {name: content for name, _, content in REQUIRED_FILES}
        result = FixResult()
        for issue in issues:
            fix = Fix(
                rule=issue.rule,
                file=issue.file,
                action="create",
                description=f"Create {issue.file}",
            )
            template = defaults.get(issue.file)
            if issue.rule != "required-file" or template is None:
                result.failed.append(fix)
                result.errors.append(f"no automatic fix for {issue.rule} in {issue.file}")
                continue
            target = root / issue.file
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(template.format(name=root.name), encoding="utf-8")
            except OSError as exc:
                result.failed.append(fix)
                result.errors.append(f"{issue.file}: {exc}")
                continue
            result.applied.append(fix)
        return result

    # -- Reports -----------------------------------------------------------

    async def generate_validation_report(self, result: ValidationResult, fmt: str) -> bytes:
        return render_report("validation", result, fmt)
