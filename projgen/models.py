"""Domain records exchanged between the workflow core and its collaborators.

Project configuration, validation issues and fixes, audit findings, and cache
statistics.  Everything is a Pydantic v2 model so results can be dumped
straight to JSON for ``--output-format json`` callers.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

PROJECT_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")


class ProjectConfig(BaseModel):
    """Description of the project to scaffold."""

    name: str = Field(default="", description="Project name (directory and package name)")
    description: str = Field(default="", description="Short project description")
    template: str = Field(default="default", description="Template set to render")
    author: str = Field(default="")
    email: str = Field(default="")
    license: str = Field(default="MIT", description="SPDX licence identifier")
    version: str = Field(default="0.1.0")
    components: list[str] = Field(
        default_factory=list,
        description="Optional components, e.g. 'docker', 'ci'",
    )
    variables: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra template variables substituted during processing",
    )

    def template_context(self) -> dict[str, Any]:
        """Return the Jinja2 context used to render this project."""
        context: dict[str, Any] = {
            "project_name": self.name,
            "description": self.description,
            "author": self.author,
            "email": self.email,
            "license": self.license,
            "version": self.version,
            "components": list(self.components),
            "year": datetime.now().year,
        }
        context.update(self.variables)
        return context


class ConfigValidationResult(BaseModel):
    """Outcome of validating a ``ProjectConfig``."""

    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationOptions(BaseModel):
    """Tuning for project validation."""

    verbose: bool = False
    strict: bool = Field(default=False, description="Treat warnings as errors")
    rules: list[str] = Field(
        default_factory=list,
        description="Restrict validation to these rule ids (empty = all rules)",
    )


class ValidationIssue(BaseModel):
    """A single problem found while validating a project."""

    type: str = Field(default="structure", description="Issue family, e.g. 'structure', 'format'")
    severity: str = Field(default="error", description="'error', 'warning' or 'info'")
    message: str
    file: str = Field(default="", description="Path relative to the project root")
    line: Optional[int] = None
    rule: str = Field(default="")
    fixable: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """Aggregated validation result for a project."""

    project_path: str = ""
    valid: bool = True
    issues: list[ValidationIssue] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @computed_field  # type: ignore[misc]
    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "warning")

    @computed_field  # type: ignore[misc]
    @property
    def fixable_count(self) -> int:
        return sum(1 for issue in self.issues if issue.fixable)


class Fix(BaseModel):
    """A fix applied (or attempted) for a validation issue."""

    rule: str
    file: str
    action: str = Field(..., description="'create', 'update' or 'delete'")
    description: str = ""


class FixResult(BaseModel):
    """Result of applying a batch of fixes."""

    applied: list[Fix] = Field(default_factory=list)
    failed: list[Fix] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditOptions(BaseModel):
    """Which audit categories to run."""

    security: bool = True
    quality: bool = True
    licenses: bool = True
    performance: bool = True
    detailed: bool = False


class AuditFinding(BaseModel):
    """A single issue discovered by an audit check."""

    category: str = Field(..., description="'security', 'quality', 'licenses' or 'performance'")
    severity: str = Field(default="warning", description="'critical', 'error', 'warning' or 'info'")
    rule: str = ""
    file: str = ""
    line: Optional[int] = None
    description: str
    suggestion: str = ""


class AuditCategory(BaseModel):
    """Score and findings for one audit category."""

    name: str
    score: float = Field(default=100.0, ge=0.0, le=100.0)
    findings: list[AuditFinding] = Field(default_factory=list)


class AuditResult(BaseModel):
    """Combined audit report for a project."""

    project_path: str = ""
    timestamp: str = ""
    categories: dict[str, AuditCategory] = Field(default_factory=dict)
    overall_score: float = Field(default=0.0, ge=0.0, le=100.0)
    passed: bool = False
    summary: str = ""

    @property
    def findings(self) -> list[AuditFinding]:
        """All findings across categories, in category order."""
        return [f for category in self.categories.values() for f in category.findings]


# ---------------------------------------------------------------------------
# Templates and cache
# ---------------------------------------------------------------------------

class TemplateInfo(BaseModel):
    """A template set available for scaffolding."""

    name: str
    description: str = ""
    files: list[str] = Field(default_factory=list)


class CacheStats(BaseModel):
    """Snapshot of the offline template cache."""

    cache_dir: str = ""
    total_entries: int = Field(default=0, ge=0)
    total_size: int = Field(default=0, ge=0, description="Bytes on disk")
    templates: list[str] = Field(default_factory=list)
    last_sync: Optional[datetime] = None
    valid: bool = True
