"""Unit tests for report rendering (projgen.reporting)."""

from __future__ import annotations

import json

import pytest

from projgen.models import AuditCategory, AuditFinding, AuditResult, ValidationIssue, ValidationResult
from projgen.reporting import UnsupportedFormatError, render_report

pytestmark = pytest.mark.unit


@pytest.fixture
def validation_result() -> ValidationResult:
    return ValidationResult(
        project_path="/tmp/demo",
        valid=False,
        issues=[
            ValidationIssue(rule="required-file", file="README.md", message="Missing required file README.md",
                            severity="error", fixable=True),
            ValidationIssue(rule="yaml-syntax", file="ci.yml", line=4, message="Invalid YAML <here>",
                            severity="error"),
        ],
    )


@pytest.fixture
def audit_result() -> AuditResult:
    return AuditResult(
        project_path="/tmp/demo",
        overall_score=72.5,
        passed=True,
        summary="Project PASSED audit.",
        categories={
            "security": AuditCategory(
                name="security",
                score=97.0,
                findings=[
                    AuditFinding(category="security", severity="warning", rule="dynamic-eval",
                                 file="app.py", line=3, description="Use of eval() on dynamic input."),
                ],
            ),
            "quality": AuditCategory(name="quality", score=100.0),
        },
    )


class TestValidationReports:
    def test_json(self, validation_result):
        data = json.loads(render_report("validation", validation_result, "json"))
        assert data["valid"] is False
        assert data["error_count"] == 2
        assert data["fixable_count"] == 1

    def test_markdown(self, validation_result):
        text = render_report("validation", validation_result, "markdown").decode("utf-8")
        assert text.startswith("# Validation Report")
        assert "| error | yaml-syntax | ci.yml:4 |" in text
        assert "**Errors:** 2" in text

    def test_text(self, validation_result):
        text = render_report("validation", validation_result, "text").decode("utf-8")
        assert "Valid: no (2 errors, 0 warnings, 1 fixable)" in text
        assert "[ERROR] required-file README.md - Missing required file README.md" in text

    def test_html_escapes_content(self, validation_result):
        html = render_report("validation", validation_result, "html").decode("utf-8")
        assert "<h1>Validation Report</h1>" in html
        assert "Invalid YAML &lt;here&gt;" in html

    def test_markdown_no_issues(self):
        text = render_report("validation", ValidationResult(project_path="/x"), "markdown").decode("utf-8")
        assert "No issues found." in text


class TestAuditReports:
    def test_json(self, audit_result):
        data = json.loads(render_report("audit", audit_result, "json"))
        assert data["overall_score"] == 72.5
        assert set(data["categories"]) == {"security", "quality"}

    def test_markdown(self, audit_result):
        text = render_report("audit", audit_result, "markdown").decode("utf-8")
        assert "- **Overall score:** 72.5/100 (passed)" in text
        assert "## Security (97.0/100)" in text
        assert "`dynamic-eval` app.py:3" in text
        assert "No findings." in text

    def test_text(self, audit_result):
        text = render_report("audit", audit_result, "text").decode("utf-8")
        assert "Overall score: 72.5/100 (PASSED)" in text
        assert "[WARNING] dynamic-eval app.py:3" in text


class TestUnsupportedFormat:
    @pytest.mark.parametrize("fmt", ["pdf", "JSON", ""])
    def test_rejected(self, validation_result, fmt):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            render_report("validation", validation_result, fmt)
        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.format == fmt
        assert "expected one of json, markdown, html, text" in str(exc_info.value)
