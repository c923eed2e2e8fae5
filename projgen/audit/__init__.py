"""Audit engine for generated projects.

Orchestrates the security, quality, licence and performance checks and
returns a combined :class:`~projgen.models.AuditResult` with a weighted
overall score.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from projgen.audit.licenses import LicenseAuditor
from projgen.audit.performance import PerformanceAuditor
from projgen.audit.quality import QualityAuditor
from projgen.audit.security import SecurityAuditor
from projgen.logger import get_logger
from projgen.models import AuditCategory, AuditOptions, AuditResult
from projgen.reporting import render_report

__all__ = [
    "AuditEngine",
    "LicenseAuditor",
    "PerformanceAuditor",
    "QualityAuditor",
    "SecurityAuditor",
]

logger = get_logger(__name__)


class AuditEngine:
    """Runs every enabled audit category for a project.

    Usage::

        engine = AuditEngine()
        result = await engine.audit_project("/path/to/project")
    """

    # Score weights for each category
    WEIGHTS = {
        "security": 0.35,
        "quality": 0.25,
        "licenses": 0.15,
        "performance": 0.25,
    }

    PASS_THRESHOLD = 60.0

    def __init__(
        self,
        security: SecurityAuditor | None = None,
        quality: QualityAuditor | None = None,
        licenses: LicenseAuditor | None = None,
        performance: PerformanceAuditor | None = None,
    ) -> None:
        self._auditors = {
            "security": security or SecurityAuditor(),
            "quality": quality or QualityAuditor(),
            "licenses": licenses or LicenseAuditor(),
            "performance": performance or PerformanceAuditor(),
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def audit_project(
        self, project_path: str | Path, options: Optional[AuditOptions] = None
    ) -> AuditResult:
        """Run the enabled categories concurrently and combine the results.

        Raises:
            FileNotFoundError: *project_path* is not a directory.
        """
        options = options or AuditOptions()
        root = Path(project_path)
        if not root.is_dir():
            raise FileNotFoundError(f"project path does not exist: {root}")

        enabled = [name for name in self.WEIGHTS if getattr(options, name)]
        results = await asyncio.gather(*(self._auditors[name].audit(root) for name in enabled))
        categories = {category.name: category for category in results}

        overall = self._calculate_overall_score(categories)
        passed = overall >= self.PASS_THRESHOLD and not self._has_critical_findings(categories)

        result = AuditResult(
            project_path=str(root),
            timestamp=datetime.now(timezone.utc).isoformat(),
            categories=categories,
            overall_score=overall,
            passed=passed,
            summary=self._build_summary(categories, overall, passed, options.detailed),
        )
        logger.info(
            "Project audited",
            fields={"path": str(root), "score": overall, "passed": passed},
        )
        return result

    async def generate_audit_report(self, result: AuditResult, fmt: str) -> bytes:
        return render_report("audit", result, fmt)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _calculate_overall_score(self, categories: dict[str, AuditCategory]) -> float:
        """Weighted average of the available category scores."""
        if not categories:
            return 0.0

        # Re-normalise weights so they sum to 1.0 across available categories
        available_weight = sum(self.WEIGHTS[name] for name in categories)
        if available_weight == 0:
            return 0.0

        weighted_sum = sum(
            c.score * (self.WEIGHTS[name] / available_weight) for name, c in categories.items()
        )
        return round(weighted_sum, 1)

    @staticmethod
    def _has_critical_findings(categories: dict[str, AuditCategory]) -> bool:
        return any(
            f.severity == "critical" for c in categories.values() for f in c.findings
        )

    @staticmethod
    def _build_summary(
        categories: dict[str, AuditCategory],
        overall: float,
        passed: bool,
        detailed: bool,
    ) -> str:
        verdict = "PASSED" if passed else "FAILED"
        parts = [f"Project {verdict} audit with an overall score of {overall}/100."]
        for name, category in categories.items():
            parts.append(f"{name.capitalize()}: {len(category.findings)} findings (score: {category.score}).")
            if detailed:
                parts.extend(
                    f"  [{f.severity}] {f.rule}: {f.description}" for f in category.findings
                )
        return " ".join(parts)
