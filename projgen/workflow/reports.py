"""Writing validation and audit reports to disk."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from projgen.interfaces import AuditEngine, ValidationEngine
from projgen.models import AuditResult, ValidationResult
from projgen.utils import write_bytes

REPORT_EXTENSIONS: dict[str, str] = {
    "json": ".json",
    "markdown": ".md",
    "html": ".html",
    "text": ".txt",
}


def report_extension(fmt: str) -> str:
    return REPORT_EXTENSIONS.get(fmt, f".{fmt}")


def default_report_path(project_path: str | Path, fmt: str, prefix: str = "analysis-report") -> Path:
    """``<project>/<prefix>-<timestamp><ext>``."""
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return Path(project_path) / f"{prefix}-{stamp}{report_extension(fmt)}"


def _suffixed(base: Path, label: str) -> Path:
    return base.with_name(f"{base.stem}-{label}{base.suffix}")


async def write_reports(
    base: Path,
    fmt: str,
    validator: Optional[ValidationEngine] = None,
    auditor: Optional[AuditEngine] = None,
    validation_result: Optional[ValidationResult] = None,
    audit_result: Optional[AuditResult] = None,
) -> list[Path]:
    """Render and write one file per available result.

    With a single result the report is written to ``base`` itself; with both,
    ``-validation`` and ``-audit`` are inserted before the extension.
    """
    jobs: list[tuple[str, bytes]] = []
    if validation_result is not None and validator is not None:
        jobs.append(("validation", await validator.generate_validation_report(validation_result, fmt)))
    if audit_result is not None and auditor is not None:
        jobs.append(("audit", await auditor.generate_audit_report(audit_result, fmt)))

    written: list[Path] = []
    for label, content in jobs:
        target = base if len(jobs) == 1 else _suffixed(base, label)
        written.append(await write_bytes(target, content))
    return written
