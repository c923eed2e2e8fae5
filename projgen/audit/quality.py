"""Code quality audit: swallowed exceptions, oversized files, missing tests."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from projgen.models import AuditCategory, AuditFinding

from ._common import calculate_score, collect_files, find_line, read_text, relative

MAX_FILE_LINES = 500

_RE_BARE_EXCEPT = re.compile(r"^\s*except\s*:\s*$", re.MULTILINE)
_RE_EXCEPT_PASS = re.compile(r"except[^:\n]*:\s*\n\s+pass\s*$", re.MULTILINE)
_RE_TODO = re.compile(r"#\s*(TODO|FIXME|XXX)\b")

_SOURCE_SUFFIXES = {".py", ".js", ".ts", ".tsx", ".jsx"}


class QualityAuditor:
    """Static code-quality checks over the project's source files."""

    async def audit(self, project_path: str | Path) -> AuditCategory:
        root = Path(project_path)
        findings = await asyncio.to_thread(self._scan, root)
        return AuditCategory(name="quality", score=calculate_score(findings), findings=findings)

    def _scan(self, root: Path) -> list[AuditFinding]:
        findings: list[AuditFinding] = []
        sources = collect_files(root, _SOURCE_SUFFIXES)

        for path in sources:
            content = read_text(path)
            rel = relative(path, root)
            if path.suffix == ".py":
                findings.extend(self._check_exceptions(content, rel))
            findings.extend(self._check_markers(content, rel))
            line_count = content.count("\n") + 1
            if line_count > MAX_FILE_LINES:
                findings.append(
                    AuditFinding(
                        category="quality",
                        severity="warning",
                        rule="large-file",
                        file=rel,
                        description=f"File has {line_count} lines (limit {MAX_FILE_LINES}).",
                        suggestion="Split the module into smaller units.",
                    )
                )

        if sources and not self._has_tests(root):
            findings.append(
                AuditFinding(
                    category="quality",
                    severity="warning",
                    rule="missing-tests",
                    description="Project has source files but no tests directory.",
                    suggestion="Add a tests/ directory with at least a smoke test.",
                )
            )
        return findings

    def _check_exceptions(self, content: str, rel: str) -> list[AuditFinding]:
        findings: list[AuditFinding] = []
        for m in _RE_BARE_EXCEPT.finditer(content):
            findings.append(
                AuditFinding(
                    category="quality",
                    severity="error",
                    rule="bare-except",
                    file=rel,
                    line=find_line(content, m.start()),
                    description="Bare 'except:' catches SystemExit and KeyboardInterrupt.",
                    suggestion="Catch a specific exception class.",
                )
            )
        for m in _RE_EXCEPT_PASS.finditer(content):
            findings.append(
                AuditFinding(
                    category="quality",
                    severity="warning",
                    rule="swallowed-exception",
                    file=rel,
                    line=find_line(content, m.start()),
                    description="Exception handler silently passes.",
                    suggestion="Log the exception or handle it explicitly.",
                )
            )
        return findings

    def _check_markers(self, content: str, rel: str) -> list[AuditFinding]:
        return [
            AuditFinding(
                category="quality",
                severity="info",
                rule="todo-marker",
                file=rel,
                line=find_line(content, m.start()),
                description=f"{m.group(1)} marker left in source.",
            )
            for m in _RE_TODO.finditer(content)
        ]

    @staticmethod
    def _has_tests(root: Path) -> bool:
        return any((root / name).is_dir() for name in ("tests", "test", "__tests__"))
