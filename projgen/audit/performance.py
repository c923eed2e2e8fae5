"""Performance audit: oversized assets, blocking calls in async code, dependency bloat."""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path

from projgen.models import AuditCategory, AuditFinding

from ._common import calculate_score, collect_files, read_text, relative

LARGE_FILE_BYTES = 1024 * 1024
MAX_DEPENDENCIES = 50

_RE_BLOCKING = re.compile(r"\b(time\.sleep|requests\.(?:get|post|put|patch|delete))\s*\(")


class PerformanceAuditor:
    """Flags common performance anti-patterns."""

    async def audit(self, project_path: str | Path) -> AuditCategory:
        root = Path(project_path)
        findings = await asyncio.to_thread(self._scan, root)
        return AuditCategory(name="performance", score=calculate_score(findings), findings=findings)

    def _scan(self, root: Path) -> list[AuditFinding]:
        findings: list[AuditFinding] = []
        for path in collect_files(root):
            size = path.stat().st_size
            if size > LARGE_FILE_BYTES:
                findings.append(
                    AuditFinding(
                        category="performance",
                        severity="warning",
                        rule="large-asset",
                        file=relative(path, root),
                        description=f"File is {size / 1024:.0f} KB.",
                        suggestion="Compress the asset or move it out of the repository.",
                    )
                )
            if path.suffix == ".py":
                findings.extend(self._check_blocking_in_async(read_text(path), relative(path, root)))
        findings.extend(self._check_dependency_count(root))
        return findings

    def _check_blocking_in_async(self, content: str, rel: str) -> list[AuditFinding]:
        """Detect blocking calls inside ``async def`` bodies (indentation heuristic)."""
        findings: list[AuditFinding] = []
        async_indent: int | None = None
        for idx, line in enumerate(content.split("\n"), start=1):
            stripped = line.lstrip()
            indent = len(line) - len(stripped)
            if not stripped:
                continue
            if async_indent is not None and indent <= async_indent:
                async_indent = None
            if stripped.startswith("async def "):
                async_indent = indent
                continue
            if async_indent is None:
                continue
            m = _RE_BLOCKING.search(stripped)
            if m:
                findings.append(
                    AuditFinding(
                        category="performance",
                        severity="warning",
                        rule="blocking-call-in-async",
                        file=rel,
                        line=idx,
                        description=f"Blocking call {m.group(1)}() inside an async function.",
                        suggestion="Use the asyncio equivalent or run it with asyncio.to_thread().",
                    )
                )
        return findings

    def _check_dependency_count(self, root: Path) -> list[AuditFinding]:
        package_json = root / "package.json"
        if not package_json.is_file():
            return []
        try:
            data = json.loads(read_text(package_json) or "{}")
        except json.JSONDecodeError:
            return []
        deps = data.get("dependencies", {}) if isinstance(data, dict) else {}
        if isinstance(deps, dict) and len(deps) > MAX_DEPENDENCIES:
            return [
                AuditFinding(
                    category="performance",
                    severity="info",
                    rule="dependency-count",
                    file="package.json",
                    description=f"{len(deps)} production dependencies (more than {MAX_DEPENDENCIES}).",
                    suggestion="Review dependencies and drop unused ones.",
                )
            ]
        return []
