"""Security audit: hard-coded secrets, committed env files and unsafe calls."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from projgen.models import AuditCategory, AuditFinding

from ._common import calculate_score, collect_files, find_line, read_text, relative

_TEXT_SUFFIXES = {
    ".py", ".js", ".ts", ".tsx", ".jsx", ".json", ".yml", ".yaml", ".toml",
    ".cfg", ".ini", ".env", ".sh", ".md", ".txt", "",
}

_RE_SECRET_ASSIGNMENT = re.compile(
    r"""(?ix)
    \b(password|passwd|secret|api[_-]?key|access[_-]?token|auth[_-]?token)\b
    \s*[:=]\s*
    ["']([^"'\s]{8,})["']
    """
)
_RE_AWS_KEY = re.compile(r"\bAKIA[0-9A-Z]{16}\b")
_RE_PRIVATE_KEY = re.compile(r"-----BEGIN (?:RSA |EC |OPENSSH |DSA )?PRIVATE KEY-----")
_RE_EVAL = re.compile(r"(?<![\w.])(eval|exec)\s*\(")
_RE_SHELL_TRUE = re.compile(r"subprocess\.\w+\([^)]*shell\s*=\s*True", re.DOTALL)

_PLACEHOLDER_VALUES = {"changeme", "password", "example", "xxxxxxxx", "your-api-key"}


class SecurityAuditor:
    """Scans project files for common security problems."""

    async def audit(self, project_path: str | Path) -> AuditCategory:
        root = Path(project_path)
        findings = await asyncio.to_thread(self._scan, root)
        return AuditCategory(name="security", score=calculate_score(findings), findings=findings)

    def _scan(self, root: Path) -> list[AuditFinding]:
        findings: list[AuditFinding] = []
        for path in collect_files(root, _TEXT_SUFFIXES):
            rel = relative(path, root)
            if path.name == ".env":
                findings.append(
                    AuditFinding(
                        category="security",
                        severity="error",
                        rule="committed-env-file",
                        file=rel,
                        description="Environment file with potential secrets is part of the project.",
                        suggestion="Remove the file and ship a .env.example instead; list .env in .gitignore.",
                    )
                )
            content = read_text(path)
            if not content:
                continue
            findings.extend(self._check_secrets(content, rel))
            if path.suffix == ".py":
                findings.extend(self._check_unsafe_calls(content, rel))
        return findings

    def _check_secrets(self, content: str, rel: str) -> list[AuditFinding]:
        findings: list[AuditFinding] = []
        for m in _RE_SECRET_ASSIGNMENT.finditer(content):
            if m.group(2).lower() in _PLACEHOLDER_VALUES:
                continue
            findings.append(
                AuditFinding(
                    category="security",
                    severity="critical",
                    rule="hardcoded-secret",
                    file=rel,
                    line=find_line(content, m.start()),
                    description=f"Possible hard-coded {m.group(1).lower()}.",
                    suggestion="Load secrets from the environment or a secret manager.",
                )
            )
        for m in _RE_AWS_KEY.finditer(content):
            findings.append(
                AuditFinding(
                    category="security",
                    severity="critical",
                    rule="aws-access-key",
                    file=rel,
                    line=find_line(content, m.start()),
                    description="AWS access key id found in source.",
                    suggestion="Revoke the key and load credentials from the environment.",
                )
            )
        for m in _RE_PRIVATE_KEY.finditer(content):
            findings.append(
                AuditFinding(
                    category="security",
                    severity="critical",
                    rule="private-key",
                    file=rel,
                    line=find_line(content, m.start()),
                    description="Private key material found in the project.",
                    suggestion="Remove the key from the repository and rotate it.",
                )
            )
        return findings

    def _check_unsafe_calls(self, content: str, rel: str) -> list[AuditFinding]:
        findings: list[AuditFinding] = []
        for m in _RE_EVAL.finditer(content):
            findings.append(
                AuditFinding(
                    category="security",
                    severity="warning",
                    rule="dynamic-eval",
                    file=rel,
                    line=find_line(content, m.start()),
                    description=f"Use of {m.group(1)}() on dynamic input.",
                    suggestion="Replace with explicit parsing, e.g. ast.literal_eval or json.loads.",
                )
            )
        for m in _RE_SHELL_TRUE.finditer(content):
            findings.append(
                AuditFinding(
                    category="security",
                    severity="warning",
                    rule="shell-injection",
                    file=rel,
                    line=find_line(content, m.start()),
                    description="subprocess call with shell=True.",
                    suggestion="Pass an argument list and drop shell=True.",
                )
            )
        return findings
