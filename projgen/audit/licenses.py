"""Licence audit: presence, identification and copyleft detection."""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Optional

from projgen.models import AuditCategory, AuditFinding

from ._common import calculate_score, read_text

LICENSE_FILES = ("LICENSE", "LICENSE.md", "LICENSE.txt", "COPYING")

_SIGNATURES: list[tuple[str, re.Pattern[str]]] = [
    ("MIT", re.compile(r"Permission is hereby granted, free of charge", re.I)),
    ("Apache-2.0", re.compile(r"Apache License,?\s+Version 2\.0", re.I)),
    ("AGPL-3.0", re.compile(r"GNU AFFERO GENERAL PUBLIC LICENSE", re.I)),
    ("GPL-3.0", re.compile(r"GNU GENERAL PUBLIC LICENSE\s+Version 3", re.I)),
    ("GPL-2.0", re.compile(r"GNU GENERAL PUBLIC LICENSE\s+Version 2", re.I)),
    ("BSD-3-Clause", re.compile(r"Neither the name of", re.I)),
    ("MPL-2.0", re.compile(r"Mozilla Public License,?\s+v(?:ersion)?\.?\s*2\.0", re.I)),
]

COPYLEFT = {"GPL-2.0", "GPL-3.0", "AGPL-3.0"}

_RE_PYPROJECT_LICENSE = re.compile(r'^\s*license\s*=\s*(?:\{\s*text\s*=\s*)?"([^"]+)"', re.M)


def identify_license(text: str) -> Optional[str]:
    """Return the SPDX id whose signature matches *text*, if any."""
    for spdx, pattern in _SIGNATURES:
        if pattern.search(text):
            return spdx
    return None


class LicenseAuditor:
    """Checks that the project declares a licence consistently."""

    async def audit(self, project_path: str | Path) -> AuditCategory:
        root = Path(project_path)
        findings = await asyncio.to_thread(self._scan, root)
        return AuditCategory(name="licenses", score=calculate_score(findings), findings=findings)

    def _scan(self, root: Path) -> list[AuditFinding]:
        findings: list[AuditFinding] = []
        license_path = next((root / n for n in LICENSE_FILES if (root / n).is_file()), None)
        if license_path is None:
            return [
                AuditFinding(
                    category="licenses",
                    severity="error",
                    rule="missing-license",
                    description="Project has no LICENSE file.",
                    suggestion="Add a LICENSE file with the project's licence text.",
                )
            ]

        detected = identify_license(read_text(license_path))
        if detected is None:
            findings.append(
                AuditFinding(
                    category="licenses",
                    severity="info",
                    rule="unrecognised-license",
                    file=license_path.name,
                    description="Licence text does not match a known licence.",
                )
            )
        elif detected in COPYLEFT:
            findings.append(
                AuditFinding(
                    category="licenses",
                    severity="warning",
                    rule="copyleft-license",
                    file=license_path.name,
                    description=f"Project is licensed under copyleft licence {detected}.",
                    suggestion="Confirm that copyleft obligations are acceptable for distribution.",
                )
            )

        declared = self._declared_licenses(root)
        for source, value in declared.items():
            if detected and value and value != detected:
                findings.append(
                    AuditFinding(
                        category="licenses",
                        severity="warning",
                        rule="license-mismatch",
                        file=source,
                        description=f"{source} declares {value} but {license_path.name} is {detected}.",
                        suggestion="Make the declared licence match the LICENSE file.",
                    )
                )
        return findings

    @staticmethod
    def _declared_licenses(root: Path) -> dict[str, str]:
        declared: dict[str, str] = {}
        package_json = root / "package.json"
        if package_json.is_file():
            try:
                data = json.loads(read_text(package_json) or "{}")
            except json.JSONDecodeError:
                data = {}
            if isinstance(data, dict) and isinstance(data.get("license"), str):
                declared["package.json"] = data["license"]
        pyproject = root / "pyproject.toml"
        if pyproject.is_file():
            m = _RE_PYPROJECT_LICENSE.search(read_text(pyproject))
            if m:
                declared["pyproject.toml"] = m.group(1)
        return declared
