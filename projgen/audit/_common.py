"""Helpers shared by the audit checkers."""

from __future__ import annotations

from pathlib import Path

from projgen.models import AuditFinding

SKIP_DIRS = {"node_modules", "__pycache__", ".git", "dist", "build", ".venv", "venv"}

# Points deducted from a category's score per finding
SEVERITY_WEIGHTS = {"critical": 25.0, "error": 10.0, "warning": 3.0, "info": 0.5}


def collect_files(root: Path, suffixes: set[str] | None = None) -> list[Path]:
    """Recursively collect files, skipping vendor and build directories.

    With ``suffixes=None`` every file is returned.
    """
    results: list[Path] = []
    for child in sorted(root.iterdir()):
        if child.is_dir():
            if child.name in SKIP_DIRS:
                continue
            results.extend(collect_files(child, suffixes))
        elif suffixes is None or child.suffix in suffixes:
            results.append(child)
    return results


def read_text(path: Path) -> str:
    """Read *path* as UTF-8, returning ``""`` for binary files."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return ""


def relative(path: Path, root: Path) -> str:
    """Return *path* relative to *root* as a forward-slash string."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def find_line(content: str, offset: int) -> int:
    """Return the 1-based line number for a character offset."""
    return content[:offset].count("\n") + 1


def calculate_score(findings: list[AuditFinding]) -> float:
    """Score from 0 to 100; each finding deducts points by severity."""
    deductions = sum(SEVERITY_WEIGHTS.get(f.severity, 1.0) for f in findings)
    return max(0.0, round(100.0 - deductions, 1))
