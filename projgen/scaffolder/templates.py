"""Jinja2 template rendering and template-set discovery.

A *template set* is a directory laid out as::

    <name>/
        template.yaml            optional metadata (``description``)
        files/                   always rendered into the project root
        components/<component>/  rendered only when the component is selected

Files ending in ``.j2`` are rendered with Jinja2 and written without the
extension; every other file is copied verbatim.

Template sets are searched for in the bundled ``template_sets/`` directory, an
optional user override directory, and the offline cache.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path
from typing import Any, Optional

import yaml
from jinja2 import Environment, FileSystemLoader, select_autoescape

from projgen.logger import get_logger
from projgen.models import TemplateInfo

logger = get_logger(__name__)

BUNDLED_TEMPLATE_DIR = Path(__file__).parent / "template_sets"

TEMPLATE_SUFFIX = ".j2"
METADATA_FILE = "template.yaml"


class TemplateNotFoundError(LookupError):
    """No template set with the requested name exists in any search directory."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"template '{name}' not found")


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the files of one template set.

    Templates are rendered with a context dictionary that typically contains
    project metadata (name, author, licence, components, custom variables).
    """

    def __init__(self, template_dir: str | Path) -> None:
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["snake_case"] = _snake_case_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template relative to the template directory."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        return self.env.from_string(template_string).render(**context)

    async def render_tree(
        self,
        template_prefix: str,
        output_dir: str | Path,
        context: dict[str, Any],
    ) -> list[Path]:
        """Render or copy every file under *template_prefix* into *output_dir*.

        The directory structure is preserved.  Returns the written paths.
        """
        prefix_path = self.template_dir / template_prefix
        if not prefix_path.is_dir():
            return []

        written: list[Path] = []
        out_base = Path(output_dir)

        for source in sorted(p for p in prefix_path.rglob("*") if p.is_file()):
            rel = source.relative_to(prefix_path)
            if source.name.endswith(TEMPLATE_SUFFIX):
                target = out_base / str(rel)[: -len(TEMPLATE_SUFFIX)]
                content = self.render(source.relative_to(self.template_dir).as_posix(), context)
                await asyncio.to_thread(_write_file, target, content)
            else:
                target = out_base / rel
                await asyncio.to_thread(_copy_file, source, target)
            written.append(target)

        return written


# ---------------------------------------------------------------------------
# TemplateManager
# ---------------------------------------------------------------------------


class TemplateManager:
    """Discovers template sets across the configured search directories.

    Earlier directories win when the same set name appears more than once.
    """

    def __init__(
        self,
        template_dir: Optional[Path] = None,
        cache_dir: Optional[Path] = None,
    ) -> None:
        self.search_dirs: list[Path] = []
        if template_dir is not None:
            self.search_dirs.append(Path(template_dir))
        self.search_dirs.append(BUNDLED_TEMPLATE_DIR)
        if cache_dir is not None:
            self.search_dirs.append(Path(cache_dir))

    def resolve(self, name: str) -> Path:
        """Return the directory of template set *name*."""
        for root in self.search_dirs:
            candidate = root / name
            if candidate.is_dir():
                return candidate
        raise TemplateNotFoundError(name)

    async def is_available(self, name: str) -> bool:
        try:
            await asyncio.to_thread(self.resolve, name)
        except TemplateNotFoundError:
            return False
        return True

    async def list_templates(self) -> list[TemplateInfo]:
        return await asyncio.to_thread(self._scan)

    def _scan(self) -> list[TemplateInfo]:
        found: dict[str, TemplateInfo] = {}
        for root in self.search_dirs:
            if not root.is_dir():
                continue
            for set_dir in sorted(p for p in root.iterdir() if p.is_dir()):
                if set_dir.name in found or set_dir.name.startswith("."):
                    continue
                found[set_dir.name] = TemplateInfo(
                    name=set_dir.name,
                    description=_read_description(set_dir),
                    files=sorted(
                        p.relative_to(set_dir).as_posix()
                        for p in set_dir.rglob("*")
                        if p.is_file() and p.name != METADATA_FILE
                    ),
                )
        return list(found.values())


def _read_description(set_dir: Path) -> str:
    meta_path = set_dir / METADATA_FILE
    if not meta_path.is_file():
        return ""
    try:
        meta = yaml.safe_load(meta_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        logger.warning("Unreadable template metadata", fields={"path": str(meta_path), "error": exc})
        return ""
    return str(meta.get("description", "")) if isinstance(meta, dict) else ""


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _copy_file(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)
