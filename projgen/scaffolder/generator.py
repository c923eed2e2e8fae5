"""Project generator.

Renders a template set into ``<output_dir>/<project name>``, backs up
existing projects, and performs the variable-substitution pass over
``*.tmpl`` files left in the generated tree.
"""

from __future__ import annotations

import asyncio
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any

from projgen.logger import get_logger
from projgen.models import ProjectConfig

from .templates import TemplateManager, TemplateRenderer

logger = get_logger(__name__)

PROCESS_SUFFIX = ".tmpl"


class ProjectGenerator:
    """Writes project files from a template set.

    Given a ``ProjectConfig``, generates:
    - every file under the set's ``files/`` directory
    - the files of each selected component under ``components/<name>/``
    """

    def __init__(self, templates: TemplateManager) -> None:
        self.templates = templates

    # -- Public API --------------------------------------------------------

    async def create_project(self, config: ProjectConfig, output_path: str | Path) -> Path:
        """Generate the project structure.

        Args:
            config: Project to generate.
            output_path: Parent directory; a subdirectory named after the
                project is created inside it.

        Returns:
            Path to the generated project root.
        """
        project_root = Path(output_path) / config.name
        set_dir = await asyncio.to_thread(self.templates.resolve, config.template)
        renderer = TemplateRenderer(set_dir)
        context = config.template_context()

        await asyncio.to_thread(project_root.mkdir, parents=True, exist_ok=True)

        written = await renderer.render_tree("files", project_root, context)
        for component in config.components:
            component_files = await renderer.render_tree(
                f"components/{component}", project_root, context
            )
            if not component_files:
                logger.warning(
                    "Component has no templates",
                    fields={"component": component, "template": config.template},
                )
            written.extend(component_files)

        logger.info(
            "Project structure created",
            fields={"project": config.name, "path": str(project_root), "files": len(written)},
        )
        return project_root

    def file_exists(self, path: str | Path) -> bool:
        return Path(path).exists()

    async def backup_project(self, path: str | Path) -> Path:
        """Copy *path* to ``<path>.backup.<timestamp>`` and return the copy's path."""
        source = Path(path)
        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup = source.with_name(f"{source.name}.backup.{stamp}")
        await asyncio.to_thread(shutil.copytree, source, backup)
        return backup

    async def process_templates(
        self, project_path: str | Path, variables: dict[str, Any]
    ) -> list[str]:
        """Render every ``*.tmpl`` file in place with *variables*.

        ``settings.yaml.tmpl`` becomes ``settings.yaml``; the ``.tmpl`` file is
        removed.  Returns the paths of the files written.
        """
        root = Path(project_path)
        renderer = TemplateRenderer(root)
        pending = await asyncio.to_thread(
            lambda: sorted(p for p in root.rglob(f"*{PROCESS_SUFFIX}") if p.is_file())
        )

        processed: list[str] = []
        for source in pending:
            raw = await asyncio.to_thread(source.read_text, encoding="utf-8")
            target = source.with_name(source.name[: -len(PROCESS_SUFFIX)])
            content = renderer.render_string(raw, variables)
            await asyncio.to_thread(_replace, source, target, content)
            processed.append(str(target))
        return processed


def _replace(source: Path, target: Path, content: str) -> None:
    target.write_text(content, encoding="utf-8")
    source.unlink()
