"""projgen scaffolder -- renders template sets into new project directories.

Quick usage::

    from projgen.scaffolder import ProjectGenerator, TemplateManager

    generator = ProjectGenerator(TemplateManager())
    project_path = await generator.create_project(config, "/tmp/output")
"""

from projgen.scaffolder.generator import ProjectGenerator
from projgen.scaffolder.templates import TemplateManager, TemplateNotFoundError, TemplateRenderer

__all__ = [
    "ProjectGenerator",
    "TemplateManager",
    "TemplateNotFoundError",
    "TemplateRenderer",
]
