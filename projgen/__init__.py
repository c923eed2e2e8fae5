"""projgen -- project scaffolding driven by cancellable, observable workflows.

Quick usage::

    from projgen import ProjectConfig, create_manager

    manager = create_manager()
    workflow = manager.create_project_workflow(ProjectConfig(name="my-app"))
    result = await workflow.execute()
"""

__version__ = "0.1.0"

from projgen.app import create_manager, create_pipeline
from projgen.config import Config
from projgen.models import ProjectConfig

__all__ = [
    "Config",
    "ProjectConfig",
    "__version__",
    "create_manager",
    "create_pipeline",
]
