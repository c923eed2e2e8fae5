"""Application wiring: builds the collaborators and the workflow manager from a ``Config``."""

from __future__ import annotations

from typing import Optional

import httpx

from projgen.audit import AuditEngine
from projgen.cache import CacheManager
from projgen.config import Config
from projgen.config_manager import ConfigManager
from projgen.scaffolder import ProjectGenerator, TemplateManager
from projgen.scaffolder.templates import BUNDLED_TEMPLATE_DIR
from projgen.validation import ValidationEngine
from projgen.workflow import Pipeline, WorkflowManager, WorkflowRegistry


def create_pipeline(
    config: Config, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Pipeline:
    """Build a :class:`Pipeline` with the default collaborators.

    ``transport`` is handed to the cache manager's HTTP client; tests use it
    to plug in ``httpx.MockTransport``.
    """
    templates = TemplateManager(
        template_dir=config.template_dir, cache_dir=config.cached_templates_dir
    )
    source_dirs = [BUNDLED_TEMPLATE_DIR]
    if config.template_dir is not None:
        source_dirs.insert(0, config.template_dir)

    return Pipeline(
        generator=ProjectGenerator(templates),
        template_manager=templates,
        validator=ValidationEngine(),
        auditor=AuditEngine(),
        cache_manager=CacheManager(
            config.cache.cache_dir,
            source_dirs=source_dirs,
            index_url=config.cache.template_index_url,
            timeout=config.cache.timeout,
            transport=transport,
        ),
        config_manager=ConfigManager(),
    )


def create_manager(
    config: Optional[Config] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WorkflowManager:
    """Return a :class:`WorkflowManager` wired to the default collaborators."""
    config = config or Config.from_env()
    return WorkflowManager(
        create_pipeline(config, transport=transport),
        WorkflowRegistry(history_limit=config.history_limit),
    )
