"""projgen configuration.

Centralised, typed configuration for the CLI and the workflow manager. All
settings use Pydantic v2 models so they can be validated at construction time
and serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

REPORT_FORMATS = ("json", "markdown", "html", "text")


def _default_cache_dir() -> Path:
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / "projgen"


class CacheConfig(BaseModel):
    """Configuration for the offline template cache."""

    cache_dir: Path = Field(default_factory=_default_cache_dir)
    template_index_url: Optional[str] = Field(
        default=None,
        description="Remote JSON template index fetched during cache sync",
    )
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")


class ReportConfig(BaseModel):
    """Defaults for generated validation/audit reports."""

    default_format: str = Field(default="json", pattern="^(json|markdown|html|text)$")
    output_dir: Optional[Path] = Field(
        default=None,
        description="Directory for reports; defaults to the project directory",
    )


class Config(BaseModel):
    """Global projgen configuration.

    Instances are typically created once by the CLI entry point and then
    handed to :func:`projgen.app.create_manager`.
    """

    output_dir: Path = Field(default=Path("."))
    template_dir: Optional[Path] = Field(
        default=None, description="Override the bundled template directory"
    )
    history_limit: int = Field(
        default=100, ge=1, description="Terminal workflows retained in history"
    )
    log_level: str = Field(default="WARNING")
    cache: CacheConfig = Field(default_factory=CacheConfig)
    reports: ReportConfig = Field(default_factory=ReportConfig)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def cache_manifest_path(self) -> Path:
        """Path to the cache ``manifest.json``."""
        return self.cache.cache_dir / "manifest.json"

    @property
    def cached_templates_dir(self) -> Path:
        """Directory holding cached template sets."""
        return self.cache.cache_dir / "templates"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PROJGEN_OUTPUT_DIR, PROJGEN_TEMPLATE_DIR, PROJGEN_HISTORY_LIMIT,
            PROJGEN_LOG_LEVEL, PROJGEN_CACHE_DIR, PROJGEN_TEMPLATE_INDEX_URL,
            PROJGEN_REPORT_FORMAT.
        """
        cache_kwargs: dict[str, Any] = {}
        if os.environ.get("PROJGEN_CACHE_DIR"):
            cache_kwargs["cache_dir"] = Path(os.environ["PROJGEN_CACHE_DIR"])
        if os.environ.get("PROJGEN_TEMPLATE_INDEX_URL"):
            cache_kwargs["template_index_url"] = os.environ["PROJGEN_TEMPLATE_INDEX_URL"]

        report_kwargs: dict[str, Any] = {}
        if os.environ.get("PROJGEN_REPORT_FORMAT"):
            report_kwargs["default_format"] = os.environ["PROJGEN_REPORT_FORMAT"]

        kwargs: dict[str, Any] = {
            "output_dir": Path(os.environ.get("PROJGEN_OUTPUT_DIR", ".")),
            "log_level": os.environ.get("PROJGEN_LOG_LEVEL", "WARNING"),
            "cache": CacheConfig(**cache_kwargs),
            "reports": ReportConfig(**report_kwargs),
        }
        if os.environ.get("PROJGEN_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["PROJGEN_TEMPLATE_DIR"])
        if os.environ.get("PROJGEN_HISTORY_LIMIT"):
            kwargs["history_limit"] = int(os.environ["PROJGEN_HISTORY_LIMIT"])

        return cls(**kwargs)

    def ensure_directories(self) -> None:
        """Create the cache directories used by offline workflows."""
        for directory in (self.cache.cache_dir, self.cached_templates_dir):
            directory.mkdir(parents=True, exist_ok=True)
