"""Persistence of project configurations as YAML or JSON."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from projgen.logger import get_logger
from projgen.models import ConfigValidationResult, ProjectConfig
from projgen.utils import write_text
from projgen.validation import validate_project_config

logger = get_logger(__name__)

CONFIG_FORMATS = ("yaml", "json")

_SUFFIX_FORMATS = {".yaml": "yaml", ".yml": "yaml", ".json": "json"}


class ConfigFormatError(ValueError):
    """A configuration file could not be parsed or has an unsupported format."""


def detect_format(path: str | Path) -> str:
    """Infer ``yaml`` or ``json`` from the file suffix (``yaml`` when unknown)."""
    return _SUFFIX_FORMATS.get(Path(path).suffix.lower(), "yaml")


class ConfigManager:
    """Reads, writes, merges and validates :class:`ProjectConfig` files."""

    async def export_config(
        self, config: ProjectConfig, output_path: str | Path, fmt: str = "yaml"
    ) -> Path:
        """Write *config* to *output_path* in *fmt*; returns the written path."""
        if fmt not in CONFIG_FORMATS:
            raise ConfigFormatError(f"unsupported configuration format: {fmt}")
        data = config.model_dump(mode="json")
        if fmt == "json":
            content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        else:
            content = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

        target = Path(output_path)
        await asyncio.to_thread(write_text, target, content)
        logger.info("Configuration exported", fields={"path": str(target), "format": fmt})
        return target

    async def import_config(self, config_path: str | Path) -> ProjectConfig:
        """Load a configuration file; the format follows the file suffix."""
        source = Path(config_path)
        raw = await asyncio.to_thread(source.read_text, encoding="utf-8")
        fmt = detect_format(source)
        try:
            data: Any = json.loads(raw) if fmt == "json" else yaml.safe_load(raw)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigFormatError(f"cannot parse {source}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigFormatError(f"{source} does not contain a mapping")
        try:
            return ProjectConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigFormatError(f"invalid configuration in {source}: {exc}") from exc

    async def merge_configs(self, configs: list[ProjectConfig]) -> ProjectConfig:
        """Merge *configs* left to right.

        Later configurations override scalar fields they set explicitly;
        ``components`` are unioned in order and ``variables`` are merged
        key by key.
        """
        if not configs:
            raise ValueError("at least one configuration is required")

        merged: dict[str, Any] = configs[0].model_dump()
        for config in configs[1:]:
            overrides = config.model_dump(exclude_unset=True)
            for key, value in overrides.items():
                if key == "components":
                    merged[key] = list(dict.fromkeys([*merged.get(key, []), *value]))
                elif key == "variables":
                    merged[key] = {**merged.get(key, {}), **value}
                else:
                    merged[key] = value
        return ProjectConfig.model_validate(merged)

    async def validate_config(self, config: ProjectConfig) -> ConfigValidationResult:
        return validate_project_config(config)
