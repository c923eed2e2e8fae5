"""Unit tests for Config and related Pydantic models (projgen.config).

Tests cover:
- CacheConfig defaults and validation
- ReportConfig format validation
- Config defaults, derived paths (properties), save/load, from_env
- Config.ensure_directories
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from projgen.config import REPORT_FORMATS, CacheConfig, Config, ReportConfig


# ---------------------------------------------------------------------------
# CacheConfig
# ---------------------------------------------------------------------------


class TestCacheConfig:
    @pytest.mark.unit
    def test_defaults(self):
        with patch.dict(os.environ, {"XDG_CACHE_HOME": "/xdg"}, clear=True):
            cache = CacheConfig()
        assert cache.cache_dir == Path("/xdg/projgen")
        assert cache.template_index_url is None
        assert cache.timeout == 30.0

    @pytest.mark.unit
    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            CacheConfig(timeout=0)


# ---------------------------------------------------------------------------
# ReportConfig
# ---------------------------------------------------------------------------


class TestReportConfig:
    @pytest.mark.unit
    def test_default_format(self):
        assert ReportConfig().default_format == "json"
        assert ReportConfig().output_dir is None

    @pytest.mark.unit
    @pytest.mark.parametrize("fmt", REPORT_FORMATS)
    def test_accepts_known_formats(self, fmt):
        assert ReportConfig(default_format=fmt).default_format == fmt

    @pytest.mark.unit
    def test_rejects_unknown_format(self):
        with pytest.raises(ValidationError):
            ReportConfig(default_format="pdf")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class TestConfigDefaults:
    @pytest.mark.unit
    def test_defaults(self):
        config = Config()
        assert config.output_dir == Path(".")
        assert config.template_dir is None
        assert config.history_limit == 100
        assert config.log_level == "WARNING"

    @pytest.mark.unit
    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            Config(history_limit=0)

    @pytest.mark.unit
    def test_derived_paths(self, tmp_path: Path):
        config = Config(cache=CacheConfig(cache_dir=tmp_path / "c"))
        assert config.cache_manifest_path == tmp_path / "c" / "manifest.json"
        assert config.cached_templates_dir == tmp_path / "c" / "templates"


class TestConfigSaveLoad:
    @pytest.mark.unit
    def test_round_trip(self, tmp_path: Path):
        original = Config(
            output_dir=tmp_path / "projects",
            history_limit=7,
            cache=CacheConfig(cache_dir=tmp_path / "cache", template_index_url="https://t.example/i.json"),
            reports=ReportConfig(default_format="markdown"),
        )
        saved = original.save(tmp_path / "nested" / "settings.json")

        assert saved.is_file()
        assert Config.load(saved) == original

    @pytest.mark.unit
    def test_load_invalid_json(self, tmp_path: Path):
        bad = tmp_path / "settings.json"
        bad.write_text('{"history_limit": -1}', encoding="utf-8")
        with pytest.raises(ValidationError):
            Config.load(bad)

    @pytest.mark.unit
    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            Config.load(tmp_path / "missing.json")


# ---------------------------------------------------------------------------
# Config.from_env
# ---------------------------------------------------------------------------


class TestConfigFromEnv:
    @pytest.mark.unit
    def test_defaults_when_no_env(self):
        with patch.dict(os.environ, {"XDG_CACHE_HOME": "/xdg"}, clear=True):
            config = Config.from_env()
        assert config.output_dir == Path(".")
        assert config.log_level == "WARNING"
        assert config.cache.cache_dir == Path("/xdg/projgen")
        assert config.reports.default_format == "json"

    @pytest.mark.unit
    def test_all_variables(self):
        env = {
            "PROJGEN_OUTPUT_DIR": "/srv/projects",
            "PROJGEN_TEMPLATE_DIR": "/srv/templates",
            "PROJGEN_HISTORY_LIMIT": "25",
            "PROJGEN_LOG_LEVEL": "DEBUG",
            "PROJGEN_CACHE_DIR": "/var/cache/projgen",
            "PROJGEN_TEMPLATE_INDEX_URL": "https://templates.example.com/index.json",
            "PROJGEN_REPORT_FORMAT": "html",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.output_dir == Path("/srv/projects")
        assert config.template_dir == Path("/srv/templates")
        assert config.history_limit == 25
        assert config.log_level == "DEBUG"
        assert config.cache.cache_dir == Path("/var/cache/projgen")
        assert config.cache.template_index_url == "https://templates.example.com/index.json"
        assert config.reports.default_format == "html"

    @pytest.mark.unit
    def test_invalid_history_limit(self):
        with patch.dict(os.environ, {"PROJGEN_HISTORY_LIMIT": "many"}, clear=True):
            with pytest.raises(ValueError):
                Config.from_env()


# ---------------------------------------------------------------------------
# Config.ensure_directories
# ---------------------------------------------------------------------------


class TestEnsureDirectories:
    @pytest.mark.unit
    def test_creates_cache_dirs(self, tmp_path: Path):
        config = Config(cache=CacheConfig(cache_dir=tmp_path / "cache"))
        config.ensure_directories()
        assert config.cache.cache_dir.is_dir()
        assert config.cached_templates_dir.is_dir()

    @pytest.mark.unit
    def test_idempotent(self, tmp_path: Path):
        config = Config(cache=CacheConfig(cache_dir=tmp_path / "cache"))
        config.ensure_directories()
        config.ensure_directories()
        assert config.cached_templates_dir.is_dir()
