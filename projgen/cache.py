"""Offline template cache.

The cache lives under ``Config.cache.cache_dir``::

    <cache_dir>/
        manifest.json      {"version", "last_sync", "entries": {relpath: {sha256, size}}}
        templates/<set>/   cached template sets

``sync()`` copies the bundled (or overridden) template sets into the cache
and, when a template index URL is configured, downloads additional sets
with :mod:`httpx`.  The index is JSON of the form::

    {"templates": [{"name": "api", "files": {"files/README.md.j2": "..."}}]}
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import shutil
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import httpx

from projgen.logger import get_logger
from projgen.models import CacheStats
from projgen.utils import save_json

logger = get_logger(__name__)

MANIFEST_VERSION = 1


class CacheValidationError(Exception):
    """The cache is missing, unreadable or out of sync with its manifest."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__(f"cache validation failed: {'; '.join(problems)}")


class TemplateIndexError(Exception):
    """The remote template index could not be fetched or is malformed."""


def _sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class CacheManager:
    """Maintains the on-disk template cache and its integrity manifest."""

    def __init__(
        self,
        cache_dir: str | Path,
        source_dirs: Optional[list[Path]] = None,
        index_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.templates_dir = self.cache_dir / "templates"
        self.manifest_path = self.cache_dir / "manifest.json"
        self.source_dirs = list(source_dirs or [])
        self.index_url = index_url
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def _load_manifest(self) -> dict[str, Any]:
        raw = self.manifest_path.read_text(encoding="utf-8")
        data = json.loads(raw)
        if not isinstance(data, dict) or not isinstance(data.get("entries"), dict):
            raise ValueError("manifest has no 'entries' mapping")
        for rel, entry in data["entries"].items():
            if (
                not isinstance(entry, dict)
                or not isinstance(entry.get("sha256"), str)
                or not isinstance(entry.get("size", 0), int)
            ):
                raise ValueError(f"malformed manifest entry for {rel}")
        last_sync = data.get("last_sync")
        if last_sync is not None:
            if not isinstance(last_sync, str):
                raise ValueError("manifest 'last_sync' is not a timestamp")
            # fromisoformat raises ValueError on malformed input
            datetime.fromisoformat(last_sync)
        return data

    def _scan_entries(self) -> dict[str, dict[str, Any]]:
        entries: dict[str, dict[str, Any]] = {}
        if not self.templates_dir.is_dir():
            return entries
        for path in sorted(p for p in self.templates_dir.rglob("*") if p.is_file()):
            rel = path.relative_to(self.cache_dir).as_posix()
            entries[rel] = {"sha256": _sha256(path), "size": path.stat().st_size}
        return entries

    async def _write_manifest(self, last_sync: Optional[str]) -> dict[str, Any]:
        entries = await asyncio.to_thread(self._scan_entries)
        manifest = {"version": MANIFEST_VERSION, "last_sync": last_sync, "entries": entries}
        await save_json(manifest, self.manifest_path)
        return manifest

    # ------------------------------------------------------------------
    # CacheManager contract
    # ------------------------------------------------------------------

    async def get_stats(self) -> CacheStats:
        return await asyncio.to_thread(self._stats)

    def _stats(self) -> CacheStats:
        templates = (
            sorted(p.name for p in self.templates_dir.iterdir() if p.is_dir())
            if self.templates_dir.is_dir()
            else []
        )
        try:
            manifest = self._load_manifest()
        except (OSError, ValueError):
            return CacheStats(cache_dir=str(self.cache_dir), templates=templates, valid=False)

        entries = manifest["entries"]
        last_sync = manifest.get("last_sync")
        return CacheStats(
            cache_dir=str(self.cache_dir),
            total_entries=len(entries),
            total_size=sum(int(e.get("size", 0)) for e in entries.values()),
            templates=templates,
            last_sync=datetime.fromisoformat(last_sync) if last_sync else None,
            valid=not self._problems(manifest),
        )

    async def validate_cache(self) -> None:
        """Raise :class:`CacheValidationError` when the cache is inconsistent."""
        problems = await asyncio.to_thread(self._find_problems)
        if problems:
            raise CacheValidationError(problems)

    def _find_problems(self) -> list[str]:
        if not self.manifest_path.is_file():
            return [f"manifest not found at {self.manifest_path}"]
        try:
            manifest = self._load_manifest()
        except (OSError, ValueError) as exc:
            return [f"manifest unreadable: {exc}"]
        return self._problems(manifest)

    def _problems(self, manifest: dict[str, Any]) -> list[str]:
        problems: list[str] = []
        for rel, entry in manifest["entries"].items():
            path = self.cache_dir / rel
            if not path.is_file():
                problems.append(f"missing cached file {rel}")
            elif _sha256(path) != entry.get("sha256"):
                problems.append(f"checksum mismatch for {rel}")
        return problems

    async def repair_cache(self) -> None:
        """Rebuild the manifest from the files actually present in the cache."""
        last_sync: Optional[str] = None
        try:
            last_sync = (await asyncio.to_thread(self._load_manifest)).get("last_sync")
        except (OSError, ValueError):
            logger.warning("Cache manifest unreadable, rebuilding", fields={"path": str(self.manifest_path)})
        manifest = await self._write_manifest(last_sync)
        logger.info(
            "Cache repaired",
            fields={"cache_dir": str(self.cache_dir), "entries": len(manifest["entries"])},
        )

    async def sync(self) -> CacheStats:
        """Refresh cached template sets from local sources and the remote index."""
        await asyncio.to_thread(self.templates_dir.mkdir, parents=True, exist_ok=True)

        copied = await asyncio.to_thread(self._copy_local_sets)
        downloaded = await self._fetch_remote_sets(self.index_url) if self.index_url else 0

        await self._write_manifest(datetime.now(timezone.utc).isoformat())
        logger.info(
            "Cache synchronized",
            fields={"cache_dir": str(self.cache_dir), "local": copied, "remote": downloaded},
        )
        return await self.get_stats()

    # ------------------------------------------------------------------
    # Sync helpers
    # ------------------------------------------------------------------

    def _copy_local_sets(self) -> int:
        count = 0
        for source in self.source_dirs:
            if not source.is_dir():
                continue
            for set_dir in sorted(p for p in source.iterdir() if p.is_dir()):
                target = self.templates_dir / set_dir.name
                if target.exists():
                    shutil.rmtree(target)
                shutil.copytree(set_dir, target)
                count += 1
        return count

    async def _fetch_remote_sets(self, url: str) -> int:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
                index = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise TemplateIndexError(f"failed to fetch template index {url}: {exc}") from exc

        templates = index.get("templates") if isinstance(index, dict) else None
        if not isinstance(templates, list):
            raise TemplateIndexError("template index has no 'templates' list")

        for entry in templates:
            await asyncio.to_thread(self._write_remote_set, entry)
        return len(templates)

    def _write_remote_set(self, entry: dict[str, Any]) -> None:
        name = entry.get("name")
        files = entry.get("files")
        if not isinstance(name, str) or not name or "/" in name or name.startswith("."):
            raise TemplateIndexError(f"invalid template name in index: {name!r}")
        if not isinstance(files, dict):
            raise TemplateIndexError(f"template {name} has no 'files' mapping")

        target = self.templates_dir / name
        if target.exists():
            shutil.rmtree(target)
        for rel, content in files.items():
            rel_path = PurePosixPath(rel)
            if rel_path.is_absolute() or ".." in rel_path.parts:
                raise TemplateIndexError(f"unsafe path {rel!r} in template {name}")
            out = target / rel_path
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(str(content), encoding="utf-8")
