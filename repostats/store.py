"""
Persisted key-value store for cached repository stats.

Each entry is a flat document ``{stars, forks, lastUpdated, cachedAt}``
addressed by its cache key. Writes are upserts: one document per key, the
latest write wins. Nothing is ever evicted.

Backends
--------
- ``InMemoryStatsStore``  process-local dict, used in tests and when no
  directory is configured.
- ``JSONFileStatsStore``  one ``<key>.json`` file per entry, survives restarts.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from repostats.models import CacheEntry


class StoreError(Exception):
    """The store could not be read or written."""


class StatsStore(Protocol):
    async def get(self, key: str) -> CacheEntry | None:
        """Return the entry stored under *key*, or None."""
        ...

    async def upsert(self, entry: CacheEntry) -> None:
        """Create or overwrite the entry stored under ``entry.key``."""
        ...


def _check_key(key: str) -> None:
    if not key or "/" in key:
        raise StoreError(f"Invalid store key: {key!r}")


class InMemoryStatsStore:
    """Async-safe in-memory store holding raw documents."""

    def __init__(self) -> None:
        self._docs: dict[str, dict] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> CacheEntry | None:
        _check_key(key)
        async with self._lock:
            doc = self._docs.get(key)
        if doc is None:
            return None
        return CacheEntry.from_document(key, doc)

    async def upsert(self, entry: CacheEntry) -> None:
        _check_key(entry.key)
        async with self._lock:
            self._docs[entry.key] = entry.to_document()

    def __len__(self) -> int:
        return len(self._docs)


class JSONFileStatsStore:
    """Directory of JSON documents; file I/O runs in a worker thread."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> CacheEntry | None:
        path = self._path_for(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Unreadable stats document {path}: {exc}") from exc
        if not isinstance(doc, dict):
            raise StoreError(f"Corrupt stats document {path}: not an object")

        try:
            return CacheEntry.from_document(key, doc)
        except ValidationError as exc:
            raise StoreError(f"Corrupt stats document {path}: {exc}") from exc

    def _write(self, entry: CacheEntry) -> None:
        path = self._path_for(entry.key)
        try:
            # Write-then-rename so readers never see a half-written file
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(entry.to_document(), f)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreError(f"Failed to write stats document {path}: {exc}") from exc

    async def get(self, key: str) -> CacheEntry | None:
        _check_key(key)
        return await asyncio.to_thread(self._read, key)

    async def upsert(self, entry: CacheEntry) -> None:
        _check_key(entry.key)
        await asyncio.to_thread(self._write, entry)
