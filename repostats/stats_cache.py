"""
Cached GitHub star/fork lookups.

Lookup policy
-------------
- Fresh entry (younger than the TTL)  → returned as-is, no GitHub call.
- Missing or expired entry            → fetched from GitHub and upserted.
- GitHub failure (rate limit or other) → the previous entry, however old,
  unless a max staleness is configured; ``None`` when there is none.

Nothing raises out of ``get_stats`` / ``get_stats_batch``: the counts are
decorative, so callers get a value or ``None``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable, Protocol

from repostats.cache_key import key_for, parse_repo_url
from repostats.github_client import RateLimitError, RepoNotFoundError, UpstreamError
from repostats.models import CacheEntry, RepoStats, SourceStats
from repostats.store import StatsStore, StoreError

logger = logging.getLogger("repostats.stats_cache")

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 1.0


class StatsSource(Protocol):
    async def fetch_repo_stats(self, owner: str, repo: str) -> SourceStats:
        ...


class StatsCacheManager:
    """Reads, refreshes and persists per-repository stats."""

    def __init__(
        self,
        store: StatsStore,
        source: StatsSource,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS,
        max_staleness_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.source = source
        self.ttl_ms = int(ttl_seconds * 1000)
        self.batch_delay_seconds = batch_delay_seconds
        self.max_staleness_ms = (
            int(max_staleness_seconds * 1000) if max_staleness_seconds is not None else None
        )
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _read(self, key: str) -> CacheEntry | None:
        try:
            return await self.store.get(key)
        except StoreError as exc:
            logger.warning("Stats store read failed for %s, treating as miss: %s", key, exc)
            return None
        except Exception:
            logger.exception("Unexpected stats store error reading %s", key)
            return None

    async def _write(self, entry: CacheEntry) -> None:
        try:
            await self.store.upsert(entry)
        except StoreError as exc:
            logger.warning("Stats store write failed for %s: %s", entry.key, exc)
        except Exception:
            logger.exception("Unexpected stats store error writing %s", entry.key)

    def _fallback(self, previous: CacheEntry | None, now_ms: int) -> RepoStats | None:
        """Stale entry to serve when a refresh failed, if any is acceptable."""
        if previous is None:
            return None
        age_ms = now_ms - previous.cached_at
        if self.max_staleness_ms is not None and age_ms > self.max_staleness_ms:
            logger.info(
                "Stale entry for %s is %d s old, past the staleness ceiling",
                previous.key, age_ms // 1000,
            )
            return None
        logger.info("Serving stale stats for %s (%d s old)", previous.key, age_ms // 1000)
        return previous.to_stats()

    async def get_stats(self, url: str) -> RepoStats | None:
        """Return {stars, forks} for a repository URL, or None if unavailable."""
        try:
            owner, repo = parse_repo_url(url)
        except ValueError:
            logger.debug("Not cacheable: %r", url)
            return None
        key = key_for(owner, repo)

        previous = await self._read(key)
        now_ms = self._now_ms()
        if previous is not None and now_ms - previous.cached_at < self.ttl_ms:
            logger.debug("Cache HIT for %s", key, extra={"cache_key": key})
            return previous.to_stats()

        try:
            fetched = await self.source.fetch_repo_stats(owner, repo)
            cached_at = self._now_ms()
            if previous is not None:
                cached_at = max(cached_at, previous.cached_at)
            entry = CacheEntry(
                key=key,
                stars=fetched.stars,
                forks=fetched.forks,
                last_updated=fetched.last_updated,
                cached_at=cached_at,
            )
        except RateLimitError as exc:
            logger.warning("Rate limited fetching %s/%s: %s", owner, repo, exc)
            return self._fallback(previous, self._now_ms())
        except (RepoNotFoundError, UpstreamError) as exc:
            logger.warning("Failed to fetch %s/%s: %s", owner, repo, exc)
            return self._fallback(previous, self._now_ms())
        except Exception:
            logger.exception("Unexpected error fetching %s/%s", owner, repo)
            return self._fallback(previous, self._now_ms())

        await self._write(entry)
        logger.info("Cache MISS → stored %s", key, extra={"cache_key": key})
        return entry.to_stats()

    async def get_stats_batch(
        self, urls: Iterable[str], concurrency: int = DEFAULT_BATCH_SIZE,
    ) -> dict[str, RepoStats | None]:
        """Look up many URLs, ``concurrency`` at a time, pausing between groups.

        The result is keyed by the URLs exactly as given; duplicates collapse
        into one key and unresolvable URLs map to None.
        """
        urls = list(urls)
        size = max(1, concurrency)
        results: dict[str, RepoStats | None] = {}

        for start in range(0, len(urls), size):
            group = urls[start:start + size]
            stats = await asyncio.gather(*(self.get_stats(url) for url in group))
            for url, value in zip(group, stats):
                results[url] = value

            if start + size < len(urls):
                await asyncio.sleep(self.batch_delay_seconds)

        return results
