"""TTL cache for resolved templates with request coalescing.

Keys are ``(tenant_id, slug)``. Beyond plain TTL expiry the cache gives
two guarantees:

- Concurrent misses on one key share a single underlying fetch. Waiters
  await it through ``asyncio.shield`` so one caller being cancelled never
  cancels the fetch for the others.
- Explicit invalidation wins over TTL and over in-flight fetches. It
  detaches the key's in-flight fetch; a detached fetch may still answer
  its own waiters but never writes its result into the cache. No state
  outlives an entry or a fetch, so invalidating unknown keys costs nothing.

All bookkeeping happens between awaits, so no lock is needed and distinct
keys never contend.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from notify_service.features.templates.metrics import template_cache_events_total

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from notify_service.features.templates.repository import ResolvedTemplate

logger = logging.getLogger(__name__)

CacheKey = tuple[int, str]


@dataclass(slots=True)
class _CacheEntry:
    """Cache entry with timestamp for TTL checking."""

    template: ResolvedTemplate
    cached_at: float


def _consume_result(task: asyncio.Task[Any]) -> None:
    # Every waiter may have been cancelled; retrieve the outcome so asyncio
    # does not log "exception was never retrieved".
    if not task.cancelled():
        task.exception()


class ResolutionCache:
    """Resolved-template cache keyed by tenant and slug.

    Example:
        cache = ResolutionCache(ttl_seconds=300)
        template = await cache.get_or_load((7, "invoice-overdue"), fetch)
        cache.invalidate(7, "invoice-overdue")
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, _CacheEntry] = {}
        self._inflight: dict[CacheKey, asyncio.Task[ResolvedTemplate | None]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_fresh(self, entry: _CacheEntry) -> bool:
        return self._clock() - entry.cached_at < self._ttl

    def peek(self, key: CacheKey) -> ResolvedTemplate | None:
        """Return a fresh cached value without loading or counting a hit."""
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry):
            return entry.template
        return None

    async def get_or_load(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[ResolvedTemplate | None]],
    ) -> ResolvedTemplate | None:
        """Return the cached template for ``key`` or load it once.

        ``None`` results (not found) are returned but never cached, so a
        template published after a miss is visible on the next call.
        """
        entry = self._entries.get(key)
        if entry is not None:
            if self._is_fresh(entry):
                template_cache_events_total.labels(event="hit").inc()
                return entry.template
            del self._entries[key]
            template_cache_events_total.labels(event="expired").inc()
            logger.debug(
                "Template cache entry expired",
                extra={"tenant_id": key[0], "slug": key[1]},
            )

        task = self._inflight.get(key)
        if task is not None:
            template_cache_events_total.labels(event="coalesced").inc()
        else:
            template_cache_events_total.labels(event="miss").inc()
            task = asyncio.get_running_loop().create_task(
                self._load(key, loader),
                name=f"template-resolve:{key[0]}:{key[1]}",
            )
            task.add_done_callback(_consume_result)
            self._inflight[key] = task

        return await asyncio.shield(task)

    async def _load(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[ResolvedTemplate | None]],
    ) -> ResolvedTemplate | None:
        task = asyncio.current_task()
        try:
            template = await loader()
        finally:
            # Still registered means no invalidation happened during the fetch
            current = self._inflight.get(key) is task
            if current:
                del self._inflight[key]

        if template is None or self._ttl <= 0:
            return template
        if not current:
            template_cache_events_total.labels(event="stale_discarded").inc()
            logger.debug(
                "Discarded template fetched before invalidation",
                extra={"tenant_id": key[0], "slug": key[1], "version": template.version},
            )
            return template

        self._entries[key] = _CacheEntry(template=template, cached_at=self._clock())
        return template

    def prime(self, template: ResolvedTemplate) -> None:
        """Insert an already-loaded template (used by pre-warming)."""
        if self._ttl <= 0:
            return
        key = (template.tenant_id, template.slug)
        self._entries[key] = _CacheEntry(template=template, cached_at=self._clock())

    def _detach(self, key: CacheKey) -> None:
        # Later callers start a fresh fetch instead of joining the stale one
        self._inflight.pop(key, None)

    def invalidate(self, tenant_id: int, slug: str) -> bool:
        """Drop one key. Returns True if a cached entry was removed."""
        key = (tenant_id, slug)
        self._detach(key)
        removed = self._entries.pop(key, None) is not None
        template_cache_events_total.labels(event="invalidated").inc()
        logger.info(
            "Template cache invalidated",
            extra={"tenant_id": tenant_id, "slug": slug, "removed": removed},
        )
        return removed

    def invalidate_tenant(self, tenant_id: int) -> int:
        """Drop every key of one tenant. Returns the number of cached entries removed."""
        keys = {key for key in (*self._entries, *self._inflight) if key[0] == tenant_id}
        removed = 0
        for key in keys:
            self._detach(key)
            if self._entries.pop(key, None) is not None:
                removed += 1
        if keys:
            template_cache_events_total.labels(event="invalidated").inc(len(keys))
        logger.info(
            "Template cache invalidated for tenant",
            extra={"tenant_id": tenant_id, "entries_cleared": removed},
        )
        return removed

    def invalidate_all(self) -> int:
        """Clear the whole cache. Returns the number of entries cleared."""
        count = len(self._entries)
        self._entries.clear()
        self._inflight.clear()
        if count:
            template_cache_events_total.labels(event="invalidated").inc(count)
            logger.info("Template cache cleared", extra={"entries_cleared": count})
        return count

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        valid = sum(1 for entry in self._entries.values() if self._is_fresh(entry))
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": len(self._entries) - valid,
            "inflight_fetches": len(self._inflight),
            "ttl_seconds": self._ttl,
        }

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheKey", "ResolutionCache"]
