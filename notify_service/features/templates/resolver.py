"""Template resolver with TTL caching and recursive partial resolution.

Provides tenant-scoped template lookup with:
- TTL-based caching keyed by (tenant_id, slug)
- Coalescing of concurrent lookups for the same key
- Eager invalidation when a new version is published
- Recursive partial resolution with cycle and depth checks

Usage:
    resolver = TemplateResolver(store, cache_ttl=300)

    template = await resolver.resolve(7, "invoice-overdue")
    async with RenderScope(7) as scope:
        await resolver.collect_partials(scope, template.content, template.slug)

    # After publishing a new version
    resolver.invalidate(7, "invoice-overdue")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from notify_service.features.templates.cache import ResolutionCache
from notify_service.features.templates.engine import find_partial_references
from notify_service.features.templates.exceptions import TemplateNotFoundError, TemplateRenderingError
from notify_service.features.templates.metrics import template_store_errors_total
from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from notify_service.core.settings import RenderSettings
    from notify_service.features.templates.repository import (
        CategoryMappingRecord,
        ResolvedTemplate,
        TemplateStore,
    )
    from notify_service.features.templates.scope import RenderScope

logger = get_logger(__name__, component="resolver")

# Infrastructure failures that mean "store unavailable" rather than "missing"
STORE_ERRORS: tuple[type[BaseException], ...] = (SQLAlchemyError, OSError)


class TemplateResolver:
    """Resolves published template content for a tenant.

    Example:
        resolver = TemplateResolver(store, cache_ttl=300, max_partial_depth=8)
        template = await resolver.resolve(7, "invoice-overdue")
    """

    def __init__(
        self,
        store: TemplateStore,
        *,
        cache: ResolutionCache | None = None,
        cache_ttl: float = 300.0,
        max_partial_depth: int = 8,
    ) -> None:
        """Initialize resolver.

        Args:
            store: Template store to read from
            cache: Pre-built cache; one with ``cache_ttl`` is created otherwise
            cache_ttl: Cache time-to-live in seconds (default: 300)
            max_partial_depth: Maximum nesting of partials
        """
        self._store = store
        self._cache = cache or ResolutionCache(cache_ttl)
        self._max_depth = max_partial_depth

        logger.info(
            "Template resolver initialized",
            extra={"cache_ttl": self._cache.ttl_seconds, "max_partial_depth": max_partial_depth},
        )

    @property
    def store(self) -> TemplateStore:
        return self._store

    @property
    def cache(self) -> ResolutionCache:
        return self._cache

    async def _guard[R](self, operation: str, tenant_id: int, slug: str, call: Callable[[], Awaitable[R]]) -> R:
        try:
            return await call()
        except STORE_ERRORS as exc:
            template_store_errors_total.labels(operation=operation).inc()
            logger.warning(
                "Template store unavailable",
                extra={"operation": operation, "tenant_id": tenant_id, "slug": slug, "error": str(exc)},
            )
            raise TemplateNotFoundError(tenant_id, slug, store_unavailable=True) from exc

    async def _lookup(self, tenant_id: int, slug: str) -> ResolvedTemplate | None:
        return await self._cache.get_or_load(
            (tenant_id, slug),
            lambda: self._guard("get_published", tenant_id, slug, lambda: self._store.get_published(tenant_id, slug)),
        )

    async def resolve(self, tenant_id: int, slug: str) -> ResolvedTemplate:
        """Return the currently published version of (tenant, slug).

        Raises:
            TemplateNotFoundError: No active template with a published
                version, or the store is unavailable (``store_unavailable``).
        """
        template = await self._lookup(tenant_id, slug)
        if template is None:
            raise TemplateNotFoundError(tenant_id, slug)
        return template

    async def resolve_partial(self, tenant_id: int, slug: str) -> ResolvedTemplate:
        """Like resolve(), restricted to partial and layout templates."""
        template = await self.resolve(tenant_id, slug)
        if not template.is_partial:
            raise TemplateNotFoundError(
                tenant_id,
                slug,
                reason=f"Template '{slug}' of tenant {tenant_id} is a {template.kind} template, not a partial",
            )
        return template

    async def collect_partials(self, scope: RenderScope, source: str, origin: str) -> None:
        """Resolve every partial ``source`` references, recursively, into ``scope``.

        Raises:
            TemplateRenderingError: On a reference cycle, a chain deeper than
                ``max_partial_depth``, a syntax error in any partial, or a
                referenced partial that does not exist.
            TemplateNotFoundError: With ``store_unavailable`` set, if the
                store fails while resolving a partial.
        """
        if scope.tenant_id is None:
            msg = "Partials can only be resolved inside a tenant scope"
            raise TemplateRenderingError(msg, template_name=origin)
        await self._collect(scope, source, origin, (origin,), {})

    async def _collect(
        self,
        scope: RenderScope,
        source: str,
        name: str,
        path: tuple[str, ...],
        heights: dict[str, int],
    ) -> int:
        # Returns the partial nesting height below `name`. `heights` memoizes
        # fully explored partials so shared partials are walked once while
        # still counting toward the depth of every chain they appear in.
        height = 0
        depth = len(path)
        for ref in find_partial_references(source, name):
            if ref in path:
                chain = " -> ".join((*path, ref))
                msg = f"Partial cycle detected: {chain}"
                raise TemplateRenderingError(msg, template_name=name, extra={"chain": chain})

            if ref not in heights:
                if depth > self._max_depth:
                    raise self._depth_error(path, ref)
                partial = scope.get_partial(ref) or await self._resolve_reference(scope, name, ref)
                scope.add_partial(partial)
                heights[ref] = await self._collect(scope, partial.content, ref, (*path, ref), heights)

            if depth + heights[ref] > self._max_depth:
                raise self._depth_error(path, ref)
            height = max(height, 1 + heights[ref])
        return height

    def _depth_error(self, path: tuple[str, ...], ref: str) -> TemplateRenderingError:
        chain = " -> ".join((*path, ref))
        msg = f"Partial nesting exceeds maximum depth of {self._max_depth}: {chain}"
        return TemplateRenderingError(msg, template_name=path[-1], extra={"chain": chain})

    async def _resolve_reference(self, scope: RenderScope, referrer: str, ref: str) -> ResolvedTemplate:
        assert scope.tenant_id is not None
        try:
            return await self.resolve_partial(scope.tenant_id, ref)
        except TemplateNotFoundError as exc:
            if exc.store_unavailable:
                raise
            msg = f"Template '{referrer}' references missing partial '{ref}'"
            raise TemplateRenderingError(msg, template_name=referrer, extra={"partial": ref}) from exc

    async def get_category_mapping(self, tenant_id: int, category: str) -> CategoryMappingRecord | None:
        """Look up a tenant's template override for a category (uncached)."""
        return await self._guard(
            "get_category_mapping",
            tenant_id,
            category,
            lambda: self._store.get_category_mapping(tenant_id, category),
        )

    async def get_draft(self, tenant_id: int, slug: str) -> ResolvedTemplate | None:
        """Return the draft (version 0) of a template, bypassing the cache."""
        return await self._guard("get_draft", tenant_id, slug, lambda: self._store.get_draft(tenant_id, slug))

    async def prewarm(self, tenant_id: int) -> int:
        """Load every published partial of a tenant into the cache.

        Returns:
            Number of partials cached.
        """
        partials = await self._guard(
            "list_published_partials",
            tenant_id,
            "*",
            lambda: self._store.list_published_partials(tenant_id),
        )
        for partial in partials:
            self._cache.prime(partial)
        logger.info("Template cache pre-warmed", extra={"tenant_id": tenant_id, "partials": len(partials)})
        return len(partials)

    def invalidate(self, tenant_id: int, slug: str) -> bool:
        """Invalidate one template. Call after publishing, archiving or restoring it."""
        return self._cache.invalidate(tenant_id, slug)

    def invalidate_tenant(self, tenant_id: int) -> int:
        return self._cache.invalidate_tenant(tenant_id)

    def invalidate_all(self) -> int:
        return self._cache.invalidate_all()

    def get_cache_stats(self) -> dict[str, Any]:
        stats = self._cache.get_cache_stats()
        stats["max_partial_depth"] = self._max_depth
        return stats


# Module-level singleton (initialized during app startup)
_resolver: TemplateResolver | None = None


def get_template_resolver() -> TemplateResolver:
    """Get the singleton template resolver.

    Raises:
        RuntimeError: If initialize_template_resolver() has not run.
    """
    if _resolver is None:
        msg = "Template resolver not initialized. Call initialize_template_resolver() during app startup."
        raise RuntimeError(msg)
    return _resolver


def initialize_template_resolver(store: TemplateStore, settings: RenderSettings) -> TemplateResolver:
    """Initialize the singleton template resolver from settings."""
    global _resolver
    _resolver = TemplateResolver(
        store,
        cache_ttl=settings.cache_ttl_seconds,
        max_partial_depth=settings.max_partial_depth,
    )
    return _resolver


def reset_template_resolver() -> None:
    global _resolver
    _resolver = None


__all__ = [
    "STORE_ERRORS",
    "TemplateResolver",
    "get_template_resolver",
    "initialize_template_resolver",
    "reset_template_resolver",
]
