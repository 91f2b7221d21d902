"""Per-call tenant scope.

A RenderScope is opened with ``async with`` by every orchestrator operation
and passed explicitly down to the resolver and engine. It pins the tenant
for the call and holds the partials resolved for it, so the synchronous
Jinja2 loader never touches the store and never sees another tenant.
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Self

from notify_service.features.templates.metrics import template_render_scopes_active
from notify_service.infra.logging import get_lazy_logger, remove_from_log_context, set_log_context

if TYPE_CHECKING:
    from types import TracebackType

    from notify_service.features.templates.repository import ResolvedTemplate

_lazy = get_lazy_logger(__name__)
_scope_ids = itertools.count(1)


class ScopeClosedError(RuntimeError):
    """A scope was used after its ``async with`` block exited."""


class RenderScope:
    """Tenant-pinned state for a single render, draft preview or validation.

    Example:
        async with RenderScope(tenant_id=7, operation="render") as scope:
            template = await resolver.resolve(scope.tenant_id, "invoice-overdue")
            await resolver.collect_partials(scope, template.content, template.slug)
            body = engine.render(scope, template.content, context)
    """

    __slots__ = ("_closed", "_entered", "_partials", "operation", "scope_id", "tenant_id")

    def __init__(self, tenant_id: int | None, operation: str = "render") -> None:
        self.tenant_id = tenant_id
        self.operation = operation
        self.scope_id = next(_scope_ids)
        self._partials: dict[str, ResolvedTemplate] = {}
        self._entered = False
        self._closed = False

    async def __aenter__(self) -> Self:
        if self._entered:
            msg = "RenderScope cannot be re-entered"
            raise RuntimeError(msg)
        self._entered = True
        template_render_scopes_active.inc()
        # Log correlation only; resolution always reads self.tenant_id
        set_log_context(tenant_id=self.tenant_id, render_operation=self.operation)
        _lazy.debug(lambda: f"scope.open: #{self.scope_id} tenant={self.tenant_id} op={self.operation}")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def release(self) -> None:
        """Drop resolved partials and mark the scope closed. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._partials.clear()
        if self._entered:
            template_render_scopes_active.dec()
        remove_from_log_context("tenant_id", "render_operation")
        _lazy.debug(lambda: f"scope.release: #{self.scope_id}")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_active(self) -> bool:
        return self._entered and not self._closed

    def _check_open(self) -> None:
        if self._closed:
            msg = f"RenderScope #{self.scope_id} is closed"
            raise ScopeClosedError(msg)

    def add_partial(self, template: ResolvedTemplate) -> None:
        self._check_open()
        if template.tenant_id != self.tenant_id:
            msg = (
                f"Partial '{template.slug}' belongs to tenant {template.tenant_id}, "
                f"scope is pinned to tenant {self.tenant_id}"
            )
            raise ValueError(msg)
        self._partials[template.slug] = template

    def get_partial(self, slug: str) -> ResolvedTemplate | None:
        self._check_open()
        return self._partials.get(slug)

    def has_partial(self, slug: str) -> bool:
        return slug in self._partials

    @property
    def partial_slugs(self) -> list[str]:
        return sorted(self._partials)

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("open" if self._entered else "new")
        return f"<RenderScope #{self.scope_id} tenant={self.tenant_id} op={self.operation} {state}>"


__all__ = ["RenderScope", "ScopeClosedError"]
