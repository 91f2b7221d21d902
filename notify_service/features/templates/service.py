"""Rendering orchestrator.

NotificationRenderService wires the presenter registry, the template
resolver and the rendering engine together:

    request -> presenter context  ┐
    request -> category mapping   ┴-> slug -> published template
            -> partials resolved into the call's RenderScope -> body/subject

Every operation runs inside ``async with RenderScope(...)`` so the tenant
scope is released on success, failure and cancellation alike.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from notify_service.core.services import BaseService
from notify_service.features.templates.catalog import get_category
from notify_service.features.templates.engine import RenderingEngine
from notify_service.features.templates.exceptions import (
    DraftNotFoundError,
    TemplateNotFoundError,
    TemplateRenderingError,
)
from notify_service.features.templates.metrics import (
    template_render_duration_seconds,
    template_render_total,
)
from notify_service.features.templates.models import Channel
from notify_service.features.templates.schemas import (
    DraftPreview,
    RenderError,
    RenderOutcome,
    RenderResult,
    ValidationResult,
)
from notify_service.features.templates.scope import RenderScope
from notify_service.utils.formatting import FormatDefaults

if TYPE_CHECKING:
    from collections.abc import Mapping

    from notify_service.core.settings import RenderSettings
    from notify_service.features.presenters import PresenterRegistry
    from notify_service.features.templates.repository import ResolvedTemplate
    from notify_service.features.templates.resolver import TemplateResolver
    from notify_service.features.templates.schemas import NotificationRequest

VALIDATION_TEMPLATE_NAME = "<validate>"


class NotificationRenderService(BaseService):
    """Renders notifications, previews drafts and validates ad-hoc templates.

    Example:
        service = NotificationRenderService(resolver, registry, engine)
        result = await service.render(request)
        preview = await service.render_draft(7, "invoice-overdue", sample_context)
        check = await service.validate("{{ invoice.number }", {})
    """

    def __init__(
        self,
        resolver: TemplateResolver,
        registry: PresenterRegistry,
        engine: RenderingEngine | None = None,
    ) -> None:
        super().__init__()
        self.resolver = resolver
        self.registry = registry
        self.engine = engine or RenderingEngine()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def render(self, request: NotificationRequest) -> RenderResult:
        """Render the published template for a notification request.

        Raises:
            TemplateNotFoundError: No usable published template, or the store
                is unavailable.
            TemplateRenderingError: Payload shape mismatch, syntax or runtime
                errors, missing or cyclic partials.
        """
        started = time.perf_counter()
        channel = "unknown"
        status = "success"
        try:
            async with RenderScope(request.tenant_id, "render") as scope:
                presenter = self.registry.presenter_for(request.category)
                mapping_task = asyncio.create_task(
                    self.resolver.get_category_mapping(request.tenant_id, request.category)
                )
                try:
                    # Let the lookup reach the store before the CPU-bound context build
                    await asyncio.sleep(0)
                    context = presenter.build_context(request)
                except BaseException:
                    mapping_task.cancel()
                    await asyncio.gather(mapping_task, return_exceptions=True)
                    raise
                mapping = await mapping_task

                slug = mapping.template_slug if mapping else presenter.default_template_slug(request.category)
                template = await self.resolver.resolve(request.tenant_id, slug)
                if template.is_partial:
                    raise TemplateNotFoundError(
                        request.tenant_id,
                        slug,
                        reason=f"Template '{slug}' of tenant {request.tenant_id} is a {template.kind} and cannot be sent",
                    )
                channel = self._channel_for(request.category, template)

                self._lazy.debug(
                    lambda: f"render: {request.category} -> {slug} v{template.version} "
                    f"via {presenter.name} ({'mapped' if mapping else 'default'})"
                )
                subject, body = await self._apply(scope, template, context)

            return RenderResult(
                category=request.category,
                channel=channel,
                subject=subject,
                body=body,
                recipient_email=request.recipient.email,
                template_slug=template.slug,
                template_version=template.version,
            )
        except TemplateNotFoundError as exc:
            status = "store_unavailable" if exc.store_unavailable else "not_found"
            self.logger.warning(
                "Template not found for notification",
                extra={
                    "tenant_id": request.tenant_id,
                    "category": request.category,
                    "slug": exc.slug,
                    "store_unavailable": exc.store_unavailable,
                },
            )
            raise
        except TemplateRenderingError as exc:
            status = "rendering_error"
            self.logger.warning(
                "Notification rendering failed",
                extra={
                    "tenant_id": request.tenant_id,
                    "category": request.category,
                    "template": exc.template_name,
                    "line": exc.line,
                    "error": exc.message,
                },
            )
            raise
        finally:
            self._observe("render", channel, status, started)

    async def render_draft(
        self,
        tenant_id: int,
        slug: str,
        sample_context: Mapping[str, Any] | None = None,
    ) -> DraftPreview:
        """Render version 0 of a template against a sample context.

        Raises:
            DraftNotFoundError: The template has no draft.
            TemplateRenderingError: The draft does not render.
        """
        started = time.perf_counter()
        channel = "unknown"
        status = "success"
        try:
            async with RenderScope(tenant_id, "render_draft") as scope:
                draft = await self.resolver.get_draft(tenant_id, slug)
                if draft is None:
                    raise DraftNotFoundError(tenant_id, slug)
                channel = draft.channel or channel
                subject, body = await self._apply(scope, draft, dict(sample_context or {}))
            return DraftPreview(template_slug=slug, subject=subject, body=body)
        except DraftNotFoundError:
            status = "draft_not_found"
            raise
        except TemplateNotFoundError:
            status = "not_found"
            raise
        except TemplateRenderingError:
            status = "rendering_error"
            raise
        finally:
            self._observe("render_draft", channel, status, started)

    async def validate(
        self,
        template_text: str,
        sample_context: Mapping[str, Any] | None = None,
        tenant_id: int | None = None,
    ) -> ValidationResult:
        """Compile and apply ad-hoc template text. Never raises for bad input.

        With a tenant, partial references are resolved from that tenant's
        published partials; without one, any include fails validation.
        """
        started = time.perf_counter()
        result = ValidationResult(valid=True)
        try:
            async with RenderScope(tenant_id, "validate") as scope:
                if tenant_id is not None:
                    await self.resolver.collect_partials(scope, template_text, VALIDATION_TEMPLATE_NAME)
                else:
                    self.engine.check_syntax(template_text)
                self.engine.render(scope, template_text, dict(sample_context or {}))
        except TemplateRenderingError as exc:
            result = ValidationResult(valid=False, error_message=exc.message, line=exc.line, column=exc.column)
        except TemplateNotFoundError as exc:
            result = ValidationResult(valid=False, error_message=exc.detail)
        finally:
            self._observe("validate", "none", "success" if result.valid else "invalid", started)

        self._lazy.debug(lambda: f"validate: valid={result.valid} error={result.error_message!r}")
        return result

    async def render_for_dispatch(self, request: NotificationRequest) -> RenderOutcome:
        """render() with failures converted into a typed outcome."""
        try:
            result = await self.render(request)
        except TemplateNotFoundError as exc:
            error = RenderError(code="template_not_found", message=exc.detail, retryable=exc.store_unavailable)
            return RenderOutcome(ok=False, error=error)
        except TemplateRenderingError as exc:
            return RenderOutcome(ok=False, error=RenderError(code="rendering_error", message=exc.message))
        return RenderOutcome(ok=True, result=result)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _apply(
        self,
        scope: RenderScope,
        template: ResolvedTemplate,
        context: Mapping[str, Any],
    ) -> tuple[str | None, str]:
        """Resolve partials for body and subject, then render both."""
        subject_name = f"{template.slug}:subject"
        await self.resolver.collect_partials(scope, template.content, template.slug)
        if template.subject_template:
            await self.resolver.collect_partials(scope, template.subject_template, subject_name)

        body = self.engine.render(scope, template.content, context, name=template.slug)
        subject = None
        if template.subject_template:
            rendered = self.engine.render(scope, template.subject_template, context, name=subject_name)
            # Subjects are single-line
            subject = " ".join(rendered.split()) or None
        return subject, body

    @staticmethod
    def _channel_for(category: str, template: ResolvedTemplate) -> str:
        if template.channel:
            return template.channel
        definition = get_category(category)
        return definition.channel if definition else Channel.EMAIL.value

    @staticmethod
    def _observe(operation: str, channel: str, status: str, started: float) -> None:
        template_render_total.labels(operation=operation, channel=channel, status=status).inc()
        template_render_duration_seconds.labels(operation=operation).observe(time.perf_counter() - started)


def create_render_service(
    resolver: TemplateResolver,
    registry: PresenterRegistry,
    settings: RenderSettings,
) -> NotificationRenderService:
    """Build a service whose engine follows the rendering settings."""
    engine = RenderingEngine(
        autoescape=settings.autoescape,
        strict_undefined=settings.strict_undefined,
        defaults=FormatDefaults.from_settings(settings),
    )
    return NotificationRenderService(resolver, registry, engine)


# Singleton instance (set during app startup)
_service: NotificationRenderService | None = None


def get_render_service() -> NotificationRenderService:
    """Get the application render service.

    Raises:
        RuntimeError: If initialize_render_service() has not run.
    """
    if _service is None:
        msg = "Render service not initialized. Call initialize_render_service() during app startup."
        raise RuntimeError(msg)
    return _service


def initialize_render_service(service: NotificationRenderService) -> NotificationRenderService:
    global _service
    _service = service
    return _service


def reset_render_service() -> None:
    global _service
    _service = None


__all__ = [
    "NotificationRenderService",
    "create_render_service",
    "get_render_service",
    "initialize_render_service",
    "reset_render_service",
]
