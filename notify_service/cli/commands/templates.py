"""Template authoring commands: validate, publish and roll back."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
import httpx
from sqlalchemy.exc import SQLAlchemyError

from notify_service.cli.utils import coro, error, info, success, warning
from notify_service.core.database import NotFoundError
from notify_service.features.templates.exceptions import DraftNotFoundError


@click.group(name="templates")
def templates() -> None:
    """Template management commands."""


def _load_context(path: Path | None) -> dict:
    if path is None:
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise click.BadParameter("sample context must be a JSON object", param_hint="--context")
    return data


@templates.command()
@click.argument("template_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--context",
    "context_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with a sample context",
)
@coro
async def validate(template_file: Path, context_file: Path | None) -> None:
    """Check that TEMPLATE_FILE compiles and renders against a sample context."""
    from notify_service.core.settings import get_render_settings
    from notify_service.features.presenters import build_default_registry
    from notify_service.features.templates.resolver import TemplateResolver
    from notify_service.features.templates.service import create_render_service

    settings = get_render_settings()
    # Without a tenant the store is never read
    resolver = TemplateResolver(_NoStore())
    service = create_render_service(resolver, build_default_registry(settings=settings), settings)

    result = await service.validate(template_file.read_text(encoding="utf-8"), _load_context(context_file))
    if result.valid:
        success(f"{template_file} is valid")
        return
    location = f" (line {result.line})" if result.line else ""
    error(f"{template_file}{location}: {result.error_message}")
    sys.exit(1)


service_url_option = click.option(
    "--service-url",
    envvar="NOTIFY_SERVICE_URL",
    default="http://127.0.0.1:8000",
    show_default=True,
    help="Base URL of the running service whose template cache is invalidated",
)


def _service_client(service_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=service_url, timeout=10.0)


async def _invalidate_cache(service_url: str, tenant_id: int, slug: str) -> None:
    """Ask the running service to drop its cached copy of (tenant, slug).

    Exits with status 1 when the service cannot confirm the invalidation,
    since the database change is already committed at that point.
    """
    from notify_service.core.settings import get_app_settings

    path = f"{get_app_settings().api_prefix}/templates/cache/{tenant_id}"
    try:
        async with _service_client(service_url) as client:
            response = await client.delete(path, params={"slug": slug})
            response.raise_for_status()
    except httpx.HTTPError as exc:
        error(f"Committed, but cache invalidation at {service_url}{path} failed: {exc}")
        error(f"Retry with: curl -X DELETE '{service_url}{path}?slug={slug}'")
        sys.exit(1)
    info(f"Cache invalidated for {slug} (tenant {tenant_id})")


async def _publish_version(tenant_id: int, slug: str, published_by: str, content: str | None) -> int:
    from notify_service.features.templates.repository import TemplateRepository, TemplateVersionRepository
    from notify_service.infra.database.session import close_database, get_async_session

    try:
        async with get_async_session() as session:
            template = await TemplateRepository().get_by_slug(session, tenant_id, slug)
            if template is None:
                error(f"Template '{slug}' not found for tenant {tenant_id}")
                sys.exit(1)
            version = await TemplateVersionRepository().publish(
                session, template, published_by=published_by, content=content
            )
            await session.commit()
            return version.version
    except DraftNotFoundError as exc:
        error(exc.detail)
        sys.exit(1)
    except SQLAlchemyError as exc:
        error(f"Publish failed: {exc}")
        sys.exit(1)
    finally:
        await close_database()


async def _rollback_version(tenant_id: int, slug: str, version_number: int) -> bool:
    """Returns False when the version is already current."""
    from notify_service.features.templates.repository import TemplateRepository, TemplateVersionRepository
    from notify_service.infra.database.session import close_database, get_async_session

    try:
        async with get_async_session() as session:
            template = await TemplateRepository().get_by_slug(session, tenant_id, slug)
            if template is None:
                error(f"Template '{slug}' not found for tenant {tenant_id}")
                sys.exit(1)
            if template.current_version == version_number:
                return False
            await TemplateVersionRepository().rollback(session, template, version_number)
            await session.commit()
            return True
    except NotFoundError:
        error(f"{slug} has no published version {version_number}")
        sys.exit(1)
    except SQLAlchemyError as exc:
        error(f"Rollback failed: {exc}")
        sys.exit(1)
    finally:
        await close_database()


@templates.command()
@click.option("--tenant", "tenant_id", type=click.IntRange(min=1), required=True, help="Tenant ID")
@click.option("--slug", required=True, help="Template slug")
@click.option("--by", "published_by", required=True, help="Publisher identity")
@click.option(
    "--file",
    "content_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Publish this content instead of the current draft",
)
@service_url_option
@coro
async def publish(tenant_id: int, slug: str, published_by: str, content_file: Path | None, service_url: str) -> None:
    """Publish a new version of a template and invalidate the service cache."""
    content = content_file.read_text(encoding="utf-8") if content_file else None
    version = await _publish_version(tenant_id, slug, published_by, content)
    await _invalidate_cache(service_url, tenant_id, slug)
    success(f"Published {slug} v{version} for tenant {tenant_id}")


@templates.command()
@click.option("--tenant", "tenant_id", type=click.IntRange(min=1), required=True, help="Tenant ID")
@click.option("--slug", required=True, help="Template slug")
@click.option("--version", "version_number", type=click.IntRange(min=1), required=True, help="Version to restore")
@service_url_option
@coro
async def rollback(tenant_id: int, slug: str, version_number: int, service_url: str) -> None:
    """Make an earlier published version current again and invalidate the service cache."""
    if not await _rollback_version(tenant_id, slug, version_number):
        warning(f"v{version_number} is already current")
        return
    await _invalidate_cache(service_url, tenant_id, slug)
    success(f"{slug} rolled back to v{version_number}")


class _NoStore:
    """TemplateStore for tenant-less validation; every lookup misses."""

    async def get_published(self, tenant_id, slug):
        return None

    async def list_published_partials(self, tenant_id):
        return []

    async def get_category_mapping(self, tenant_id, category):
        return None

    async def get_template(self, template_id):
        return None

    async def get_draft(self, tenant_id, slug):
        return None
