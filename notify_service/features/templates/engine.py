"""Jinja2 rendering engine for notification templates.

Rendering is synchronous and deterministic given the source, the context
and the registered helpers. ``{% include %}`` and ``{% extends %}`` are
served by a ScopedLoader that reads only the partials already resolved into
the caller's RenderScope, so the engine never performs I/O and never sees
another tenant's templates.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from jinja2 import (
    BaseLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    UndefinedError,
    meta,
)
from jinja2.sandbox import SandboxedEnvironment, SecurityError

from notify_service.features.templates.exceptions import TemplateRenderingError
from notify_service.features.templates.helpers import register_helpers
from notify_service.infra.logging import get_lazy_logger
from notify_service.utils.formatting import FormatDefaults

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from jinja2 import Environment, nodes

    from notify_service.features.templates.scope import RenderScope

_lazy = get_lazy_logger(__name__)

INLINE_TEMPLATE_NAME = "<template>"
PARTIAL_FILENAME_PREFIX = "partial:"

# Parsing only needs the default syntax; helpers are irrelevant to the AST
_parse_env = SandboxedEnvironment()


def find_partial_references(source: str, name: str | None = None, env: Environment | None = None) -> list[str]:
    """List the partial slugs statically referenced by ``source``, in order.

    Dynamic references (``{% include some_variable %}``) cannot be known
    before rendering and are skipped; they fail at render time if the
    partial was not resolved.

    Raises:
        TemplateRenderingError: If the source does not parse.
    """
    ast = _parse(env or _parse_env, source, name)
    seen: dict[str, None] = {}
    for ref in meta.find_referenced_templates(ast):
        if ref is not None:
            seen.setdefault(ref, None)
    return list(seen)


def _syntax_error(exc: TemplateSyntaxError, name: str | None) -> TemplateRenderingError:
    template_name = exc.name or name
    return TemplateRenderingError(
        f"Syntax error in template {template_name or INLINE_TEMPLATE_NAME}: {exc.message}",
        template_name=template_name,
        line=exc.lineno,
    )


def _parse(env: Environment, source: str, name: str | None) -> nodes.Template:
    try:
        return env.parse(source, name=name)
    except TemplateSyntaxError as exc:
        raise _syntax_error(exc, name) from exc
    except RecursionError as exc:
        msg = f"Template {name or INLINE_TEMPLATE_NAME} is nested too deeply to parse"
        raise TemplateRenderingError(msg, template_name=name) from exc


def _template_line(tb: TracebackType | None) -> int | None:
    """Line of the innermost template frame in a Jinja2-rewritten traceback."""
    line = None
    while tb is not None:
        filename = tb.tb_frame.f_code.co_filename
        if filename == INLINE_TEMPLATE_NAME or filename.startswith(PARTIAL_FILENAME_PREFIX):
            line = tb.tb_lineno
        tb = tb.tb_next
    return line


class ScopedLoader(BaseLoader):
    """Loader that serves partials from a RenderScope and nothing else."""

    def __init__(self, scope: RenderScope) -> None:
        self._scope = scope

    def get_source(self, environment: Environment, template: str) -> tuple[str, str, Callable[[], bool]]:
        partial = self._scope.get_partial(template)
        if partial is None:
            raise TemplateNotFound(template)
        filename = f"{PARTIAL_FILENAME_PREFIX}{partial.tenant_id}/{partial.slug}@v{partial.version}"
        return partial.content, filename, lambda: True

    def list_templates(self) -> list[str]:
        return self._scope.partial_slugs


class RenderingEngine:
    """Sandboxed Jinja2 engine with the notification helper set.

    Example:
        engine = RenderingEngine(defaults=FormatDefaults(locale="de-DE"))
        async with RenderScope(tenant_id=7) as scope:
            body = engine.render(scope, "Hallo {{ recipient.name }}", context)
    """

    def __init__(
        self,
        *,
        autoescape: bool = False,
        strict_undefined: bool = False,
        defaults: FormatDefaults | None = None,
    ) -> None:
        self._env = SandboxedEnvironment(
            autoescape=autoescape,
            undefined=StrictUndefined if strict_undefined else Undefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["json"] = json.dumps
        register_helpers(self._env, defaults)
        self.strict_undefined = strict_undefined

    @property
    def environment(self) -> SandboxedEnvironment:
        return self._env

    def referenced_partials(self, source: str, name: str | None = None) -> list[str]:
        return find_partial_references(source, name, self._env)

    def check_syntax(self, source: str, name: str | None = None) -> None:
        """Compile ``source`` without rendering it.

        Raises:
            TemplateRenderingError: With the offending line on syntax errors,
                or when the source is nested too deeply to parse.
        """
        _parse(self._env, source, name)

    def render(
        self,
        scope: RenderScope,
        source: str,
        context: Mapping[str, Any],
        *,
        name: str | None = None,
    ) -> str:
        """Compile and apply ``source`` to ``context``.

        Args:
            scope: Open render scope holding the resolved partials.
            source: Template source.
            context: Render context built by a presenter.
            name: Template slug used in error messages.

        Raises:
            TemplateRenderingError: For syntax errors, undefined variables in
                strict mode, unresolved partials, sandbox violations, runaway
                recursion or helper failures.
        """
        label = name or INLINE_TEMPLATE_NAME
        env = self._env.overlay(loader=ScopedLoader(scope), cache_size=0)

        try:
            template = env.from_string(source)
            rendered = template.render(dict(context))
        except TemplateRenderingError:
            raise
        except TemplateSyntaxError as exc:
            raise _syntax_error(exc, name) from exc
        except TemplateNotFound as exc:
            msg = f"Partial '{exc.name}' referenced by {label} is not available for tenant {scope.tenant_id}"
            raise TemplateRenderingError(msg, template_name=name, line=_template_line(exc.__traceback__)) from exc
        except UndefinedError as exc:
            msg = f"Missing variable in template {label}: {exc.message}"
            raise TemplateRenderingError(msg, template_name=name, line=_template_line(exc.__traceback__)) from exc
        except SecurityError as exc:
            msg = f"Unsafe operation in template {label}: {exc}"
            raise TemplateRenderingError(msg, template_name=name) from exc
        except RecursionError as exc:
            msg = f"Template {label} recursed too deeply"
            raise TemplateRenderingError(msg, template_name=name) from exc
        except Exception as exc:
            msg = f"Failed to render template {label}: {exc}"
            raise TemplateRenderingError(msg, template_name=name, line=_template_line(exc.__traceback__)) from exc

        _lazy.debug(lambda: f"engine.render: {label} -> {len(rendered)} chars")
        return rendered


__all__ = [
    "RenderingEngine",
    "ScopedLoader",
    "find_partial_references",
]
