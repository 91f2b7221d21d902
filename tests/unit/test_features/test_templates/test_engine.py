"""Unit tests for the Jinja2 rendering engine."""

from __future__ import annotations

import pytest

from notify_service.features.templates.engine import RenderingEngine, find_partial_references
from notify_service.features.templates.exceptions import TemplateRenderingError
from notify_service.features.templates.scope import RenderScope
from tests.utils import make_resolved


@pytest.fixture
async def scope():
    async with RenderScope(7) as open_scope:
        yield open_scope


class TestRender:
    """Plain rendering, undefined handling and escaping."""

    @pytest.mark.asyncio
    async def test_interpolates_context(self, engine, scope) -> None:
        body = engine.render(scope, "Hello {{ recipient.name }}!", {"recipient": {"name": "Ada"}})

        assert body == "Hello Ada!"

    @pytest.mark.asyncio
    async def test_lenient_undefined_renders_empty(self, engine, scope) -> None:
        assert engine.render(scope, "[{{ missing }}]", {}) == "[]"

    @pytest.mark.asyncio
    async def test_strict_undefined_reports_line(self, scope) -> None:
        engine = RenderingEngine(strict_undefined=True)

        with pytest.raises(TemplateRenderingError, match="Missing variable") as exc_info:
            engine.render(scope, "Dear customer,\n{{ invoice.number }}", {}, name="invoice-overdue")

        assert exc_info.value.template_name == "invoice-overdue"
        assert exc_info.value.line == 2

    @pytest.mark.asyncio
    async def test_attribute_of_undefined_fails_even_when_lenient(self, engine, scope) -> None:
        with pytest.raises(TemplateRenderingError, match="Missing variable"):
            engine.render(scope, "{{ invoice.number }}", {})

    @pytest.mark.asyncio
    async def test_syntax_error_has_line(self, engine, scope) -> None:
        with pytest.raises(TemplateRenderingError, match="Syntax error") as exc_info:
            engine.render(scope, "ok\n{% if %}", {})

        assert exc_info.value.line == 2
        assert exc_info.value.column is None

    @pytest.mark.asyncio
    async def test_runtime_error_is_wrapped(self, engine, scope) -> None:
        with pytest.raises(TemplateRenderingError, match="Failed to render template <template>"):
            engine.render(scope, "{{ 1 / 0 }}", {})

    @pytest.mark.asyncio
    async def test_autoescape(self, scope) -> None:
        escaping = RenderingEngine(autoescape=True)

        assert escaping.render(scope, "{{ v }}", {"v": "<b>"}) == "&lt;b&gt;"
        assert RenderingEngine().render(scope, "{{ v }}", {"v": "<b>"}) == "<b>"

    @pytest.mark.asyncio
    async def test_json_filter(self, engine, scope) -> None:
        assert engine.render(scope, "{{ data | json }}", {"data": {"a": 1}}) == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_block_tags_do_not_leave_blank_lines(self, engine, scope) -> None:
        source = "{% if show %}\n  shown\n{% endif %}\ndone"

        assert engine.render(scope, source, {"show": True}) == "  shown\ndone"

    @pytest.mark.asyncio
    async def test_rendering_is_deterministic(self, engine, scope) -> None:
        context = {"items": ["a", "b"], "count": 2}
        source = "{% for i in items %}{{ i }}{% endfor %} {{ count }}"

        assert engine.render(scope, source, context) == engine.render(scope, source, context)


class TestPartials:
    """Includes and layouts served from the scope."""

    @pytest.mark.asyncio
    async def test_include_reads_scope(self, engine, scope) -> None:
        scope.add_partial(make_resolved("footer", "-- {{ company }}", kind="partial"))

        body = engine.render(scope, "Thanks{% include 'footer' %}", {"company": "ACME"})

        assert body == "Thanks-- ACME"

    @pytest.mark.asyncio
    async def test_layout_inheritance(self, engine, scope) -> None:
        scope.add_partial(
            make_resolved("base", "<main>{% block content %}{% endblock %}</main>", kind="layout")
        )

        body = engine.render(scope, "{% extends 'base' %}{% block content %}Hi{% endblock %}", {})

        assert body == "<main>Hi</main>"

    @pytest.mark.asyncio
    async def test_unresolved_partial_fails(self, engine, scope) -> None:
        with pytest.raises(TemplateRenderingError, match="Partial 'footer' referenced by welcome"):
            engine.render(scope, "{% include 'footer' %}", {}, name="welcome")

    @pytest.mark.asyncio
    async def test_other_tenant_scope_cannot_see_partial(self, engine) -> None:
        async with RenderScope(7) as tenant_seven:
            tenant_seven.add_partial(make_resolved("footer", "seven", kind="partial"))
            assert engine.render(tenant_seven, "{% include 'footer' %}", {}) == "seven"

        async with RenderScope(8) as tenant_eight:
            with pytest.raises(TemplateRenderingError, match="not available for tenant 8"):
                engine.render(tenant_eight, "{% include 'footer' %}", {})


class TestStaticAnalysis:
    def test_find_partial_references_dedupes_in_order(self) -> None:
        source = "{% extends 'base' %}{% include 'b' %}{% include 'a' %}{% include 'b' %}{% include name %}"

        assert find_partial_references(source) == ["base", "b", "a"]

    def test_find_partial_references_syntax_error(self) -> None:
        with pytest.raises(TemplateRenderingError, match="Syntax error in template welcome"):
            find_partial_references("{{ x }", "welcome")

    def test_check_syntax(self, engine) -> None:
        engine.check_syntax("{{ ok }}")

        with pytest.raises(TemplateRenderingError) as exc_info:
            engine.check_syntax("{% for %}")
        assert exc_info.value.line == 1
