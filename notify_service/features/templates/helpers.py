"""Template helpers registered on the rendering environment.

Formatting helpers read ``locale``, ``timezone`` and ``currency`` from the
render context so templates never pass them explicitly:

    {{ invoice.due_date | format_date("long") }}
    {{ invoice.amount | currency }}
    {{ items | length }} {{ items | length | pluralize("item") }}
    {% if gt(usage.percent, 90) %}...{% endif %}
    {% if invoice.due_date is past %}...{% endif %}

They delegate to ``notify_service.utils.formatting``, the same module the
presenters use, so a value formatted in Python and one formatted in a
template come out identical.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from jinja2 import pass_context

from notify_service.utils import formatting
from notify_service.utils.formatting import FormatDefaults

if TYPE_CHECKING:
    from jinja2 import Environment
    from jinja2.runtime import Context


def _context_value(ctx: Context, key: str, default: str) -> str:
    value = ctx.get(key)
    return value if isinstance(value, str) and value else default


def _context_now(ctx: Context) -> datetime:
    now = ctx.get("now")
    if now is None or not isinstance(now, (str, datetime)):
        return datetime.now(UTC)
    return formatting.coerce_datetime(now)


def _numeric(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return Decimal(value)
        except ArithmeticError:
            return value
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def eq(a: Any, b: Any) -> bool:
    return _numeric(a) == _numeric(b)


def ne(a: Any, b: Any) -> bool:
    return not eq(a, b)


def gt(a: Any, b: Any) -> bool:
    return _numeric(a) > _numeric(b)


def gte(a: Any, b: Any) -> bool:
    return _numeric(a) >= _numeric(b)


def lt(a: Any, b: Any) -> bool:
    return _numeric(a) < _numeric(b)


def lte(a: Any, b: Any) -> bool:
    return _numeric(a) <= _numeric(b)


def between(value: Any, low: Any, high: Any) -> bool:
    """Inclusive range check."""
    return gte(value, low) and lte(value, high)


def register_helpers(env: Environment, defaults: FormatDefaults | None = None) -> None:
    """Install filters, globals and tests on ``env``."""
    defaults = defaults or FormatDefaults()

    @pass_context
    def format_date(ctx: Context, value: Any, style: str = "medium") -> str:
        if value is None or value == "":
            return ""
        return formatting.format_date(
            value,
            _context_value(ctx, "locale", defaults.locale),
            _context_value(ctx, "timezone", defaults.timezone),
            style,  # type: ignore[arg-type]
            default_locale=defaults.locale,
            default_timezone=defaults.timezone,
        )

    @pass_context
    def format_datetime(ctx: Context, value: Any, style: str = "medium", include_zone: bool = True) -> str:
        if value is None or value == "":
            return ""
        return formatting.format_datetime(
            value,
            _context_value(ctx, "locale", defaults.locale),
            _context_value(ctx, "timezone", defaults.timezone),
            style,  # type: ignore[arg-type]
            default_locale=defaults.locale,
            default_timezone=defaults.timezone,
            include_zone=include_zone,
        )

    @pass_context
    def format_time(ctx: Context, value: Any) -> str:
        if value is None or value == "":
            return ""
        return formatting.format_time(
            value,
            _context_value(ctx, "locale", defaults.locale),
            _context_value(ctx, "timezone", defaults.timezone),
            default_locale=defaults.locale,
            default_timezone=defaults.timezone,
        )

    @pass_context
    def currency(ctx: Context, amount: Any, code: str | None = None) -> str:
        if amount is None or amount == "":
            return ""
        return formatting.format_money(
            amount,
            code or _context_value(ctx, "currency", defaults.currency),
            _context_value(ctx, "locale", defaults.locale),
            default_locale=defaults.locale,
            default_currency=defaults.currency,
        )

    @pass_context
    def number(ctx: Context, value: Any, digits: int = 0) -> str:
        if value is None or value == "":
            return ""
        return formatting.format_number(
            value,
            _context_value(ctx, "locale", defaults.locale),
            digits,
            default_locale=defaults.locale,
        )

    @pass_context
    def days_between(ctx: Context, start: Any, end: Any = None) -> int:
        """Whole calendar days from ``start`` to ``end`` (default: the context's now).

        Instants are counted on the recipient's calendar; plain dates as-is.
        """
        timezone = _context_value(ctx, "timezone", defaults.timezone)
        first = formatting.local_date(start, timezone, defaults.timezone)
        second = formatting.local_date(end if end is not None else _context_now(ctx), timezone, defaults.timezone)
        return (second - first).days

    def _compare_to_now(ctx: Context, value: Any) -> int:
        now = _context_now(ctx)
        day = formatting.plain_date(value)
        if day is None:
            moment = formatting.coerce_datetime(value)
            return (moment > now) - (moment < now)
        today = formatting.local_date(now, _context_value(ctx, "timezone", defaults.timezone), defaults.timezone)
        return (day > today) - (day < today)

    @pass_context
    def is_past(ctx: Context, value: Any) -> bool:
        if value is None:
            return False
        return _compare_to_now(ctx, value) < 0

    @pass_context
    def is_future(ctx: Context, value: Any) -> bool:
        if value is None:
            return False
        return _compare_to_now(ctx, value) > 0

    env.filters.update(
        {
            "format_date": format_date,
            "format_datetime": format_datetime,
            "format_time": format_time,
            "currency": currency,
            "number": number,
            "pluralize": formatting.pluralize,
            "truncate_text": formatting.truncate,
        }
    )
    env.globals.update(
        {
            "eq": eq,
            "ne": ne,
            "gt": gt,
            "gte": gte,
            "lt": lt,
            "lte": lte,
            "between": between,
            "days_between": days_between,
            "pluralize": formatting.pluralize,
        }
    )
    env.tests.update({"past": is_past, "future": is_future})


__all__ = ["between", "eq", "gt", "gte", "lt", "lte", "ne", "register_helpers"]
