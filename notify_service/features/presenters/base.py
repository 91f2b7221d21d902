"""Presenter base class, clock and shared context formatter.

A presenter turns a NotificationRequest into the render context for one
group of categories. Presenters are pure functions of the request and an
injected Clock: the same request at the same instant always yields the
same context.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from notify_service.features.templates.catalog import get_category
from notify_service.features.templates.exceptions import PayloadShapeError
from notify_service.utils import formatting
from notify_service.utils.formatting import FormatDefaults

if TYPE_CHECKING:
    from collections.abc import Mapping

    from notify_service.features.templates.schemas import NotificationRequest, Recipient

_SCALARS = (str, int, float, bool, Decimal, type(None))

# Amounts beyond this precision are rejected during payload validation
Money = Annotated[Decimal, Field(max_digits=18, decimal_places=6)]


class PayloadModel(BaseModel):
    """Base for presenter payloads; accepts snake_case and camelCase keys.

    Error locations always use the snake_case field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, loc_by_alias=False)


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant; advance() moves it forward."""

    def __init__(self, at: datetime) -> None:
        self._at = at if at.tzinfo else at.replace(tzinfo=UTC)

    def now(self) -> datetime:
        return self._at

    def advance(self, **delta: float) -> None:
        self._at += timedelta(**delta)


class ContextFormatter:
    """Recipient-aware formatting shared by every presenter.

    Built once per request from the recipient's locale and timezone, so
    money, dates and addresses are formatted by the same rules the
    template helpers apply.
    """

    def __init__(
        self,
        *,
        locale: str | None,
        timezone: str | None,
        now: datetime,
        defaults: FormatDefaults | None = None,
    ) -> None:
        self.defaults = defaults or FormatDefaults()
        self.locale = formatting.resolve_locale(locale, self.defaults.locale).code
        self.timezone = str(formatting.resolve_timezone(timezone, self.defaults.timezone))
        self.now = now

    def money(self, amount: Any, currency: str | None = None) -> str:
        if amount is None:
            return ""
        return formatting.format_money(
            amount,
            currency or self.defaults.currency,
            self.locale,
            default_locale=self.defaults.locale,
            default_currency=self.defaults.currency,
        )

    def number(self, value: Any, digits: int = 0) -> str:
        return formatting.format_number(value, self.locale, digits, default_locale=self.defaults.locale)

    def date(self, value: datetime | date | str | None, style: formatting.DateStyle = "medium") -> str:
        if value is None:
            return ""
        return formatting.format_date(value, self.locale, self.timezone, style)

    def datetime(self, value: datetime | str | None, style: formatting.DateStyle = "medium") -> str:
        if value is None:
            return ""
        return formatting.format_datetime(value, self.locale, self.timezone, style)

    def time(self, value: datetime | str | None) -> str:
        if value is None:
            return ""
        return formatting.format_time(value, self.locale, self.timezone)

    def address(self, address: Mapping[str, Any] | BaseModel | None) -> list[str]:
        if isinstance(address, BaseModel):
            address = address.model_dump()
        return formatting.format_address(address, self.locale)

    def local_date(self, value: datetime | date | str) -> date:
        """Calendar date of ``value`` as seen by the recipient."""
        return formatting.local_date(value, self.timezone, self.defaults.timezone)

    @property
    def today(self) -> date:
        return self.local_date(self.now)

    def days_until(self, value: datetime | date | str) -> int:
        """Calendar days from today (recipient's timezone) until ``value``; negative if past."""
        return (self.local_date(value) - self.today).days

    def recipient(self, recipient: Recipient) -> dict[str, Any]:
        name = (recipient.name or "").strip()
        first_name = name.split()[0] if name else ""
        return {
            "name": name,
            "first_name": first_name,
            "greeting_name": first_name or name or "there",
            "email": recipient.email,
            "phone": recipient.phone,
        }


class Presenter(ABC):
    """Builds the render context for a group of notification categories.

    Subclasses declare ownership through ``group`` (every catalog category
    in that group) and/or an explicit ``categories`` set, and implement
    ``present``.

    Example:
        class TrialPresenter(Presenter):
            categories = frozenset({"trial-ending"})

            def present(self, request, fmt):
                payload = self.parse_payload(request, TrialPayload)
                return {"trial": {"ends_on": fmt.date(payload.ends_at)}}
    """

    group: ClassVar[str | None] = None
    categories: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, clock: Clock | None = None, defaults: FormatDefaults | None = None) -> None:
        self.clock: Clock = clock or SystemClock()
        self.defaults = defaults or FormatDefaults()

    @property
    def name(self) -> str:
        return type(self).__name__

    def default_template_slug(self, category: str) -> str:
        """Template slug used when the tenant has no mapping for ``category``."""
        return category

    def parse_payload[M: BaseModel](self, request: NotificationRequest, model: type[M]) -> M:
        """Validate the request payload against ``model``.

        Raises:
            PayloadShapeError: If the payload does not fit the model.
        """
        data = request.payload if request.payload is not None else {}
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise PayloadShapeError(
                request.category,
                exc.errors(include_url=False, include_input=False),
            ) from exc

    def formatter_for(self, request: NotificationRequest) -> ContextFormatter:
        return ContextFormatter(
            locale=request.recipient.locale,
            timezone=request.recipient.timezone,
            now=self.clock.now(),
            defaults=self.defaults,
        )

    @abstractmethod
    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        """Return the category-specific part of the render context."""

    def build_context(self, request: NotificationRequest) -> dict[str, Any]:
        """Full render context: presenter output plus the shared envelope.

        Envelope keys (category, tenant_id, recipient, locale, timezone,
        currency, now, metadata) always win over presenter keys.
        """
        fmt = self.formatter_for(request)
        try:
            data = self.present(request, fmt)
        except (ArithmeticError, ValueError) as exc:
            # Values that validated but cannot be formatted (overflowing dates, huge exponents)
            raise PayloadShapeError(
                request.category,
                [{"loc": (), "msg": f"{type(exc).__name__}: {exc}"}],
            ) from exc
        definition = get_category(request.category)
        envelope = {
            "category": request.category,
            "category_name": definition.display_name if definition else request.category,
            "tenant_id": request.tenant_id,
            "recipient": fmt.recipient(request.recipient),
            "locale": fmt.locale,
            "timezone": fmt.timezone,
            "currency": data.get("currency") or self.defaults.currency,
            "now": fmt.now,
            "metadata": {k: v for k, v in request.metadata.items() if isinstance(v, _SCALARS)},
        }
        return {**data, **envelope}


def money_value(amount: Decimal | None) -> str | None:
    """Plain decimal string for amounts exposed next to their formatted form."""
    return None if amount is None else format(amount, "f")


__all__ = [
    "Clock",
    "ContextFormatter",
    "FixedClock",
    "Money",
    "PayloadModel",
    "Presenter",
    "SystemClock",
    "money_value",
]
