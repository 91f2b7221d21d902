"""Locale and timezone aware formatting primitives.

Presenters (through ContextFormatter) and template helpers both call into
this module, so money, dates and addresses look the same whether a value
was pre-formatted into the context or formatted inside a template.

Only a handful of locales carry explicit conventions; any other locale
falls back to its language, then to the configured default.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DateStyle = Literal["short", "medium", "long"]


@dataclass(frozen=True, slots=True)
class FormatDefaults:
    """Fallbacks used when a recipient or context has no locale, timezone or currency."""

    locale: str = "en-US"
    timezone: str = "UTC"
    currency: str = "USD"

    @classmethod
    def from_settings(cls, settings: Any) -> FormatDefaults:
        return cls(
            locale=settings.default_locale,
            timezone=settings.default_timezone,
            currency=settings.default_currency,
        )


_MONTHS = {
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
    "de": (
        "Januar", "Februar", "März", "April", "Mai", "Juni",
        "Juli", "August", "September", "Oktober", "November", "Dezember",
    ),
    "fr": (
        "janvier", "février", "mars", "avril", "mai", "juin",
        "juillet", "août", "septembre", "octobre", "novembre", "décembre",
    ),
    "es": (
        "enero", "febrero", "marzo", "abril", "mayo", "junio",
        "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
    ),
}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CHF": "CHF",
    "SEK": "kr",
    "INR": "₹",
    "BRL": "R$",
}

# ISO 4217 minor units; anything unlisted uses 2
CURRENCY_MINOR_UNITS = {"JPY": 0, "KRW": 0, "CLP": 0, "BHD": 3, "KWD": 3}


@dataclass(frozen=True, slots=True)
class LocaleConventions:
    """Number, currency, date and address conventions for one locale."""

    code: str
    language: str
    decimal_sep: str
    group_sep: str
    currency_pattern: str
    date_patterns: Mapping[str, str]
    time_pattern: str
    postal_before_city: bool = False


LOCALES: dict[str, LocaleConventions] = {
    "en-US": LocaleConventions(
        code="en-US",
        language="en",
        decimal_sep=".",
        group_sep=",",
        currency_pattern="{symbol}{amount}",
        date_patterns={
            "short": "{month2}/{day2}/{year}",
            "medium": "{month_abbr} {day}, {year}",
            "long": "{month_name} {day}, {year}",
        },
        time_pattern="{hour12}:{minute} {ampm}",
    ),
    "en-GB": LocaleConventions(
        code="en-GB",
        language="en",
        decimal_sep=".",
        group_sep=",",
        currency_pattern="{symbol}{amount}",
        date_patterns={
            "short": "{day2}/{month2}/{year}",
            "medium": "{day} {month_abbr} {year}",
            "long": "{day} {month_name} {year}",
        },
        time_pattern="{hour}:{minute}",
    ),
    "de-DE": LocaleConventions(
        code="de-DE",
        language="de",
        decimal_sep=",",
        group_sep=".",
        currency_pattern="{amount} {symbol}",
        date_patterns={
            "short": "{day2}.{month2}.{year}",
            "medium": "{day2}.{month2}.{year}",
            "long": "{day}. {month_name} {year}",
        },
        time_pattern="{hour}:{minute}",
        postal_before_city=True,
    ),
    "fr-FR": LocaleConventions(
        code="fr-FR",
        language="fr",
        decimal_sep=",",
        group_sep=" ",
        currency_pattern="{amount} {symbol}",
        date_patterns={
            "short": "{day2}/{month2}/{year}",
            "medium": "{day} {month_abbr} {year}",
            "long": "{day} {month_name} {year}",
        },
        time_pattern="{hour}:{minute}",
        postal_before_city=True,
    ),
    "es-ES": LocaleConventions(
        code="es-ES",
        language="es",
        decimal_sep=",",
        group_sep=".",
        currency_pattern="{amount} {symbol}",
        date_patterns={
            "short": "{day2}/{month2}/{year}",
            "medium": "{day} {month_abbr} {year}",
            "long": "{day} de {month_name} de {year}",
        },
        time_pattern="{hour}:{minute}",
        postal_before_city=True,
    ),
    "ja-JP": LocaleConventions(
        code="ja-JP",
        language="ja",
        decimal_sep=".",
        group_sep=",",
        currency_pattern="{symbol}{amount}",
        date_patterns={
            "short": "{year}/{month2}/{day2}",
            "medium": "{year}/{month2}/{day2}",
            "long": "{year}年{month}月{day}日",
        },
        time_pattern="{hour}:{minute}",
        postal_before_city=True,
    ),
}

_LANGUAGE_DEFAULTS = {
    "en": "en-US",
    "de": "de-DE",
    "fr": "fr-FR",
    "es": "es-ES",
    "ja": "ja-JP",
}


def normalize_locale(locale: str | None) -> str | None:
    """Normalize 'en_us' / 'EN-us' style tags to 'en-US'."""
    if not locale:
        return None
    parts = locale.replace("_", "-").split("-")
    language = parts[0].lower()
    if len(parts) > 1 and parts[1]:
        return f"{language}-{parts[1].upper()}"
    return language


def resolve_locale(locale: str | None, default: str = "en-US") -> LocaleConventions:
    """Find the conventions for a locale tag.

    Resolution: exact tag, then the tag's language default, then ``default``.
    """
    normalized = normalize_locale(locale)
    if normalized:
        if normalized in LOCALES:
            return LOCALES[normalized]
        language_default = _LANGUAGE_DEFAULTS.get(normalized.split("-")[0])
        if language_default:
            return LOCALES[language_default]
    fallback = normalize_locale(default) or "en-US"
    if fallback in LOCALES:
        return LOCALES[fallback]
    return LOCALES[_LANGUAGE_DEFAULTS.get(fallback.split("-")[0], "en-US")]


def resolve_timezone(name: str | None, default: str = "UTC") -> ZoneInfo:
    """Return the ZoneInfo for ``name``, falling back to ``default`` when unknown."""
    for candidate in (name, default):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("Unknown timezone %r, falling back", candidate)
    return ZoneInfo("UTC")


def coerce_datetime(value: datetime | date | str) -> datetime:
    """Turn a datetime, date or ISO-8601 string into an aware datetime.

    Naive values are treated as UTC. Plain dates become midnight UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    msg = f"Cannot interpret {type(value).__name__} as a date"
    raise ValueError(msg)


def plain_date(value: Any) -> date | None:
    """The calendar day of a ``date`` or ``YYYY-MM-DD`` string; None for instants."""
    if isinstance(value, datetime):
        return None
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    return None


def _localize(value: datetime | date | str, timezone: str | None, default_timezone: str) -> datetime:
    # Plain dates are calendar days, not instants; never shift them
    day = plain_date(value)
    if day is not None:
        return datetime.combine(day, time.min, tzinfo=UTC)
    return coerce_datetime(value).astimezone(resolve_timezone(timezone, default_timezone))


def local_date(value: datetime | date | str, timezone: str | None = None, default_timezone: str = "UTC") -> date:
    """Calendar date of ``value`` as seen in ``timezone``; plain dates are returned as-is."""
    day = plain_date(value)
    if day is not None:
        return day
    return coerce_datetime(value).astimezone(resolve_timezone(timezone, default_timezone)).date()


def _date_fields(dt: datetime, conventions: LocaleConventions) -> dict[str, Any]:
    months = _MONTHS.get(conventions.language, _MONTHS["en"])
    month_name = months[dt.month - 1]
    hour12 = dt.hour % 12 or 12
    return {
        "day": dt.day,
        "day2": f"{dt.day:02d}",
        "month": dt.month,
        "month2": f"{dt.month:02d}",
        "month_name": month_name,
        "month_abbr": month_name[:3],
        "year": dt.year,
        "hour": f"{dt.hour:02d}",
        "hour12": hour12,
        "minute": f"{dt.minute:02d}",
        "ampm": "AM" if dt.hour < 12 else "PM",
    }


def format_date(
    value: datetime | date | str,
    locale: str | None = None,
    timezone: str | None = None,
    style: DateStyle = "medium",
    *,
    default_locale: str = "en-US",
    default_timezone: str = "UTC",
) -> str:
    """Format the calendar date of ``value`` in the recipient's timezone."""
    conventions = resolve_locale(locale, default_locale)
    dt = _localize(value, timezone, default_timezone)
    pattern = conventions.date_patterns.get(style, conventions.date_patterns["medium"])
    return pattern.format(**_date_fields(dt, conventions))


def format_time(
    value: datetime | str,
    locale: str | None = None,
    timezone: str | None = None,
    *,
    default_locale: str = "en-US",
    default_timezone: str = "UTC",
) -> str:
    """Format the wall-clock time of ``value`` in the recipient's timezone."""
    conventions = resolve_locale(locale, default_locale)
    dt = _localize(value, timezone, default_timezone)
    return conventions.time_pattern.format(**_date_fields(dt, conventions))


def format_datetime(
    value: datetime | str,
    locale: str | None = None,
    timezone: str | None = None,
    style: DateStyle = "medium",
    *,
    default_locale: str = "en-US",
    default_timezone: str = "UTC",
    include_zone: bool = True,
) -> str:
    """Format date and time, optionally suffixed with the zone abbreviation."""
    conventions = resolve_locale(locale, default_locale)
    dt = _localize(value, timezone, default_timezone)
    fields = _date_fields(dt, conventions)
    pattern = conventions.date_patterns.get(style, conventions.date_patterns["medium"])
    rendered = f"{pattern.format(**fields)} {conventions.time_pattern.format(**fields)}"
    if include_zone:
        rendered = f"{rendered} {dt.tzname()}"
    return rendered


def _to_decimal(value: Any) -> Decimal:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        msg = f"Not a number: {value!r}"
        raise ValueError(msg) from exc


def format_number(
    value: Any,
    locale: str | None = None,
    digits: int = 2,
    *,
    default_locale: str = "en-US",
) -> str:
    """Format a number with locale grouping and decimal separators."""
    conventions = resolve_locale(locale, default_locale)
    number = _to_decimal(value)
    quantum = Decimal(1).scaleb(-digits)
    quantized = number.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    whole, _, fraction = f"{abs(quantized):f}".partition(".")

    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    rendered = conventions.group_sep.join(groups)
    if digits > 0:
        rendered = f"{rendered}{conventions.decimal_sep}{fraction}"
    return f"{sign}{rendered}"


def format_money(
    amount: Any,
    currency: str | None = None,
    locale: str | None = None,
    *,
    default_locale: str = "en-US",
    default_currency: str = "USD",
) -> str:
    """Format a monetary amount, e.g. ``$1,234.50`` or ``1.234,50 €``."""
    code = (currency or default_currency).upper()
    conventions = resolve_locale(locale, default_locale)
    digits = CURRENCY_MINOR_UNITS.get(code, 2)
    number = _to_decimal(amount)
    rendered = format_number(abs(number), conventions.code, digits)
    symbol = CURRENCY_SYMBOLS.get(code, code)
    formatted = conventions.currency_pattern.format(symbol=symbol, amount=rendered)
    return f"-{formatted}" if number < 0 else formatted


def pluralize(count: Any, singular: str, plural: str | None = None) -> str:
    """Pick the singular or plural word for ``count``."""
    try:
        is_one = abs(_to_decimal(count)) == 1
    except ValueError:
        is_one = False
    if is_one:
        return singular
    return plural if plural is not None else f"{singular}s"


def truncate(text: Any, length: int = 80, suffix: str = "…") -> str:
    """Shorten ``text`` to at most ``length`` characters, breaking on a word when possible."""
    value = "" if text is None else str(text)
    if length <= 0:
        return ""
    if len(value) <= length:
        return value
    cut = value[: max(length - len(suffix), 0)]
    head, space, _ = cut.rpartition(" ")
    if space and len(head) >= len(cut) // 2:
        cut = head
    return f"{cut.rstrip()}{suffix}"


def format_address(
    address: Mapping[str, Any] | None,
    locale: str | None = None,
    *,
    default_locale: str = "en-US",
) -> list[str]:
    """Render a postal address as display lines in locale order.

    Recognised keys: name, line1, line2, city, region, postal_code, country.
    """
    if not address:
        return []
    conventions = resolve_locale(locale, default_locale)
    city = address.get("city") or ""
    region = address.get("region") or ""
    postal = address.get("postal_code") or ""

    if conventions.postal_before_city:
        locality = " ".join(part for part in (postal, city) if part)
        if region:
            locality = f"{locality}, {region}" if locality else region
    else:
        city_region = ", ".join(part for part in (city, region) if part)
        locality = " ".join(part for part in (city_region, postal) if part)

    lines = [address.get("name"), address.get("line1"), address.get("line2"), locality, address.get("country")]
    return [str(line) for line in lines if line]


__all__ = [
    "CURRENCY_MINOR_UNITS",
    "CURRENCY_SYMBOLS",
    "LOCALES",
    "FormatDefaults",
    "LocaleConventions",
    "coerce_datetime",
    "format_address",
    "format_date",
    "format_datetime",
    "format_money",
    "format_number",
    "format_time",
    "local_date",
    "normalize_locale",
    "plain_date",
    "pluralize",
    "resolve_locale",
    "resolve_timezone",
    "truncate",
]
