"""Maintenance, incidents, usage thresholds and async job results."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from notify_service.features.presenters.base import ContextFormatter, PayloadModel, Presenter
from notify_service.utils.formatting import coerce_datetime

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest

UsageLevel = Literal["ok", "warning", "critical"]

WARNING_PERCENT = Decimal(80)
CRITICAL_PERCENT = Decimal(100)


class Usage(PayloadModel):
    metric: str
    used: Decimal = Field(..., ge=0, max_digits=18)
    limit: Decimal = Field(..., gt=0, max_digits=18)
    unit: str | None = None


class SystemPayload(PayloadModel):
    title: str | None = None
    severity: Literal["info", "minor", "major", "critical"] | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    affected_services: list[str] = Field(default_factory=list)
    status_url: str | None = None
    usage: Usage | None = None
    download_url: str | None = None
    record_count: int | None = Field(default=None, ge=0)
    error_count: int | None = Field(default=None, ge=0)


def usage_level(percent: Decimal) -> UsageLevel:
    if percent >= CRITICAL_PERCENT:
        return "critical"
    if percent >= WARNING_PERCENT:
        return "warning"
    return "ok"


class SystemPresenter(Presenter):
    group = "system"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        system = self.parse_payload(request, SystemPayload)

        usage = None
        if system.usage is not None:
            percent = (system.usage.used / system.usage.limit * 100).quantize(Decimal(1))
            unit = f" {system.usage.unit}" if system.usage.unit else ""
            usage = {
                "metric": system.usage.metric,
                "used": f"{fmt.number(system.usage.used)}{unit}",
                "limit": f"{fmt.number(system.usage.limit)}{unit}",
                "percent": int(percent),
                "level": usage_level(percent),
            }

        # Naive timestamps are UTC
        starts_at = coerce_datetime(system.starts_at) if system.starts_at else None
        ends_at = coerce_datetime(system.ends_at) if system.ends_at else None

        duration_minutes = None
        if starts_at and ends_at:
            duration_minutes = int((ends_at - starts_at).total_seconds() // 60)

        is_ongoing = bool(starts_at and starts_at <= fmt.now and (ends_at is None or ends_at > fmt.now))

        return {
            "title": system.title,
            "severity": system.severity,
            "window": {
                "starts_at": fmt.datetime(starts_at) if starts_at else None,
                "ends_at": fmt.datetime(ends_at) if ends_at else None,
                "duration_minutes": duration_minutes,
            },
            "affected_services": system.affected_services,
            "status_url": system.status_url,
            "usage": usage,
            "download_url": system.download_url,
            "record_count": fmt.number(system.record_count) if system.record_count is not None else None,
            "error_count": system.error_count,
            "has_errors": bool(system.error_count),
            "is_ongoing": is_ongoing,
        }


__all__ = ["SystemPayload", "SystemPresenter", "usage_level"]
