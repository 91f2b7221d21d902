"""Prometheus scrape endpoint."""

from notify_service.features.metrics.router import router

__all__ = ["router"]
