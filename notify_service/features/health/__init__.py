"""Liveness and readiness probes."""

from notify_service.features.health.router import router

__all__ = ["router"]
