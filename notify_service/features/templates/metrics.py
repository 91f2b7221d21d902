"""Prometheus metrics for template resolution and rendering.

Usage:
    from notify_service.features.templates.metrics import (
        template_render_total,
        template_render_duration_seconds,
    )

    template_render_total.labels(operation="render", channel="email", status="success").inc()
    template_render_duration_seconds.labels(operation="render").observe(0.012)
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Rendering
# =============================================================================

template_render_total = Counter(
    "template_render_total",
    "Total number of template render operations",
    labelnames=["operation", "channel", "status"],
)
"""
Counter for every orchestrator operation.

Labels:
    operation: render, render_draft or validate
    channel: email, webhook, sms, or 'unknown' when rendering failed early
    status: success, not_found, draft_not_found, rendering_error, invalid
"""

template_render_duration_seconds = Histogram(
    "template_render_duration_seconds",
    "Template render duration in seconds",
    labelnames=["operation"],
    buckets=[0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)
"""
Histogram of end-to-end operation time, including store lookups.

Labels:
    operation: render, render_draft or validate
"""

template_render_scopes_active = Gauge(
    "template_render_scopes_active",
    "Render scopes currently open",
)
"""
Gauge of open RenderScope instances. Returns to zero when idle; a value
that only grows means a scope is leaking.
"""

# =============================================================================
# Resolution cache
# =============================================================================

template_cache_events_total = Counter(
    "template_cache_events_total",
    "Template resolution cache events",
    labelnames=["event"],
)
"""
Counter for cache behaviour.

Labels:
    event: hit, miss, coalesced, expired, invalidated, stale_discarded
"""

template_store_errors_total = Counter(
    "template_store_errors_total",
    "Template store lookups that failed with an infrastructure error",
    labelnames=["operation"],
)
"""
Labels:
    operation: get_published, list_published_partials, get_category_mapping, get_draft
"""


__all__ = [
    "template_cache_events_total",
    "template_render_duration_seconds",
    "template_render_scopes_active",
    "template_render_total",
    "template_store_errors_total",
]
