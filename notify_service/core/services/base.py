"""Base service class for business logic."""

from __future__ import annotations

import logging

from notify_service.infra.logging import get_lazy_logger


class BaseService:
    """Base class for service objects.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR (always evaluated)
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Example:
        class PreviewService(BaseService):
            async def preview(self, tenant_id: int, slug: str) -> str:
                self.logger.info("Previewing draft", extra={"tenant_id": tenant_id, "slug": slug})
                self._lazy.debug(lambda: f"Draft context: {expensive_dump()}")
    """

    def __init__(self) -> None:
        class_name = self.__class__.__name__
        self.logger = logging.getLogger(class_name)
        self._lazy = get_lazy_logger(class_name)


__all__ = ["BaseService"]
