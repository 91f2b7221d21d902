"""Category to presenter routing.

The registry is built once at startup. Ownership must be one-to-one: a
category claimed by two presenters is a configuration error and the
application refuses to start. Categories nobody claims go to the fallback
presenter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notify_service.features.presenters.fallback import FallbackPresenter
from notify_service.features.templates.catalog import CATEGORIES
from notify_service.features.templates.exceptions import PresenterConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notify_service.features.presenters.base import Presenter
    from notify_service.features.templates.catalog import CategoryDefinition

logger = logging.getLogger(__name__)


class PresenterRegistry:
    """Immutable category -> presenter map.

    Example:
        registry = PresenterRegistry([BillingPresenter(clock), AccountPresenter(clock)])
        presenter = registry.presenter_for("invoice-overdue")
    """

    def __init__(
        self,
        presenters: Iterable[Presenter],
        *,
        fallback: Presenter | None = None,
        catalog: Iterable[CategoryDefinition] = CATEGORIES,
    ) -> None:
        """Build the routing table.

        Raises:
            PresenterConfigurationError: If two presenters claim one category,
                or one presenter instance is registered twice.
        """
        self._fallback = fallback or FallbackPresenter()
        self._routes: dict[str, Presenter] = {}
        self._presenters: list[Presenter] = []

        catalog = tuple(catalog)
        known = {definition.code for definition in catalog}

        for presenter in presenters:
            if any(presenter is existing for existing in self._presenters):
                msg = f"Presenter {presenter.name} is registered twice"
                raise PresenterConfigurationError(msg)
            self._presenters.append(presenter)

            owned = set(presenter.categories)
            if presenter.group:
                owned.update(d.code for d in catalog if d.group == presenter.group)
            if not owned:
                msg = f"Presenter {presenter.name} owns no categories"
                raise PresenterConfigurationError(msg)

            for category in sorted(owned):
                current = self._routes.get(category)
                if current is not None:
                    msg = (
                        f"Category '{category}' is claimed by both "
                        f"{current.name} and {presenter.name}"
                    )
                    raise PresenterConfigurationError(msg, category=category)
                if category not in known:
                    logger.warning(
                        "Presenter claims a category missing from the catalog",
                        extra={"presenter": presenter.name, "category": category},
                    )
                self._routes[category] = presenter

        logger.info(
            "Presenter registry built",
            extra={
                "presenters": len(self._presenters),
                "routed_categories": len(self._routes),
                "fallback_categories": len(known - self._routes.keys()),
            },
        )

    @property
    def fallback(self) -> Presenter:
        return self._fallback

    @property
    def presenters(self) -> tuple[Presenter, ...]:
        return tuple(self._presenters)

    def presenter_for(self, category: str) -> Presenter:
        """Presenter owning ``category``, or the fallback. Never raises."""
        return self._routes.get(category, self._fallback)

    def is_registered(self, category: str) -> bool:
        return category in self._routes

    def routes(self) -> dict[str, str]:
        """category -> presenter name, for introspection."""
        return {category: presenter.name for category, presenter in sorted(self._routes.items())}

    def __contains__(self, category: object) -> bool:
        return category in self._routes

    def __len__(self) -> int:
        return len(self._routes)


__all__ = ["PresenterRegistry"]
