"""
Live Menu Cache

Holds the latest menu items and categories for request handlers, fed by
the sync service's subscriptions. While the remote feed is live every
change lands here on its own; in local mode the cache only changes when
reload() is called.
"""

import logging
from typing import Optional

from storefront.schemas import Category, MenuItem
from storefront.services.sync import MenuSyncService, Subscription

logger = logging.getLogger(__name__)


class MenuCache:
    """Subscription-backed snapshot of both menu collections."""

    def __init__(self, service: MenuSyncService):
        self._service = service
        self.items: list[MenuItem] = []
        self.categories: list[Category] = []
        self._item_feed: Optional[Subscription] = None
        self._category_feed: Optional[Subscription] = None

    @property
    def live(self) -> bool:
        """True while both remote feeds are open."""
        return bool(
            self._item_feed and self._item_feed.active
            and self._category_feed and self._category_feed.active
        )

    def _on_items(self, items: list[MenuItem]) -> None:
        self.items = items
        logger.debug(f"Menu cache: {len(items)} item(s)")

    def _on_categories(self, categories: list[Category]) -> None:
        self.categories = categories
        logger.debug(f"Menu cache: {len(categories)} categories")

    def start(self) -> None:
        self._item_feed = self._service.menu_items.subscribe(self._on_items)
        self._category_feed = self._service.categories.subscribe(self._on_categories)
        logger.info(f"Menu cache started ({'live' if self.live else 'local'} mode)")

    def stop(self) -> None:
        for feed in (self._item_feed, self._category_feed):
            if feed is not None:
                feed.unsubscribe()
        self._item_feed = None
        self._category_feed = None

    def reload(self) -> None:
        self.stop()
        self.start()

    def refresh_if_offline(self) -> None:
        """Pick up local-mode writes, which no feed reports."""
        if not self.live:
            self.reload()

    def find_item(self, item_id: str) -> Optional[MenuItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
