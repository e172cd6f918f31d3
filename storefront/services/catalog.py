"""
Catalog Views

Read-only helpers the storefront and the admin dashboard use to present
menu items: grouping under categories, filtering and counters.

Items reference categories by name and the comparison is always
case-insensitive. An item whose category does not exist is still shown,
labelled with its raw category key and the default colour.
"""

from typing import Iterable, Optional

from storefront.schemas import (
    AvailabilityFilter,
    Category,
    CategoryColor,
    MenuItem,
    MenuSection,
    MenuStats,
)

DEFAULT_COLOR = CategoryColor.GRAY


def category_key(name: str) -> str:
    return (name or "").strip().casefold()


def find_category(categories: Iterable[Category], key: str) -> Optional[Category]:
    wanted = category_key(key)
    for category in categories:
        if category_key(category.name) == wanted:
            return category
    return None


def category_label(categories: Iterable[Category], key: str) -> str:
    category = find_category(categories, key)
    return category.name if category else key


def category_css(categories: Iterable[Category], key: str) -> str:
    category = find_category(categories, key)
    return (category.color if category else DEFAULT_COLOR).css_class


def group_by_category(items: Iterable[MenuItem], categories: Iterable[Category]) -> list[MenuSection]:
    """
    Sections in category order, then one section per unknown category
    key in the order its first item appears. Empty categories are skipped.
    """
    categories = list(categories)
    buckets: dict[str, list[MenuItem]] = {}
    for item in items:
        buckets.setdefault(category_key(item.category), []).append(item)

    sections = []
    for category in categories:
        key = category_key(category.name)
        members = buckets.pop(key, None)
        if members:
            sections.append(MenuSection(
                key=key,
                label=category.name,
                css_class=category.color.css_class,
                items=members,
            ))

    for key, members in buckets.items():
        sections.append(MenuSection(
            key=key,
            label=members[0].category,
            css_class=DEFAULT_COLOR.css_class,
            items=members,
        ))
    return sections


def filter_items(
    items: Iterable[MenuItem],
    search: str = "",
    category: str = "all",
    availability: AvailabilityFilter = AvailabilityFilter.ALL,
) -> list[MenuItem]:
    """Admin list filter: text search, category and availability."""
    term = (search or "").strip().casefold()
    wanted = category_key(category) if category and category != "all" else None

    result = []
    for item in items:
        if term and term not in item.name.casefold() and term not in item.description.casefold():
            continue
        if wanted is not None and category_key(item.category) != wanted:
            continue
        if availability == AvailabilityFilter.AVAILABLE and not item.is_available:
            continue
        if availability == AvailabilityFilter.UNAVAILABLE and item.is_available:
            continue
        result.append(item)
    return result


def storefront_items(items: Iterable[MenuItem], search: str = "", category: str = "all") -> list[MenuItem]:
    """What customers see: matching items that are available."""
    return filter_items(items, search, category, AvailabilityFilter.AVAILABLE)


def menu_stats(items: Iterable[MenuItem]) -> MenuStats:
    items = list(items)
    available = sum(1 for item in items if item.is_available)
    return MenuStats(total=len(items), available=available, sold_out=len(items) - available)
