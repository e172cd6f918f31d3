"""
Menu Form Validation

Gatekeeper between admin form input and the sync service. Rules run in
a fixed order and the first failure raises ValidationError, so the
admin sees exactly one message at a time:

    1. name      - required
    2. price     - a number greater than 0
    3. category  - required
    4. image     - optional; http(s) URL, "/..." or "./..." path,
                   or the placeholder image

A blank description is not an error; the default text is used instead.

Author: Khalil Bannouri
Version: 1.0.0
"""

import math
import time
from typing import Optional
from urllib.parse import urlparse

from storefront.core.config import Settings, get_settings
from storefront.exceptions import ValidationError
from storefront.schemas import (
    Category,
    CategoryColor,
    CategoryForm,
    MenuItemDraft,
    MenuItemForm,
    MenuItemVariant,
    VariantForm,
)

PLACEHOLDER_MARKER = "placeholder.svg"


def parse_price(raw: str) -> Optional[float]:
    """Parse a price field; None when it is not a finite number."""
    text = (raw or "").strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def is_valid_image_url(url: str) -> bool:
    """Absolute http(s) URL with a host, a local path, or the placeholder."""
    url = (url or "").strip()
    if not url:
        return False
    parsed = urlparse(url)
    if parsed.scheme:
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    return url.startswith("/") or url.startswith("./") or PLACEHOLDER_MARKER in url


def _parse_preparation_time(raw: str, default: int) -> int:
    try:
        value = int((raw or "").strip())
    except ValueError:
        return default
    return value if value > 0 else default


def validate_menu_item_form(form: MenuItemForm, settings: Optional[Settings] = None) -> MenuItemDraft:
    """
    Check a menu item form and normalise it.

    Raises:
        ValidationError: On the first rule that fails
    """
    settings = settings or get_settings()

    name = form.name.strip()
    if not name:
        raise ValidationError("name", "Enter the dish name")

    price = parse_price(form.price)
    if price is None or price <= 0:
        raise ValidationError("price", "Enter a valid price (a number greater than 0)")

    category = form.category.strip()
    if not category:
        raise ValidationError("category", "Choose a category")

    image = form.image.strip()
    if image and not is_valid_image_url(image):
        raise ValidationError("image", "Enter a valid image URL")

    variants = [
        variant.model_copy(update={"image": (variant.image or "").strip() or None})
        for variant in form.variants
    ]

    return MenuItemDraft(
        name=name,
        description=form.description.strip() or settings.default_description,
        price=price,
        category=category,
        image=image or settings.placeholder_image,
        preparation_time=_parse_preparation_time(form.preparation_time, settings.default_preparation_time),
        variants=variants or None,
    )


def validate_variant_form(form: VariantForm) -> MenuItemVariant:
    """
    Check a variant row before it joins the item's variant list.

    Raises:
        ValidationError: On the first rule that fails
    """
    name = form.name.strip()
    if not name:
        raise ValidationError("variant.name", "Enter the variant name and price")

    price = parse_price(form.price)
    if price is None or price <= 0:
        raise ValidationError("variant.price", "Enter the variant name and price")

    image = form.image.strip()
    if image and not is_valid_image_url(image):
        raise ValidationError("variant.image", "Enter a valid image URL")

    return MenuItemVariant(
        id=str(int(time.time() * 1000)),
        name=name,
        price=price,
        image=image or None,
        is_available=True,
    )


def validate_category_form(form: CategoryForm) -> Category:
    """
    Raises:
        ValidationError: When the name is blank
    """
    name = form.name.strip()
    if not name:
        raise ValidationError("name", "Enter the category name")
    return Category(name=name, color=form.color or CategoryColor.GRAY)
