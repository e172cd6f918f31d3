"""
Customer Cart

In-progress order as an ordered list of CartItem lines. Each line is
identified by a LineKey:

    OriginalLine(item_id)             item ordered without a variant
    VariantLine(item_id, variant_id)  item ordered as one of its variants

Adding the same key again bumps its quantity; removing drops it by one
and deletes the line at zero. Prices are snapshotted when a line is
created, so totals do not move when the menu changes.

The cart is single-device: it is read from the local store once when
constructed and written back after every change.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from pydantic import ValidationError as SchemaError

from storefront.core.config import Settings
from storefront.schemas import CartItem, CartSummary, MenuItem, MenuItemVariant
from storefront.services.local.base import BaseLocalStore

logger = logging.getLogger(__name__)


# =============================================================================
# LINE IDENTITY
# =============================================================================

@dataclass(frozen=True)
class OriginalLine:
    item_id: str


@dataclass(frozen=True)
class VariantLine:
    item_id: str
    variant_id: str


LineKey = Union[OriginalLine, VariantLine]


def line_key(item_id: str, variant_id: Optional[str] = None) -> LineKey:
    if variant_id:
        return VariantLine(item_id, variant_id)
    return OriginalLine(item_id)


def key_of(cart_item: CartItem) -> LineKey:
    variant = None if cart_item.is_original else cart_item.selected_variant
    return line_key(cart_item.id, variant.id if variant else None)


def _round_unit(value: Decimal) -> float:
    return float(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# PRICING
# =============================================================================

@dataclass
class PricingPolicy:
    """
    Fees applied on top of the subtotal.

    Attributes:
        service_fee_rate: Fraction of the subtotal, rounded to a whole unit
        delivery_fee_enabled: Whether delivery is charged at all
        delivery_fee: Flat delivery charge
        free_delivery_threshold: Subtotal from which delivery is free
    """
    service_fee_rate: float = 0.0
    delivery_fee_enabled: bool = False
    delivery_fee: float = 5000
    free_delivery_threshold: float = 50000

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingPolicy":
        return cls(
            service_fee_rate=settings.service_fee_rate,
            delivery_fee_enabled=settings.delivery_fee_enabled,
            delivery_fee=settings.delivery_fee,
            free_delivery_threshold=settings.free_delivery_threshold,
        )

    def service_fee_for(self, subtotal: float) -> float:
        return _round_unit(Decimal(str(subtotal)) * Decimal(str(self.service_fee_rate)))

    def delivery_fee_for(self, subtotal: float) -> float:
        # Nothing to deliver for an empty cart
        if not self.delivery_fee_enabled or subtotal <= 0:
            return 0.0
        if subtotal >= self.free_delivery_threshold:
            return 0.0
        return float(self.delivery_fee)


# =============================================================================
# CART
# =============================================================================

class Cart:
    """
    Ordered cart lines with merge rules and totals.

    Example:
        >>> cart = Cart(MemoryLocalStore())
        >>> cart.add_to_cart(osh)
        >>> cart.add_to_cart(osh, half_portion)
        >>> cart.total_items()
        2
    """

    def __init__(
        self,
        store: BaseLocalStore,
        key: str = "restaurant_cart",
        policy: Optional[PricingPolicy] = None,
    ):
        self._store = store
        self._key = key
        self.policy = policy or PricingPolicy()
        self._lines: list[CartItem] = self._rehydrate()

    def _rehydrate(self) -> list[CartItem]:
        lines = []
        for raw in self._store.load_list(self._key) or []:
            try:
                lines.append(CartItem.model_validate(raw))
            except SchemaError as e:
                logger.warning(f"Dropping unreadable cart line: {e}")
        if lines:
            logger.info(f"Cart restored with {len(lines)} line(s)")
        return lines

    def _persist(self) -> None:
        self._store.save(self._key, [line.to_document() for line in self._lines])

    def _index(self, key: LineKey) -> Optional[int]:
        for index, line in enumerate(self._lines):
            if key_of(line) == key:
                return index
        return None

    @property
    def lines(self) -> list[CartItem]:
        return [line.model_copy(deep=True) for line in self._lines]

    def find_line(self, key: LineKey) -> Optional[CartItem]:
        index = self._index(key)
        return None if index is None else self._lines[index].model_copy(deep=True)

    def quantity_of(self, item: MenuItem, selected_variant: Optional[MenuItemVariant] = None) -> int:
        line = self.find_line(line_key(item.id, selected_variant.id if selected_variant else None))
        return line.quantity if line else 0

    # -------------------------------------------------------------------------
    # mutations
    # -------------------------------------------------------------------------

    def add_to_cart(self, item: MenuItem, selected_variant: Optional[MenuItemVariant] = None) -> CartItem:
        """Add one unit of item (or of one of its variants)."""
        if not item.id:
            raise ValueError("Cannot add an unsaved menu item to the cart")

        key = line_key(item.id, selected_variant.id if selected_variant else None)
        index = self._index(key)
        if index is not None:
            line = self._lines[index]
            line.quantity += 1
        else:
            if selected_variant is not None:
                price = selected_variant.price
                image = selected_variant.image or item.image
            else:
                price = item.price
                image = item.image
            line = CartItem(
                id=item.id,
                name=item.name,
                image=image,
                price=price,
                category=item.category,
                quantity=1,
                selected_variant=selected_variant.model_copy(deep=True) if selected_variant else None,
                is_original=selected_variant is None,
            )
            self._lines.append(line)

        self._persist()
        logger.debug(f"Cart: {key} quantity now {line.quantity}")
        return line.model_copy(deep=True)

    def decrement(self, key: LineKey) -> Optional[CartItem]:
        """
        Take one unit off the line with key.

        Returns:
            The remaining line, or None if it was removed or never existed
        """
        index = self._index(key)
        if index is None:
            return None
        line = self._lines[index]
        if line.quantity > 1:
            line.quantity -= 1
            self._persist()
            return line.model_copy(deep=True)
        del self._lines[index]
        self._persist()
        return None

    def remove_from_cart(self, item: MenuItem, selected_variant: Optional[MenuItemVariant] = None) -> Optional[CartItem]:
        return self.decrement(line_key(item.id, selected_variant.id if selected_variant else None))

    def remove_line(self, key: LineKey) -> bool:
        index = self._index(key)
        if index is None:
            return False
        del self._lines[index]
        self._persist()
        return True

    def remove_item_completely(self, cart_item: CartItem) -> bool:
        """Drop the line of cart_item whatever its quantity."""
        return self.remove_line(key_of(cart_item))

    def clear(self) -> None:
        self._lines = []
        self._persist()

    # -------------------------------------------------------------------------
    # totals
    # -------------------------------------------------------------------------

    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    def subtotal(self) -> float:
        return float(sum(Decimal(str(line.price)) * line.quantity for line in self._lines))

    def service_fee(self) -> float:
        return self.policy.service_fee_for(self.subtotal())

    def delivery_fee(self) -> float:
        return self.policy.delivery_fee_for(self.subtotal())

    def final_total(self) -> float:
        return self.subtotal() + self.service_fee() + self.delivery_fee()

    def summary(self) -> CartSummary:
        return CartSummary(
            items=self.lines,
            total_items=self.total_items(),
            subtotal=self.subtotal(),
            service_fee=self.service_fee(),
            delivery_fee=self.delivery_fee(),
            final_total=self.final_total(),
        )
