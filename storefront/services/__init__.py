"""
                        Services Module

Business logic behind the storefront, with the hybrid architecture
pattern for persistence: a remote document store (Mock or SQL) backed
by a local fallback store (File or Memory).

Services:
    - remote: remote document store adapters
    - local: local fallback store adapters
    - sync: remote-first data access with local fallback
    - cart: customer cart and pricing
    - validation: admin form rules
    - catalog: grouping, filtering and counters for menu views
"""

from storefront.services.cart import Cart, PricingPolicy
from storefront.services.sync import MenuSyncService, SyncResult

__all__ = ["Cart", "PricingPolicy", "MenuSyncService", "SyncResult"]
