"""
FastAPI Application Entry Point

Restaurant Storefront - Hybrid Persistence
Menu data lives in the remote document store when it is reachable and in
the local fallback store when it is not; the endpoints behave the same
either way.

Endpoints:
    - GET /health: Remote reachability ("live" or "offline" mode)
    - /api/menu-items, /api/categories: Admin menu management
    - GET /api/menu, GET /api/stats: Storefront and dashboard views
    - POST /api/sync: Replay local records to the remote store
    - /api/cart: Customer cart

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.core.config import Settings, get_settings, setup_logging
from storefront.exceptions import ValidationError
from storefront.schemas import (
    AvailabilityFilter,
    AvailabilityUpdate,
    CartLineRequest,
    CartSummary,
    Category,
    CategoryForm,
    CreatedResponse,
    ErrorResponse,
    HealthResponse,
    MenuItem,
    MenuItemForm,
    MenuSection,
    MenuStats,
    SyncResponse,
)
from storefront.services.cart import Cart, PricingPolicy, line_key
from storefront.services.catalog import filter_items, group_by_category, menu_stats, storefront_items
from storefront.services.local import BaseLocalStore, build_local_store
from storefront.services.menu_cache import MenuCache
from storefront.services.remote import BaseRemoteStore, build_remote_store
from storefront.services.sync import MenuSyncService
from storefront.services.validation import validate_category_form, validate_menu_item_form

logger = logging.getLogger(__name__)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_sync_service(request: Request) -> MenuSyncService:
    return request.app.state.sync


def get_menu_cache(request: Request) -> MenuCache:
    return request.app.state.menu_cache


def get_cart(request: Request) -> Cart:
    return request.app.state.cart


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    remote: Optional[BaseRemoteStore] = None,
    local: Optional[BaseLocalStore] = None,
) -> FastAPI:
    """
    Build the application.

    Stores not passed in are built from settings at startup.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application startup and shutdown events.
        """
        # Startup
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        remote_store = remote or build_remote_store(settings)
        local_store = local or build_local_store(settings)
        sync = MenuSyncService(remote_store, local_store, settings)

        app.state.settings = settings
        app.state.sync = sync
        app.state.cart = Cart(local_store, key=settings.cart_key, policy=PricingPolicy.from_settings(settings))
        app.state.menu_cache = MenuCache(sync)

        if await sync.check_access():
            logger.info(f"✅ Remote store reachable ({remote_store.provider_name})")
        else:
            logger.warning(f"⚠️ Remote store unreachable, serving from {local_store.backend_name} store")

        app.state.menu_cache.start()
        logger.info("✅ Application ready!")

        yield  # Application runs

        # Shutdown
        logger.info("Shutting down...")
        app.state.menu_cache.stop()
        await remote_store.close()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description="Restaurant menu management and storefront with local-storage fallback.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    _register_error_handlers(app, settings)
    return app


# =============================================================================
# ROUTES
# =============================================================================

def _register_routes(app: FastAPI) -> None:

    # -------------------------------------------------------------------------
    # ROOT & HEALTH
    # -------------------------------------------------------------------------

    @app.get("/", tags=["Root"])
    async def root(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
        """API root with navigation links."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.env_mode.value,
            "documentation": "/docs",
            "menu": "/api/menu",
            "health": "/health",
        }

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(sync: MenuSyncService = Depends(get_sync_service)) -> HealthResponse:
        """Report whether the remote store is reachable."""
        reachable = await sync.check_access()
        return HealthResponse(
            status="operational" if reachable else "degraded",
            mode="live" if reachable else "offline",
            remote_store=sync.remote.provider_name,
            local_store=sync.local.backend_name,
            timestamp=datetime.now(),
        )

    # -------------------------------------------------------------------------
    # MENU ITEMS (ADMIN)
    # -------------------------------------------------------------------------

    @app.get("/api/menu-items", response_model=list[MenuItem], tags=["Menu Items"])
    async def list_menu_items(
        search: str = Query(""),
        category: str = Query("all"),
        availability: AvailabilityFilter = Query(AvailabilityFilter.ALL),
        sync: MenuSyncService = Depends(get_sync_service),
    ) -> list[MenuItem]:
        items = await sync.menu_items.list_records()
        return filter_items(items, search, category, availability)

    @app.post("/api/menu-items", response_model=CreatedResponse, status_code=201, tags=["Menu Items"])
    async def create_menu_item(
        form: MenuItemForm,
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
        settings: Settings = Depends(get_app_settings),
    ) -> CreatedResponse:
        draft = validate_menu_item_form(form, settings)
        item_id = await sync.menu_items.create(draft.to_create_document())
        cache.refresh_if_offline()
        logger.info(f"Menu item {draft.name!r} added as {item_id}")
        return CreatedResponse(id=item_id)

    @app.patch("/api/menu-items/{item_id}", response_model=dict, tags=["Menu Items"])
    async def update_menu_item(
        item_id: str,
        form: MenuItemForm,
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
        settings: Settings = Depends(get_app_settings),
    ) -> dict[str, Any]:
        draft = validate_menu_item_form(form, settings)
        await sync.menu_items.update(item_id, draft.to_update_document())
        cache.refresh_if_offline()
        return {"success": True, "id": item_id}

    @app.delete("/api/menu-items/{item_id}", response_model=dict, tags=["Menu Items"])
    async def delete_menu_item(
        item_id: str,
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> dict[str, Any]:
        await sync.menu_items.delete(item_id)
        cache.refresh_if_offline()
        return {"success": True, "id": item_id}

    @app.post("/api/menu-items/{item_id}/availability", response_model=dict, tags=["Menu Items"])
    async def set_availability(
        item_id: str,
        body: AvailabilityUpdate,
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> dict[str, Any]:
        await sync.toggle_availability(item_id, body.is_available)
        cache.refresh_if_offline()
        return {"success": True, "id": item_id, "is_available": body.is_available}

    @app.post("/api/menu-items/{item_id}/sold-out", response_model=dict, tags=["Menu Items"])
    async def mark_sold_out(
        item_id: str,
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> dict[str, Any]:
        await sync.mark_sold_out(item_id)
        cache.refresh_if_offline()
        return {"success": True, "id": item_id, "is_available": False}

    # -------------------------------------------------------------------------
    # CATEGORIES (ADMIN)
    # -------------------------------------------------------------------------

    @app.get("/api/categories", response_model=list[Category], tags=["Categories"])
    async def list_categories(sync: MenuSyncService = Depends(get_sync_service)) -> list[Category]:
        return await sync.categories.list_records()

    @app.post("/api/categories", response_model=CreatedResponse, status_code=201, tags=["Categories"])
    async def create_category(
        form: CategoryForm,
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> CreatedResponse:
        category = validate_category_form(form)
        category_id = await sync.categories.create(category)
        cache.refresh_if_offline()
        return CreatedResponse(id=category_id)

    @app.delete("/api/categories/{category_id}", response_model=dict, tags=["Categories"])
    async def delete_category(
        category_id: str,
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> dict[str, Any]:
        await sync.categories.delete(category_id)
        cache.refresh_if_offline()
        return {"success": True, "id": category_id}

    # -------------------------------------------------------------------------
    # STOREFRONT & DASHBOARD VIEWS
    # -------------------------------------------------------------------------

    @app.get("/api/menu", response_model=list[MenuSection], tags=["Storefront"])
    async def storefront_menu(
        search: str = Query(""),
        category: str = Query("all"),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> list[MenuSection]:
        items = storefront_items(cache.items, search, category)
        return group_by_category(items, cache.categories)

    @app.get("/api/stats", response_model=MenuStats, tags=["Dashboard"])
    async def dashboard_stats(cache: MenuCache = Depends(get_menu_cache)) -> MenuStats:
        return menu_stats(cache.items)

    @app.post("/api/sync", response_model=SyncResponse, tags=["Dashboard"])
    async def sync_to_remote(
        sync: MenuSyncService = Depends(get_sync_service),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> SyncResponse:
        result = await sync.sync_local_to_remote()
        if result.success:
            # Reconnect the feeds now that the remote is back
            cache.reload()
        return SyncResponse(**result.to_dict())

    # -------------------------------------------------------------------------
    # CART
    # -------------------------------------------------------------------------

    @app.get("/api/cart", response_model=CartSummary, tags=["Cart"])
    async def view_cart(cart: Cart = Depends(get_cart)) -> CartSummary:
        return cart.summary()

    @app.post("/api/cart/items", response_model=CartSummary, tags=["Cart"])
    async def add_to_cart(
        body: CartLineRequest,
        cart: Cart = Depends(get_cart),
        cache: MenuCache = Depends(get_menu_cache),
    ) -> CartSummary:
        item = cache.find_item(body.item_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"Menu item {body.item_id} not found")
        if not item.is_available:
            raise HTTPException(status_code=409, detail=f"{item.name} is sold out")

        variant = None
        if body.variant_id:
            variant = item.find_variant(body.variant_id)
            if variant is None:
                raise HTTPException(status_code=404, detail=f"Variant {body.variant_id} not found")
            if not variant.is_available:
                raise HTTPException(status_code=409, detail=f"{item.name} ({variant.name}) is sold out")

        cart.add_to_cart(item, variant)
        return cart.summary()

    @app.post("/api/cart/items/remove", response_model=CartSummary, tags=["Cart"])
    async def remove_from_cart(body: CartLineRequest, cart: Cart = Depends(get_cart)) -> CartSummary:
        cart.decrement(line_key(body.item_id, body.variant_id))
        return cart.summary()

    @app.delete("/api/cart/lines", response_model=CartSummary, tags=["Cart"])
    async def remove_cart_line(
        item_id: str = Query(..., min_length=1),
        variant_id: Optional[str] = Query(None),
        cart: Cart = Depends(get_cart),
    ) -> CartSummary:
        cart.remove_line(line_key(item_id, variant_id))
        return cart.summary()

    @app.delete("/api/cart", response_model=CartSummary, tags=["Cart"])
    async def clear_cart(cart: Cart = Depends(get_cart)) -> CartSummary:
        cart.clear()
        return cart.summary()


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _register_error_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Report the single failed form rule."""
        logger.info(f"Form rejected: {exc}")
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(error="Validation Error", detail=exc.message, field=exc.field).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal Server Error",
                "detail": str(exc) if settings.debug else "An unexpected error occurred",
            },
        )


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
