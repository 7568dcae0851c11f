"""Price Updates API: FastAPI entry point.

Registers middleware, error handlers, routers and lifecycle hooks. The
pricing vertical is mounted under /api/pricing/.

`create_app()` is the factory; tests pass their own storage and catalog
factories so no ERP or database is needed::

    app = create_app(storage_factory=lambda t: InMemoryRuleStorage(),
                     catalog_factory=lambda t: fake_catalog)
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_exception_handlers
from api.middleware import TenantMiddleware
from core.database import close_db, init_db
from core.logging_config import setup_logging
from patterns.domain_config import PriceUpdatesConfig
from verticals.pricing.service import CatalogFactory, PricingService, StorageFactory

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
).split(",")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    config: Optional[PriceUpdatesConfig] = None,
    storage_factory: Optional[StorageFactory] = None,
    catalog_factory: Optional[CatalogFactory] = None,
) -> FastAPI:
    if config is None:
        from verticals.pricing.config import config

    use_sql = storage_factory is None and config.storage.backend.lower() == "sql"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup/shutdown hooks."""
        # Startup: import renderer to auto-register with template engine
        import verticals.pricing.renderer  # noqa: F401

        setup_logging(config.log_level)
        if use_sql:
            await init_db()
        logger.info("Price Updates API started (storage=%s)", config.storage.backend)
        yield
        if use_sql:
            await close_db()
        logger.info("Price Updates API shutting down")

    app = FastAPI(
        title="Price Updates",
        description="Rule-based price adjustment with simulate-then-apply over the ERP catalog",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.pricing = PricingService(config, storage_factory, catalog_factory)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Multi-tenant middleware
    app.add_middleware(TenantMiddleware)

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers: verticals register here
    # -----------------------------------------------------------------------

    from verticals.pricing.router import router as pricing_router

    app.include_router(pricing_router, prefix="/api/pricing", tags=["Pricing"])

    # -----------------------------------------------------------------------
    # Health & root
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": VERSION,
            "erp": app.state.pricing.erp_health(),
        }

    @app.get("/")
    async def root():
        return {
            "name": "Price Updates",
            "version": VERSION,
            "docs": "/docs",
            "verticals": ["pricing"],
        }

    return app


app = create_app()
