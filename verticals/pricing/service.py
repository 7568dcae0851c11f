"""Per-tenant wiring for the pricing API.

PricingService hands out one RuleStore, one catalog and one
PriceUpdateWorkflow per tenant. Stores are loaded from their storage on
first use and then kept in memory; every mutation still persists before
returning.

Routers get the service through FastAPI dependency injection::

    @router.get("/rules")
    async def list_rules(service: PricingService = Depends(get_pricing_service)):
        store = await service.rule_store(get_current_tenant())
"""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import Request

from core.database import configure
from patterns.domain_config import PriceUpdatesConfig
from patterns.rule_store import RuleStorage, RuleStore
from verticals.pricing.erp_adapter import CatalogProvider, ErpAdapter
from verticals.pricing.repository import SqlRuleStorage
from verticals.pricing.simulation import PriceUpdateWorkflow
from verticals.pricing.storage import JsonFileRuleStorage, rules_path

logger = logging.getLogger(__name__)

StorageFactory = Callable[[str], RuleStorage]
CatalogFactory = Callable[[str], CatalogProvider]


def default_storage_factory(config: PriceUpdatesConfig) -> StorageFactory:
    """JSON file per tenant, or the price_rules table when backend is "sql"."""
    backend = config.storage.backend.lower()
    if backend == "json":
        return lambda tenant_id: JsonFileRuleStorage(rules_path(config.storage.rules_dir, tenant_id))
    if backend == "sql":
        session_factory = configure(config.storage.database_url)
        return lambda tenant_id: SqlRuleStorage(tenant_id=tenant_id, session_factory=session_factory)
    raise ValueError(f"Unknown storage backend: {config.storage.backend!r} (expected json or sql)")


class PricingService:
    def __init__(
        self,
        config: PriceUpdatesConfig,
        storage_factory: Optional[StorageFactory] = None,
        catalog_factory: Optional[CatalogFactory] = None,
    ):
        self.config = config
        self.storage_factory = storage_factory or default_storage_factory(config)
        # One shared ERP adapter, bound to the tenant per request
        self.adapter: Optional[ErpAdapter] = None
        if catalog_factory is None:
            self.adapter = ErpAdapter(config.erp)
            catalog_factory = self.adapter.for_tenant
        self.catalog_factory = catalog_factory
        self._stores: dict[str, RuleStore] = {}
        self._workflows: dict[str, PriceUpdateWorkflow] = {}
        self._lock = asyncio.Lock()

    async def rule_store(self, tenant_id: str) -> RuleStore:
        async with self._lock:
            store = self._stores.get(tenant_id)
            if store is None:
                store = RuleStore(self.storage_factory(tenant_id))
                await store.load()
                self._stores[tenant_id] = store
                logger.info("Loaded %d rule(s) for tenant=%s", len(store), tenant_id)
            return store

    def catalog(self, tenant_id: str) -> CatalogProvider:
        return self.catalog_factory(tenant_id)

    def erp_health(self) -> Optional[dict]:
        return self.adapter.get_health().to_dict() if self.adapter else None

    def workflow(self, tenant_id: str) -> PriceUpdateWorkflow:
        workflow = self._workflows.get(tenant_id)
        if workflow is None:
            workflow = PriceUpdateWorkflow(
                self.catalog(tenant_id), self.config.pricing, workflow_id=tenant_id
            )
            self._workflows[tenant_id] = workflow
        return workflow


def get_pricing_service(request: Request) -> PricingService:
    """FastAPI dependency: the service created by the app factory."""
    return request.app.state.pricing
