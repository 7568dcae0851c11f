"""ERP catalog adapter.

Reads the product catalog from the ERP REST API and pushes price updates
back. The ERP paginates `/produtos` with `pagina`/`limite` and reports
`meta.total_paginas`; fetch_products() walks every page so the simulation
always sees a fully materialized catalog.

Price updates are sent once, never retried and never short-circuited by
the breaker: the apply workflow owns the per-item success accounting.
"""

import logging
from decimal import Decimal
from typing import Any, Protocol

from core.errors import ExternalCallFailure
from core.integrations.adapter_base import (
    AdapterBase,
    AdapterRequest,
    AdapterResponse,
    AuthCredentials,
    AuthType,
)
from core.integrations.normalizer import DataNormalizer, FieldMapping, SchemaMapping
from patterns.domain_config import ErpConfig
from patterns.rules_engine import ProductSnapshot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Provider contract
# ---------------------------------------------------------------------------

class CatalogProvider(Protocol):
    """What the simulation/apply workflow needs from the catalog system."""

    async def fetch_products(self) -> list[ProductSnapshot]: ...

    async def update_product_price(self, product_id: str, new_price: Decimal) -> None: ...


# ---------------------------------------------------------------------------
# ERP field mappings
# ---------------------------------------------------------------------------

ERP_PRODUCT_MAPPING = SchemaMapping(
    adapter_name="erp",
    entity_type="product",
    mappings=[
        FieldMapping("id", "id", "str"),
        FieldMapping("nome", "name", "strip", default=""),
        FieldMapping("nome_grupo", "group_name", "strip", default=""),
        FieldMapping("valor_venda", "current_price", "decimal", default=Decimal("NaN")),
        FieldMapping("estoque", "stock", "int", default=0),
    ],
)

ERP_PAGE_MAPPING = SchemaMapping(
    adapter_name="erp",
    entity_type="page",
    mappings=[
        FieldMapping("meta.total_paginas", "total_pages", "int", default=1),
        FieldMapping("meta.total_registros", "total_records", "int", default=0),
    ],
)


def build_normalizer() -> DataNormalizer:
    normalizer = DataNormalizer()
    normalizer.register_mapping(ERP_PRODUCT_MAPPING)
    normalizer.register_mapping(ERP_PAGE_MAPPING)
    return normalizer


def format_price(value: Decimal) -> str:
    """ERP expects prices as strings with four decimals."""
    return f"{value:.4f}"


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

class ErpAdapter(AdapterBase):
    """ERP REST adapter (product catalog reads, price updates)."""

    name = "erp"

    def __init__(self, config: ErpConfig | None = None, **kwargs: Any):
        self.config = config or ErpConfig()
        base_url = kwargs.pop("base_url", None) or self.config.base_url
        super().__init__(base_url=base_url, **kwargs)
        self.MAX_RETRIES = self.config.max_retries
        self.normalizer = build_normalizer()
        if self.config.access_token and self.config.secret_access_token:
            self.set_credentials(
                AuthCredentials(
                    tenant_id="*",
                    adapter_name=self.name,
                    auth_type=AuthType.CUSTOM,
                    custom_headers={
                        "access-token": self.config.access_token,
                        "secret-access-token": self.config.secret_access_token,
                    },
                )
            )

    def for_tenant(self, tenant_id: str) -> "TenantCatalog":
        return TenantCatalog(self, tenant_id)

    # -- Reads --

    async def fetch_page(
        self,
        page: int = 1,
        limit: int | None = None,
        group_id: str | None = None,
        name: str | None = None,
        tenant_id: str = "default",
    ) -> tuple[list[ProductSnapshot], int]:
        """One page of products plus the total page count."""
        params: dict[str, Any] = {"pagina": page, "limite": limit or self.config.page_size}
        if group_id and group_id != "all":
            params["grupo_id"] = group_id
        if name:
            params["nome"] = name

        resp = await self.request(
            AdapterRequest(method="GET", path="/produtos", params=params, timeout=self.config.timeout),
            tenant_id=tenant_id,
        )
        payload = self._require_ok(resp, "GET /produtos")
        if not isinstance(payload, dict):
            raise ExternalCallFailure("Unexpected product list payload", status_code=resp.status_code)

        rows = payload.get("data") or []
        meta = self.normalizer.normalize("erp", "page", payload)
        return [self.normalize_product(row) for row in rows], max(int(meta["total_pages"] or 1), 1)

    async def fetch_products(
        self,
        group_id: str | None = None,
        name: str | None = None,
        tenant_id: str = "default",
    ) -> list[ProductSnapshot]:
        """Every product across all pages, in ERP order."""
        products: list[ProductSnapshot] = []
        page, total_pages = 1, 1
        while page <= total_pages:
            batch, total_pages = await self.fetch_page(
                page=page, group_id=group_id, name=name, tenant_id=tenant_id
            )
            products.extend(batch)
            if not batch:
                break
            page += 1
        logger.info("Fetched %d products from ERP in %d page(s)", len(products), page - 1 or 1)
        return products

    # -- Writes --

    async def update_product_price(
        self,
        product_id: str,
        new_price: Decimal,
        tenant_id: str = "default",
    ) -> None:
        """PUT the new sell price. Raises ExternalCallFailure when not 2xx."""
        resp = await self.request(
            AdapterRequest(
                method="PUT",
                path=f"/produtos/{product_id}",
                body={"valor_venda": format_price(new_price)},
                timeout=self.config.timeout,
                retryable=False,
                use_circuit=False,
            ),
            tenant_id=tenant_id,
        )
        self._require_ok(resp, f"PUT /produtos/{product_id}")

    # -- Helpers --

    def normalize_product(self, row: dict[str, Any]) -> ProductSnapshot:
        data = self.normalizer.normalize("erp", "product", row)
        return ProductSnapshot(
            id=data["id"],
            name=data["name"] or "",
            group_name=data["group_name"] or "",
            current_price=data["current_price"],
            stock=data["stock"] or 0,
            raw=data["raw_data"],
        )

    @staticmethod
    def _require_ok(resp: AdapterResponse, label: str) -> Any:
        if not resp.ok:
            raise ExternalCallFailure(
                f"{label} failed: {resp.error or resp.status_code}",
                status_code=resp.status_code,
                details=resp.data if isinstance(resp.data, (dict, list)) else None,
            )
        return resp.data


class TenantCatalog:
    """ErpAdapter bound to one tenant; satisfies CatalogProvider."""

    def __init__(self, adapter: ErpAdapter, tenant_id: str):
        self.adapter = adapter
        self.tenant_id = tenant_id

    async def fetch_products(self) -> list[ProductSnapshot]:
        return await self.adapter.fetch_products(tenant_id=self.tenant_id)

    async def update_product_price(self, product_id: str, new_price: Decimal) -> None:
        await self.adapter.update_product_price(product_id, new_price, tenant_id=self.tenant_id)

